from __future__ import annotations

import logging
import random
from typing import Iterable

import duckdb
from shapely.geometry import box

from config.types import ArmConfig
from benchmark.types import SideIdentity
from geo.aoi import BBox
from geo.tiles import lonlat_to_tile
from gateway.sql import (
    CREATE_POINTS_INDEX_SQL,
    CREATE_POINTS_TABLE_SQL,
    CREATE_POLYGONS_INDEX_SQL,
    CREATE_POLYGONS_TABLE_SQL,
    INSERT_POINTS_SQL,
    INSERT_POLYGONS_SQL,
    TABLE_EXISTS_SQL,
)

logger = logging.getLogger(__name__)

# Continental USA.
DEFAULT_EXTENT = BBox(min_lon=-124.8, min_lat=24.5, max_lon=-66.9, max_lat=49.4)

_CATEGORIES = ("county", "park", "district", "reserve")
_ORDER_TILE_ZOOM = 10
_INSERT_CHUNK = 5_000


def table_exists(conn: duckdb.DuckDBPyConnection, table: str) -> bool:
    row = conn.execute(TABLE_EXISTS_SQL, [table]).fetchone()
    return bool(row and int(row[0] or 0) > 0)


def _tile_key(lon: float, lat: float) -> tuple[int, int]:
    return lonlat_to_tile(_ORDER_TILE_ZOOM, lon, lat)


def _point_rows(rng: random.Random, n: int, extent: BBox) -> list[tuple]:
    out: list[tuple] = []
    for i in range(n):
        lon = rng.uniform(extent.min_lon, extent.max_lon)
        lat = rng.uniform(extent.min_lat, extent.max_lat)
        out.append((i, lon, lat, f"Location {i}"))
    return out


def _polygon_rows(rng: random.Random, n: int, extent: BBox) -> list[tuple]:
    out: list[tuple] = []
    for i in range(n):
        size = rng.uniform(0.005, 0.05)
        lon = rng.uniform(extent.min_lon, extent.max_lon - size)
        lat = rng.uniform(extent.min_lat, extent.max_lat - size)
        shape = box(lon, lat, lon + size, lat + size)
        out.append(
            (
                i,
                shape.wkb,
                lon,
                lat,
                lon + size,
                lat + size,
                f"Area {i}",
                _CATEGORIES[i % len(_CATEGORIES)],
            )
        )
    return out


def _insert(conn: duckdb.DuckDBPyConnection, sql: str, rows: Iterable[tuple]) -> None:
    batch: list[tuple] = []
    for r in rows:
        batch.append(r)
        if len(batch) >= _INSERT_CHUNK:
            conn.executemany(sql, batch)
            batch = []
    if batch:
        conn.executemany(sql, batch)


def seed_arm(
    conn: duckdb.DuckDBPyConnection,
    arm: ArmConfig,
    *,
    rows: int,
    extent: BBox = DEFAULT_EXTENT,
    seed: int = 7,
) -> int:
    """
    Create and fill the arm's table with deterministic synthetic rows.

    The indexed arm is written in tile order (clustered, so DuckDB row-group
    min/max pruning applies) and gets an index; the other arm stays in random order.
    """
    rng = random.Random(f"{seed}:{arm.table}")
    indexed = arm.side is SideIdentity.with_index
    if arm.kind == "polygons":
        data = _polygon_rows(rng, rows, extent)
        if indexed:
            data.sort(key=lambda r: _tile_key(r[2], r[3]))
        conn.execute(CREATE_POLYGONS_TABLE_SQL.format(table=arm.table))
        _insert(conn, INSERT_POLYGONS_SQL.format(table=arm.table), data)
        if indexed:
            conn.execute(CREATE_POLYGONS_INDEX_SQL.format(table=arm.table))
    else:
        data = _point_rows(rng, rows, extent)
        if indexed:
            data.sort(key=lambda r: _tile_key(r[1], r[2]))
        conn.execute(CREATE_POINTS_TABLE_SQL.format(table=arm.table))
        _insert(conn, INSERT_POINTS_SQL.format(table=arm.table), data)
        if indexed:
            conn.execute(CREATE_POINTS_INDEX_SQL.format(table=arm.table))
    logger.info(
        "Seeded %s table %s with %d rows (indexed=%s)", arm.kind, arm.table, len(data), indexed
    )
    return len(data)


def ensure_seeded(
    conn: duckdb.DuckDBPyConnection,
    arms: Iterable[ArmConfig],
    *,
    rows: int,
    extent: BBox = DEFAULT_EXTENT,
) -> list[str]:
    """
    Seed every arm table that does not exist yet. Existing tables are left alone.
    """
    seeded: list[str] = []
    for arm in arms:
        if table_exists(conn, arm.table):
            continue
        seed_arm(conn, arm, rows=rows, extent=extent)
        seeded.append(arm.table)
    return seeded
