from __future__ import annotations

import asyncio
import threading
import time

import duckdb
from shapely.geometry import box, shape

from benchmark.types import Failure, FailureKind, SideIdentity, Success
from config.types import ArmConfig
from features.types import PointFeature, PolygonFeature
from gateway import duckdb as duckdb_gateway
from gateway.duckdb import DuckDBQueryGateway
from gateway.seed import table_exists
from geo.aoi import BBox, Viewport

ARMS = [
    ArmConfig(side=SideIdentity.with_index, title="Indexed", table="pts_idx", kind="points"),
    ArmConfig(side=SideIdentity.without_index, title="Plain", table="polys", kind="polygons"),
]

# Large enough to hit plenty of seeded rows at 400 rows over the continental US.
VIEW = Viewport.from_bbox(
    BBox(min_lon=-110.0, min_lat=35.0, max_lon=-95.0, max_lat=45.0), zoom_level=6.0
)


def _gateway(**kwargs) -> DuckDBQueryGateway:
    return DuckDBQueryGateway(ARMS, path=":memory:", seed_rows=400, threads=1, **kwargs)


def test_seeds_missing_tables_once():
    gw = _gateway()
    assert table_exists(gw.conn, "pts_idx")
    assert table_exists(gw.conn, "polys")
    n = gw.conn.execute("SELECT COUNT(*) FROM pts_idx").fetchone()[0]
    assert n == 400

    # Re-using the connection does not reseed.
    DuckDBQueryGateway(ARMS, conn=gw.conn, seed_rows=999)
    assert gw.conn.execute("SELECT COUNT(*) FROM pts_idx").fetchone()[0] == 400


def test_point_arm_returns_points_inside_viewport():
    gw = _gateway()
    outcome = asyncio.run(gw.execute(SideIdentity.with_index, VIEW))

    assert isinstance(outcome, Success)
    r = outcome.result
    assert not r.is_polygonal
    assert r.rows
    assert all(isinstance(f, PointFeature) for f in r.rows)
    assert all(-110.0 <= f.lng <= -95.0 and 35.0 <= f.lat <= 45.0 for f in r.rows)
    assert r.server_elapsed_ms is not None and r.server_elapsed_ms >= 0.0
    assert r.client_elapsed_ms >= r.server_elapsed_ms


def test_polygon_arm_returns_geojson_intersecting_viewport():
    gw = _gateway()
    outcome = asyncio.run(gw.execute(SideIdentity.without_index, VIEW))

    assert isinstance(outcome, Success)
    r = outcome.result
    assert r.is_polygonal
    assert r.rows
    window = box(-110.0, 35.0, -95.0, 45.0)
    for f in r.rows:
        assert isinstance(f, PolygonFeature)
        assert f.geometry["type"] == "Polygon"
        assert shape(f.geometry).intersects(window)
        assert f.category is not None


def test_overrun_is_reported_as_timeout(monkeypatch):
    def slow_query(cur, arm, bbox):
        time.sleep(0.3)
        return (), 0.0

    monkeypatch.setattr(duckdb_gateway, "_run_bbox_query", slow_query)
    gw = _gateway(timeout_s=0.05)

    outcome = asyncio.run(gw.execute(SideIdentity.with_index, VIEW))

    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.timeout


def test_timed_out_arm_settles_before_the_next_arm_starts(monkeypatch):
    real_query = duckdb_gateway._run_bbox_query
    active = {"now": 0, "max": 0}
    lock = threading.Lock()

    def tracked_query(cur, arm, bbox):
        with lock:
            active["now"] += 1
            active["max"] = max(active["max"], active["now"])
        try:
            if arm.table == "polys":
                # Python-side work that an interrupt cannot stop.
                time.sleep(0.5)
            return real_query(cur, arm, bbox)
        finally:
            with lock:
                active["now"] -= 1

    monkeypatch.setattr(duckdb_gateway, "_run_bbox_query", tracked_query)
    gw = _gateway(timeout_s=0.1)

    async def both_arms():
        first = await gw.execute(SideIdentity.without_index, VIEW)
        second = await gw.execute(SideIdentity.with_index, VIEW)
        return first, second

    first, second = asyncio.run(both_arms())

    assert isinstance(first, Failure)
    assert first.kind is FailureKind.timeout
    assert isinstance(second, Success)
    assert active["max"] == 1
    assert active["now"] == 0


def test_missing_table_is_a_remote_error():
    gw = _gateway()
    gw.conn.execute("DROP TABLE polys")

    outcome = asyncio.run(gw.execute(SideIdentity.without_index, VIEW))

    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.remote_error
    assert "polys" in outcome.message.lower() or "catalog" in outcome.message.lower()


def test_file_backed_database_persists_seed(tmp_path):
    path = tmp_path / "bench" / "bench.duckdb"
    gw = DuckDBQueryGateway(ARMS, path=str(path), seed_rows=50, threads=1)
    gw.close()
    assert path.exists()

    conn = duckdb.connect(str(path))
    try:
        assert conn.execute("SELECT COUNT(*) FROM polys").fetchone()[0] == 50
    finally:
        conn.close()
