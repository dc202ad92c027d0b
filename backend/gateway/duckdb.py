from __future__ import annotations

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Iterable

import duckdb

from benchmark.types import Failure, FailureKind, QueryOutcome, QueryResult, SideIdentity, Success
from config.types import ArmConfig
from features.types import Feature
from gateway.decode import decode_point_rows, decode_polygon_rows
from gateway.seed import DEFAULT_EXTENT, ensure_seeded
from gateway.sql import POINTS_BBOX_SQL, POLYGONS_BBOX_SQL
from gateway.types import QueryGateway, Stopwatch
from geo.aoi import BBox, Viewport

logger = logging.getLogger(__name__)


def connect(path: str, *, threads: int | None = None) -> duckdb.DuckDBPyConnection:
    if path != ":memory:":
        p = Path(path)
        if p.parent and str(p.parent) not in {".", ""}:
            p.parent.mkdir(parents=True, exist_ok=True)
    config = {"threads": int(threads)} if threads else {}
    return duckdb.connect(database=path, read_only=False, config=config)


def duckdb_threads() -> int:
    raw = (os.getenv("BENCH_DUCKDB_THREADS") or "").strip()
    if raw:
        try:
            return max(1, int(raw))
        except Exception:
            pass
    return max(1, int(os.cpu_count() or 1))


def _run_bbox_query(
    cur: duckdb.DuckDBPyConnection, arm: ArmConfig, bbox: BBox
) -> tuple[tuple[Feature, ...], float]:
    """
    Runs in a worker thread. Returns (features, server_ms); server time covers
    the SQL plus exact-intersection refinement, not Python object construction.
    """
    b = bbox.normalized()
    try:
        if arm.kind == "polygons":
            t0 = time.perf_counter()
            raw = cur.execute(
                POLYGONS_BBOX_SQL.format(table=arm.table),
                [b.min_lon, b.max_lon, b.min_lat, b.max_lat],
            ).fetchall()
            feats = decode_polygon_rows(raw, bbox=b)
            server_ms = (time.perf_counter() - t0) * 1000.0
            return tuple(feats), server_ms

        t0 = time.perf_counter()
        raw = cur.execute(
            POINTS_BBOX_SQL.format(table=arm.table),
            [b.min_lon, b.max_lon, b.min_lat, b.max_lat],
        ).fetchall()
        server_ms = (time.perf_counter() - t0) * 1000.0
        return tuple(decode_point_rows(raw)), server_ms
    finally:
        try:
            cur.close()
        except Exception:
            pass


class DuckDBQueryGateway(QueryGateway):
    """
    In-process backend: each arm is a DuckDB table, seeded on first use.

    Queries run in a worker thread so the event loop keeps serving requests; a query
    that overruns `timeout_s` is interrupted and reported as a timeout once its
    worker has exited.
    """

    def __init__(
        self,
        arms: Iterable[ArmConfig],
        *,
        path: str = ":memory:",
        timeout_s: float = 8.0,
        seed_rows: int = 50_000,
        extent: BBox = DEFAULT_EXTENT,
        threads: int | None = None,
        conn: duckdb.DuckDBPyConnection | None = None,
    ):
        self.arms: dict[SideIdentity, ArmConfig] = {a.side: a for a in arms}
        self.path = path
        self.timeout_s = float(timeout_s)
        self.conn = conn if conn is not None else connect(path, threads=threads or duckdb_threads())
        ensure_seeded(self.conn, self.arms.values(), rows=seed_rows, extent=extent)

    async def execute(self, side: SideIdentity, viewport: Viewport) -> QueryOutcome:
        arm = self.arms[side]
        cur = self.conn.cursor()
        watch = Stopwatch()
        worker = asyncio.ensure_future(
            asyncio.to_thread(_run_bbox_query, cur, arm, viewport.bbox())
        )
        done, _ = await asyncio.wait({worker}, timeout=self.timeout_s)
        if not done:
            try:
                cur.interrupt()
            except Exception:
                pass
            logger.warning(
                "Query on %s exceeded %.1fs (%.0f ms)", arm.table, self.timeout_s, watch.elapsed_ms()
            )
            # The worker thread cannot be cancelled; the arm settles only once it has exited.
            try:
                await worker
            except Exception as e:
                logger.debug("Interrupted query on %s ended with %s", arm.table, type(e).__name__)
            return Failure(
                FailureKind.timeout,
                f"Query on {arm.table} exceeded the {self.timeout_s:g}s time budget",
            )

        try:
            feats, server_ms = worker.result()
        except duckdb.InterruptException as e:
            return Failure(FailureKind.timeout, f"Query on {arm.table} was interrupted: {e}")
        except duckdb.Error as e:
            logger.warning("Query on %s failed: %s", arm.table, e)
            return Failure(FailureKind.remote_error, f"{type(e).__name__}: {e}")

        client_ms = watch.elapsed_ms()
        return Success(
            QueryResult(
                rows=feats,
                client_elapsed_ms=client_ms,
                server_elapsed_ms=server_ms,
                is_polygonal=arm.kind == "polygons",
            )
        )

    def close(self) -> None:
        try:
            self.conn.close()
        except Exception:
            pass
