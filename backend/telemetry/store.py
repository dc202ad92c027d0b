from __future__ import annotations

import queue
import threading
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import duckdb

from benchmark.types import ComparisonRun, Success
from geo.aoi import Viewport
from telemetry.sql import (
    CREATE_ARM_RUNS_TABLE_SQL,
    INSERT_ARM_RUNS_SQL,
    SUMMARY_SQL_TEMPLATE,
)


def _safe_float(v) -> float | None:
    try:
        if v is None:
            return None
        return float(v)
    except Exception:
        return None


def arm_rows(run: ComparisonRun, viewport: Viewport, *, ts_ms: int) -> list[tuple]:
    run_id = uuid.uuid4().hex
    b = viewport.bbox()
    out: list[tuple] = []
    for position, side in enumerate(run.ordered_sides):
        outcome = run.outcomes.get(side)
        if isinstance(outcome, Success):
            r = outcome.result
            status = "ok"
            client_ms: float | None = r.client_elapsed_ms
            server_ms = r.server_elapsed_ms
            row_count: int | None = len(r.rows)
        else:
            status = outcome.kind.value if outcome is not None else "pending"
            client_ms = None
            server_ms = None
            row_count = None
        out.append(
            (
                ts_ms,
                run_id,
                side.value,
                position,
                status,
                client_ms,
                server_ms,
                row_count,
                float(viewport.zoom_level),
                b.min_lon,
                b.min_lat,
                b.max_lon,
                b.max_lat,
                run.winner is side,
            )
        )
    return out


@dataclass
class TelemetryStore:
    path: str
    conn: duckdb.DuckDBPyConnection
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _q: "queue.Queue[tuple]" = field(default_factory=queue.Queue, repr=False)
    _stop: threading.Event = field(default_factory=threading.Event, repr=False)
    _worker: threading.Thread | None = field(default=None, repr=False)

    def ensure_schema(self) -> None:
        with self._lock:
            self.conn.execute(CREATE_ARM_RUNS_TABLE_SQL)

    def start(self) -> None:
        if self._worker is not None:
            return
        self._stop.clear()
        self._worker = threading.Thread(
            target=self._run, name="telemetry-writer", daemon=True
        )
        self._worker.start()

    def stop(self, *, timeout_s: float = 2.0) -> None:
        """
        Stop the writer thread (best-effort) and prevent further flushes.
        """
        self._stop.set()
        w = self._worker
        if w is not None and w.is_alive():
            w.join(timeout=timeout_s)
        self._worker = None

    def record(self, run: ComparisonRun, viewport: Viewport) -> None:
        # Best-effort, non-blocking: enqueue and return.
        self.start()
        ts_ms = int(time.time() * 1000)
        try:
            for row in arm_rows(run, viewport, ts_ms=ts_ms):
                self._q.put_nowait(row)
        except queue.Full:
            # drop telemetry on overload
            pass

    def flush(self, *, timeout_s: float = 2.0) -> None:
        """
        Best-effort: wait until queued rows are processed (used by tests).
        """
        if self._worker is None:
            return
        deadline = time.time() + timeout_s
        while time.time() < deadline:
            if self._q.unfinished_tasks == 0:
                break
            time.sleep(0.01)
        # Give the writer thread time to flush on its time-based trigger.
        time.sleep(0.55)

    def query(self, sql: str, params: list[Any] | None = None) -> list[tuple]:
        with self._lock:
            if params:
                return self.conn.execute(sql, params).fetchall()
            return self.conn.execute(sql).fetchall()

    def summary(self, *, since_ms: int | None = None) -> list[dict[str, Any]]:
        where = []
        params: list[Any] = []
        if since_ms is not None:
            where.append("ts_ms >= ?")
            params.append(int(since_ms))
        where_sql = f"WHERE {' AND '.join(where)}" if where else ""

        rows = self.query(SUMMARY_SQL_TEMPLATE.format(where_sql=where_sql), params)

        out: list[dict[str, Any]] = []
        for (
            side,
            n,
            failures,
            avg_ms,
            p50,
            p95,
            avg_client,
            wins,
            avg_first,
            avg_second,
        ) in rows:
            out.append(
                {
                    "side": side,
                    "n": int(n),
                    "failures": int(failures or 0),
                    "wins": int(wins or 0),
                    "avgServerMs": _safe_float(avg_ms),
                    "p50ServerMs": _safe_float(p50),
                    "p95ServerMs": _safe_float(p95),
                    "avgClientMs": _safe_float(avg_client),
                    # Order bias check: first-executed vs second-executed averages.
                    "avgServerMsWhenFirst": _safe_float(avg_first),
                    "avgServerMsWhenSecond": _safe_float(avg_second),
                }
            )
        return out

    def reset(self) -> None:
        # Stop the writer first so it can't write to a closed connection.
        self.stop(timeout_s=2.0)
        with self._lock:
            try:
                self.conn.close()
            except Exception:
                pass
            if self.path != ":memory:":
                Path(self.path).unlink(missing_ok=True)

    def _run(self) -> None:
        self.ensure_schema()
        batch: list[tuple] = []
        last_flush = time.time()

        def flush_batch() -> None:
            nonlocal batch
            if not batch:
                return
            with self._lock:
                self.conn.executemany(INSERT_ARM_RUNS_SQL, batch)
            batch = []

        while not self._stop.is_set():
            try:
                row = self._q.get(timeout=0.1)
            except queue.Empty:
                row = None

            if row is not None:
                batch.append(row)
                self._q.task_done()

            # Flush on size or time.
            now = time.time()
            if len(batch) >= 250 or (batch and (now - last_flush) >= 0.5):
                flush_batch()
                last_flush = now

        # Drain remaining
        try:
            while True:
                batch.append(self._q.get_nowait())
                self._q.task_done()
        except queue.Empty:
            pass
        flush_batch()
