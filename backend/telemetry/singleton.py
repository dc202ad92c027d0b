from __future__ import annotations

import threading
from pathlib import Path

import duckdb

from config.env import telemetry_enabled, telemetry_path
from telemetry.store import TelemetryStore

_STORE: TelemetryStore | None = None
_STORE_LOCK = threading.RLock()


def _connect(path: str) -> duckdb.DuckDBPyConnection:
    if path == ":memory:":
        return duckdb.connect(database=":memory:")
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(path)


def get_store() -> TelemetryStore | None:
    global _STORE
    if not telemetry_enabled():
        return None
    with _STORE_LOCK:
        path = telemetry_path()
        if _STORE is not None:
            # Reopen when the configured path changes (across tests or a dev session).
            if _STORE.path == path:
                return _STORE
            _STORE.stop(timeout_s=2.0)
            try:
                _STORE.conn.close()
            except Exception:
                pass
            _STORE = None

        _STORE = TelemetryStore(path=path, conn=_connect(path))
        _STORE.ensure_schema()
        _STORE.start()
        return _STORE


def reset_store() -> None:
    global _STORE
    with _STORE_LOCK:
        if _STORE is not None:
            _STORE.reset()
            _STORE = None
        else:
            path = telemetry_path()
            if path != ":memory:":
                Path(path).unlink(missing_ok=True)
