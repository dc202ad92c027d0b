from __future__ import annotations

import os
from pathlib import Path


def repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _env_float(name: str) -> float | None:
    raw = (os.getenv(name) or "").strip()
    if raw:
        try:
            return float(raw)
        except Exception:
            pass
    return None


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if raw:
        try:
            return int(raw)
        except Exception:
            pass
    return default


def _env_flag(name: str, default: bool) -> bool:
    v = (os.getenv(name) or ("1" if default else "0")).strip().lower()
    return v not in {"0", "false", "no", "off"}


def config_path() -> Path:
    return Path(os.getenv("BENCH_CONFIG_PATH") or (repo_root() / "benchmark.yaml"))


def gateway_name() -> str:
    n = (os.getenv("BENCH_GATEWAY") or "duckdb").strip().lower()
    if n in {"duckdb", "rpc"}:
        return n
    return "duckdb"


def duckdb_path() -> str:
    return (os.getenv("BENCH_DUCKDB_PATH") or "").strip() or ":memory:"


def seed_rows() -> int:
    return max(0, _env_int("BENCH_SEED_ROWS", 50_000))


def query_timeout_s() -> float | None:
    v = _env_float("BENCH_QUERY_TIMEOUT_S")
    return v if v is not None and v > 0 else None


def min_zoom_override() -> float | None:
    return _env_float("BENCH_MIN_ZOOM")


def rpc_url() -> str:
    return (os.getenv("BENCH_RPC_URL") or "").strip().rstrip("/")


def rpc_key() -> str:
    return (os.getenv("BENCH_RPC_KEY") or "").strip()


def rpc_function() -> str:
    return (os.getenv("BENCH_RPC_FUNCTION") or "query_bbox").strip() or "query_bbox"


def telemetry_enabled() -> bool:
    return _env_flag("BENCH_TELEMETRY", True)


def telemetry_path() -> str:
    # In-memory unless explicitly pointed at a file: timings don't survive restarts.
    return (os.getenv("BENCH_TELEMETRY_PATH") or "").strip() or ":memory:"
