import sys
from pathlib import Path

import pytest


# Ensure `backend/` is on sys.path so tests can import local modules
# like `benchmark.*`, `gateway.*`, and `main`.
BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    # Keep tests off real backends and files.
    monkeypatch.setenv("BENCH_TELEMETRY", "0")
    monkeypatch.setenv("BENCH_GATEWAY", "duckdb")
    monkeypatch.setenv("BENCH_SEED_ROWS", "200")
    monkeypatch.delenv("BENCH_MIN_ZOOM", raising=False)
    monkeypatch.delenv("BENCH_CONFIG_PATH", raising=False)
    yield
