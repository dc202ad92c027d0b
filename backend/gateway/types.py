from __future__ import annotations

import time
from typing import Protocol

from benchmark.types import QueryOutcome, SideIdentity
from geo.aoi import Viewport


class QueryGateway(Protocol):
    """
    Data gateway interface.

    - DuckDBQueryGateway: queries local DuckDB tables in a worker thread
    - RpcQueryGateway: calls the bbox RPC over HTTP

    Contract: single attempt, no retry; never raises for backend failures
    (returns `Failure` instead); `client_elapsed_ms` spans the whole call.
    """

    async def execute(self, side: SideIdentity, viewport: Viewport) -> QueryOutcome: ...


class Stopwatch:
    def __init__(self) -> None:
        self._t0 = time.perf_counter()

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._t0) * 1000.0
