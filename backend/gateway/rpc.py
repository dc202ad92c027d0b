from __future__ import annotations

import logging
from typing import Any, Iterable

import httpx

from benchmark.types import Failure, FailureKind, QueryOutcome, QueryResult, SideIdentity, Success
from config.types import ArmConfig
from features.types import features_from_rows
from gateway.types import QueryGateway, Stopwatch
from geo.aoi import Viewport

logger = logging.getLogger(__name__)

# Postgres SQLSTATE for "canceling statement due to statement timeout".
PG_STATEMENT_TIMEOUT = "57014"


def bbox_payload(table: str, viewport: Viewport) -> dict[str, Any]:
    b = viewport.bbox()
    return {
        "table_name": table,
        "min_lng": b.min_lon,
        "min_lat": b.min_lat,
        "max_lng": b.max_lon,
        "max_lat": b.max_lat,
    }


def _server_time(rows: list[dict[str, Any]], field: str) -> float | None:
    for r in rows:
        v = r.get(field) if isinstance(r, dict) else None
        if v is None:
            continue
        try:
            return float(v)
        except (TypeError, ValueError):
            continue
    return None


def classify_error_response(resp: httpx.Response) -> Failure:
    try:
        body = resp.json()
    except ValueError:
        body = None
    code = str(body.get("code") or "") if isinstance(body, dict) else ""
    message = (
        str(body.get("message") or "") if isinstance(body, dict) else ""
    ) or resp.text[:200] or f"HTTP {resp.status_code}"
    if code == PG_STATEMENT_TIMEOUT or resp.status_code == 504:
        return Failure(FailureKind.timeout, message)
    return Failure(FailureKind.remote_error, f"HTTP {resp.status_code}: {message}")


class RpcQueryGateway(QueryGateway):
    """
    Calls the PostGIS bbox RPC exposed through PostgREST (`/rest/v1/rpc/<function>`).

    The RPC takes `table_name` + the bbox corners and returns rows; rows may carry
    the server-side execution time in `server_time_field`.
    """

    def __init__(
        self,
        arms: Iterable[ArmConfig],
        *,
        url: str,
        key: str,
        function: str = "query_bbox",
        timeout_s: float = 8.0,
        server_time_field: str = "execution_time_ms",
        client: httpx.AsyncClient | None = None,
    ):
        self.arms: dict[SideIdentity, ArmConfig] = {a.side: a for a in arms}
        self.url = url.rstrip("/")
        self.key = key
        self.function = function
        self.timeout_s = float(timeout_s)
        self.server_time_field = server_time_field
        self._client = client
        if not self.url:
            logger.warning("BENCH_RPC_URL is not set; RPC queries will fail.")
        if not self.key:
            logger.warning("BENCH_RPC_KEY is not set; RPC queries may be rejected.")

    def _endpoint(self) -> str:
        return f"{self.url}/rest/v1/rpc/{self.function}"

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
        }

    async def _post(self, client: httpx.AsyncClient, payload: dict[str, Any]) -> httpx.Response:
        return await client.post(
            self._endpoint(),
            json=payload,
            headers=self._headers(),
            timeout=self.timeout_s,
        )

    async def execute(self, side: SideIdentity, viewport: Viewport) -> QueryOutcome:
        arm = self.arms[side]
        payload = bbox_payload(arm.table, viewport)
        watch = Stopwatch()
        try:
            if self._client is not None:
                resp = await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient() as client:
                    resp = await self._post(client, payload)
        except httpx.TimeoutException as e:
            logger.warning("RPC %s on %s timed out: %s", self.function, arm.table, e)
            return Failure(FailureKind.timeout, f"Request timed out after {self.timeout_s:g}s")
        except httpx.HTTPError as e:
            logger.warning("RPC %s on %s failed: %s", self.function, arm.table, e)
            return Failure(FailureKind.remote_error, f"{type(e).__name__}: {e}")
        client_ms = watch.elapsed_ms()

        if resp.status_code >= 400:
            failure = classify_error_response(resp)
            logger.warning("RPC %s on %s returned %s", self.function, arm.table, failure)
            return failure

        try:
            data = resp.json()
            server_ms: float | None = None
            if isinstance(data, dict):
                server_ms = _server_time([data], self.server_time_field)
                data = data.get("rows") or data.get("data") or []
            rows = list(data or [])
            if server_ms is None:
                server_ms = _server_time(rows, self.server_time_field)
            feats = features_from_rows(rows, kind=arm.kind)
        except (ValueError, TypeError, AttributeError) as e:
            return Failure(FailureKind.remote_error, f"Malformed RPC response: {e}")

        return Success(
            QueryResult(
                rows=feats,
                client_elapsed_ms=client_ms,
                server_elapsed_ms=server_ms,
                is_polygonal=arm.kind == "polygons",
            )
        )
