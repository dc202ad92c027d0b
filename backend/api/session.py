from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass

from benchmark.display import ComparisonDisplay
from benchmark.orchestrator import ComparisonOrchestrator
from benchmark.scoreboard import Scoreboard
from benchmark.types import SideIdentity
from config import env
from config.registry import get_config
from config.types import BenchmarkConfig
from gateway.duckdb import DuckDBQueryGateway
from gateway.rpc import RpcQueryGateway
from gateway.types import QueryGateway
from render.plot import PlotlyResultRenderer
from sync.controller import ViewSyncController
from sync.map_view import MapView
from telemetry.singleton import get_store

logger = logging.getLogger(__name__)


@dataclass
class BenchmarkSession:
    """
    Everything one process needs to run comparisons: two mirrored views,
    a gateway, the score and the display.
    """

    config: BenchmarkConfig
    views: dict[SideIdentity, MapView]
    sync: ViewSyncController
    gateway: QueryGateway
    scoreboard: Scoreboard
    display: ComparisonDisplay
    renderer: PlotlyResultRenderer
    orchestrator: ComparisonOrchestrator

    def close(self) -> None:
        self.sync.close()
        close = getattr(self.gateway, "close", None)
        if callable(close):
            close()


def build_gateway(cfg: BenchmarkConfig, name: str | None = None) -> QueryGateway:
    name = name or env.gateway_name()
    timeout_s = env.query_timeout_s() or cfg.queryTimeoutS
    if name == "rpc":
        return RpcQueryGateway(
            cfg.arms,
            url=env.rpc_url(),
            key=env.rpc_key(),
            function=env.rpc_function(),
            timeout_s=timeout_s,
        )
    return DuckDBQueryGateway(
        cfg.arms,
        path=env.duckdb_path(),
        timeout_s=timeout_s,
        seed_rows=env.seed_rows(),
    )


def build_session(
    cfg: BenchmarkConfig | None = None,
    *,
    gateway: QueryGateway | None = None,
    rng: random.Random | None = None,
) -> BenchmarkSession:
    cfg = cfg or get_config()
    center = (cfg.map.center.lat, cfg.map.center.lng)
    views = {
        side: MapView(
            side.value,
            center=center,
            zoom=cfg.map.zoom,
            width=cfg.map.width,
            height=cfg.map.height,
        )
        for side in SideIdentity
    }
    # Views are mirrored, so either one could be primary.
    sync = ViewSyncController(views[SideIdentity.with_index], views[SideIdentity.without_index])
    arms = {a.side: a for a in cfg.arms}
    gateway = gateway or build_gateway(cfg)
    scoreboard = Scoreboard()
    display = ComparisonDisplay()
    renderer = PlotlyResultRenderer(arms, views)
    orchestrator = ComparisonOrchestrator(
        views=sync,
        gateway=gateway,
        scoreboard=scoreboard,
        display=display,
        renderer=renderer,
        min_zoom_for_run=cfg.minZoomForRun,
        rng=rng,
        telemetry=get_store(),
    )
    logger.info(
        "Benchmark session ready: %s (gateway=%s, minZoom=%g)",
        cfg.id,
        type(gateway).__name__,
        cfg.minZoomForRun,
    )
    return BenchmarkSession(
        config=cfg,
        views=views,
        sync=sync,
        gateway=gateway,
        scoreboard=scoreboard,
        display=display,
        renderer=renderer,
        orchestrator=orchestrator,
    )


_SESSION: BenchmarkSession | None = None
_SESSION_LOCK = threading.RLock()


def get_session() -> BenchmarkSession:
    global _SESSION
    with _SESSION_LOCK:
        if _SESSION is None:
            _SESSION = build_session()
        return _SESSION


def set_session(session: BenchmarkSession) -> None:
    global _SESSION
    with _SESSION_LOCK:
        if _SESSION is not None and _SESSION is not session:
            _SESSION.close()
        _SESSION = session


def reset_session() -> None:
    global _SESSION
    with _SESSION_LOCK:
        if _SESSION is not None:
            _SESSION.close()
        _SESSION = None
