import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from api.errors import RunInProgressException, ZoomTooLowException
from api.session import get_session
from benchmark.errors import PreconditionRejected, RunInProgress
from benchmark.types import SideIdentity
from telemetry.singleton import get_store

logger = logging.getLogger(__name__)

app = FastAPI(title="Spatial index bbox benchmark")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ApiCenter(BaseModel):
    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)


class ApiViewUpdate(BaseModel):
    center: ApiCenter | None = None
    zoom: float | None = Field(default=None, ge=0.0, le=22.0)


def _views_payload() -> dict:
    session = get_session()
    out = {}
    for side, view in session.views.items():
        out[side.value] = {**view.state.as_dict(), "bounds": view.bounds().as_dict()}
    return out


def _state_payload() -> dict:
    session = get_session()
    return {
        "state": session.orchestrator.state.value,
        "canRun": session.orchestrator.can_run(),
        "display": session.display.as_dict(),
        "score": session.scoreboard.score.as_dict(),
    }


@app.get("/config")
async def get_config():
    cfg = get_session().config
    return {
        "id": cfg.id,
        "title": cfg.title,
        "map": cfg.map.model_dump(),
        "minZoomForRun": cfg.minZoomForRun,
        "arms": [
            {"side": a.side.value, "title": a.title, "kind": a.kind, "style": a.style}
            for a in cfg.arms
        ],
    }


@app.get("/views")
async def get_views():
    return _views_payload()


@app.post("/views/{side}")
async def move_view(side: SideIdentity, body: ApiViewUpdate):
    view = get_session().views[side]
    center = (body.center.lat, body.center.lng) if body.center is not None else view.center
    zoom = body.zoom if body.zoom is not None else view.zoom
    # The mirror moves the other view.
    view.set_view(center, zoom)
    return _views_payload()


@app.post("/compare")
async def compare():
    session = get_session()
    try:
        run = await session.orchestrator.run()
    except PreconditionRejected as e:
        raise ZoomTooLowException(e.advisory)
    except RunInProgress as e:
        raise RunInProgressException(e.state)
    return {
        "run": run.as_dict(),
        **_state_payload(),
        "plots": session.renderer.plots(),
    }


@app.get("/display")
async def get_display():
    return _state_payload()


@app.get("/score")
async def get_score():
    return get_session().scoreboard.score.as_dict()


@app.post("/score/reset")
async def reset_score():
    return get_session().scoreboard.reset().as_dict()


@app.get("/telemetry/summary")
def telemetry_summary(sinceMs: int | None = None):
    store = get_store()
    if store is None:
        return {"enabled": False, "sides": []}
    store.flush(timeout_s=1.0)
    return {"enabled": True, "sides": store.summary(since_ms=sinceMs)}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s"
    )
    uvicorn.run(app, host="127.0.0.1", port=8000)
