from __future__ import annotations

from typing import Any, Sequence

from benchmark.types import SideIdentity
from config.types import ArmConfig
from features.types import Feature, PointFeature, PolygonFeature
from render.traces import trace_points, trace_polygons
from render.types import ResultRenderer
from sync.map_view import MapView


class PlotlyResultRenderer(ResultRenderer):
    """
    Keeps one Plotly `scattermapbox` payload per arm.

    This is the only place that looks at the point/polygon split of `Feature`.
    """

    def __init__(self, arms: dict[SideIdentity, ArmConfig], views: dict[SideIdentity, MapView]):
        self.arms = arms
        self.views = views
        self._traces: dict[SideIdentity, list[dict[str, Any]]] = {s: [] for s in SideIdentity}

    def render(self, side: SideIdentity, features: Sequence[Feature]) -> None:
        arm = self.arms[side]
        points = [f for f in features if isinstance(f, PointFeature)]
        polygons = [f for f in features if isinstance(f, PolygonFeature)]
        traces: list[dict[str, Any]] = []
        if polygons:
            traces.append(trace_polygons(polygons, title=arm.title, style=arm.style))
        if points:
            traces.append(trace_points(points, title=arm.title, style=arm.style))
        self._traces[side] = traces

    def clear(self, side: SideIdentity) -> None:
        self._traces[side] = []

    def plot(self, side: SideIdentity) -> dict[str, Any]:
        view = self.views[side]
        lat, lng = view.center
        return {
            "data": list(self._traces[side]),
            "layout": {
                "title": {"text": self.arms[side].title},
                "mapbox": {
                    "center": {"lat": lat, "lon": lng},
                    "zoom": view.zoom,
                    "style": "open-street-map",
                },
                "margin": {"l": 0, "r": 0, "t": 32, "b": 0},
                "showlegend": False,
                "meta": {"side": side.value},
            },
        }

    def plots(self) -> dict[str, dict[str, Any]]:
        return {s.value: self.plot(s) for s in SideIdentity}
