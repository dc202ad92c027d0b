from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from geo.aoi import BBox
from geo.tiles import clamp_lat, view_bounds

MIN_ZOOM = 0.0
MAX_ZOOM = 22.0


@dataclass(frozen=True)
class ViewState:
    center_lat: float
    center_lng: float
    zoom: float

    def as_dict(self) -> dict:
        return {
            "center": {"lat": self.center_lat, "lng": self.center_lng},
            "zoom": self.zoom,
        }


MoveListener = Callable[["MapView"], None]


class MapView:
    """
    Headless map viewport (center + zoom over a fixed pixel size).

    `set_view` fires move listeners synchronously, like a slippy-map `move` event.
    Setting an identical view is a no-op and fires nothing.
    """

    def __init__(
        self,
        name: str,
        *,
        center: tuple[float, float],
        zoom: float,
        width: int = 900,
        height: int = 600,
    ):
        self.name = name
        self.width = int(width)
        self.height = int(height)
        self._state = _normalize(center[0], center[1], zoom)
        self._listeners: list[MoveListener] = []
        self.last_animate: bool | None = None

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def center(self) -> tuple[float, float]:
        return self._state.center_lat, self._state.center_lng

    @property
    def zoom(self) -> float:
        return self._state.zoom

    def on_move(self, listener: MoveListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _off() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _off

    def set_view(
        self, center: tuple[float, float], zoom: float, *, animate: bool = True
    ) -> bool:
        new_state = _normalize(center[0], center[1], zoom)
        if new_state == self._state:
            return False
        self._state = new_state
        self.last_animate = animate
        for listener in list(self._listeners):
            listener(self)
        return True

    def pan_to(self, lat: float, lng: float) -> bool:
        return self.set_view((lat, lng), self.zoom)

    def zoom_to(self, zoom: float) -> bool:
        return self.set_view(self.center, zoom)

    def bounds(self) -> BBox:
        return view_bounds(
            self._state.center_lat,
            self._state.center_lng,
            self._state.zoom,
            width=self.width,
            height=self.height,
        )


def _normalize(lat: float, lng: float, zoom: float) -> ViewState:
    lng = ((float(lng) + 180.0) % 360.0) - 180.0
    return ViewState(
        center_lat=clamp_lat(lat),
        center_lng=lng,
        zoom=max(MIN_ZOOM, min(MAX_ZOOM, float(zoom))),
    )
