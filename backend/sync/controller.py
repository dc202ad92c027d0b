from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from geo.aoi import Viewport
from sync.map_view import MapView

logger = logging.getLogger(__name__)


class PropagationState(str, Enum):
    idle = "idle"
    propagating = "propagating"


class Mirror:
    """
    One-directional follow: when `source` moves, `target` jumps to the same
    center/zoom without animation.

    A move from `source` that arrives while this mirror is already propagating
    is dropped (not queued); that is what stops A->B->A recursion.
    """

    def __init__(self, source: MapView, target: MapView):
        self.source = source
        self.target = target
        self.state = PropagationState.idle
        self.propagations = 0
        self.dropped = 0
        self._off: Callable[[], None] | None = source.on_move(self._on_source_move)

    def _on_source_move(self, view: MapView) -> None:
        if self.state is PropagationState.propagating:
            self.dropped += 1
            return
        self.state = PropagationState.propagating
        try:
            self.propagations += 1
            self.target.set_view(view.center, view.zoom, animate=False)
        finally:
            self.state = PropagationState.idle

    def detach(self) -> None:
        if self._off is not None:
            self._off()
            self._off = None


class ViewSyncController:
    """
    Keeps two map views mirrored (one Mirror per direction) and exposes the
    viewport the comparison runs against.
    """

    def __init__(self, primary: MapView, secondary: MapView):
        self.primary = primary
        self.secondary = secondary
        # Start consistent; the mirrors only react to later moves.
        secondary.set_view(primary.center, primary.zoom, animate=False)
        self.mirrors = (
            self.mirror(primary, secondary),
            self.mirror(secondary, primary),
        )

    @staticmethod
    def mirror(source: MapView, target: MapView) -> Mirror:
        logger.debug("Mirroring view %s -> %s", source.name, target.name)
        return Mirror(source, target)

    def views(self) -> tuple[MapView, MapView]:
        return self.primary, self.secondary

    def current_zoom(self) -> float:
        return self.primary.zoom

    def current_viewport(self) -> Viewport:
        return Viewport.from_bbox(self.primary.bounds(), zoom_level=self.primary.zoom)

    def close(self) -> None:
        for m in self.mirrors:
            m.detach()
