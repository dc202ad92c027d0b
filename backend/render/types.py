from __future__ import annotations

from typing import Protocol, Sequence

from benchmark.types import SideIdentity
from features.types import Feature


class ResultRenderer(Protocol):
    """
    Paints one arm's result set. Both calls must be idempotent.
    """

    def render(self, side: SideIdentity, features: Sequence[Feature]) -> None: ...

    def clear(self, side: SideIdentity) -> None: ...
