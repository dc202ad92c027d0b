from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from benchmark.types import Failure, FailureKind, QueryOutcome, SideIdentity, Success

Marking = Literal["loading", "faster", "slower"]

PLACEHOLDER = "--"

MAX_ADVISORIES = 5


def format_ms(v: float) -> str:
    return f"{float(v):.2f} ms"


@dataclass
class SideDisplay:
    client_time: str = PLACEHOLDER
    server_time: str = PLACEHOLDER
    count: str = PLACEHOLDER
    marking: Marking | None = None

    def as_dict(self) -> dict[str, str | None]:
        return {
            "clientTime": self.client_time,
            "serverTime": self.server_time,
            "count": self.count,
            "marking": self.marking,
        }


@dataclass
class ComparisonDisplay:
    """
    Text shown per arm plus user-facing advisories.

    Derived state only; never persisted.
    """

    sides: dict[SideIdentity, SideDisplay] = field(
        default_factory=lambda: {s: SideDisplay() for s in SideIdentity}
    )
    advisories: list[str] = field(default_factory=list)

    def side(self, side: SideIdentity) -> SideDisplay:
        return self.sides[side]

    def advise(self, message: str) -> None:
        self.advisories.append(message)
        del self.advisories[:-MAX_ADVISORIES]

    def reset_for_run(self) -> None:
        """
        Put both arms into the loading state and drop advisories from earlier runs.
        """
        self.advisories.clear()
        for side in SideIdentity:
            self.sides[side] = SideDisplay(marking="loading")

    def show_outcome(self, side: SideIdentity, outcome: QueryOutcome) -> None:
        d = self.sides[side]
        if isinstance(outcome, Success):
            r = outcome.result
            d.client_time = format_ms(r.client_elapsed_ms)
            d.server_time = (
                format_ms(r.server_elapsed_ms)
                if r.server_elapsed_ms is not None
                else "N/A"
            )
            d.count = str(len(r.rows))
        elif isinstance(outcome, Failure):
            d.client_time = PLACEHOLDER
            d.server_time = "Timed out" if outcome.kind is FailureKind.timeout else "Error"
            d.count = PLACEHOLDER
        else:
            raise TypeError(f"Unsupported outcome: {type(outcome).__name__}")

    def mark(self, faster: SideIdentity | None) -> None:
        """
        Clear the loading state and highlight the faster arm (None = no highlight).
        """
        for side in SideIdentity:
            self.sides[side].marking = None
        if faster is None:
            return
        self.sides[faster].marking = "faster"
        self.sides[faster.other].marking = "slower"

    def as_dict(self) -> dict:
        return {
            "sides": {s.value: d.as_dict() for s, d in self.sides.items()},
            "advisories": list(self.advisories),
        }
