from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeAlias, Union

from features.types import Feature


class SideIdentity(str, Enum):
    with_index = "with_index"
    without_index = "without_index"

    @property
    def other(self) -> "SideIdentity":
        if self is SideIdentity.with_index:
            return SideIdentity.without_index
        return SideIdentity.with_index


class FailureKind(str, Enum):
    timeout = "timeout"
    remote_error = "remote_error"


class RunState(str, Enum):
    idle = "idle"
    running = "running"
    settling = "settling"


class Decision(str, Enum):
    a_wins = "a_wins"
    b_wins = "b_wins"
    tie = "tie"


# Scoring value for an arm without a server time; slower than any finite time.
DID_NOT_FINISH = math.inf


@dataclass(frozen=True)
class QueryResult:
    rows: tuple[Feature, ...]
    client_elapsed_ms: float
    # None when the backend did not report timing (still a success).
    server_elapsed_ms: float | None
    is_polygonal: bool


@dataclass(frozen=True)
class Success:
    result: QueryResult


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str


QueryOutcome: TypeAlias = Union[Success, Failure]


def scoring_time(outcome: QueryOutcome | None) -> float:
    if isinstance(outcome, Success) and outcome.result.server_elapsed_ms is not None:
        return float(outcome.result.server_elapsed_ms)
    return DID_NOT_FINISH


@dataclass
class ComparisonRun:
    """
    One user-triggered comparison. Lives for the duration of a single run.
    """

    ordered_sides: tuple[SideIdentity, SideIdentity]
    outcomes: dict[SideIdentity, QueryOutcome] = field(default_factory=dict)
    winner: SideIdentity | None = None
    decision: Decision | None = None
    scored: bool = False

    def pending(self) -> list[SideIdentity]:
        return [s for s in self.ordered_sides if s not in self.outcomes]

    def settled(self) -> bool:
        return not self.pending()

    def as_dict(self) -> dict:
        out: dict = {
            "order": [s.value for s in self.ordered_sides],
            "scored": self.scored,
            "winner": self.winner.value if self.winner is not None else None,
            "tie": self.decision is Decision.tie,
            "outcomes": {},
        }
        for side, outcome in self.outcomes.items():
            if isinstance(outcome, Success):
                r = outcome.result
                out["outcomes"][side.value] = {
                    "status": "ok",
                    "rows": len(r.rows),
                    "clientElapsedMs": round(r.client_elapsed_ms, 2),
                    "serverElapsedMs": round(r.server_elapsed_ms, 2)
                    if r.server_elapsed_ms is not None
                    else None,
                    "isPolygonal": r.is_polygonal,
                }
            else:
                out["outcomes"][side.value] = {
                    "status": outcome.kind.value,
                    "message": outcome.message,
                }
        return out
