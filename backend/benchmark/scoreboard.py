from __future__ import annotations

import math
from dataclasses import dataclass, replace

from benchmark.types import Decision, SideIdentity


@dataclass(frozen=True)
class Score:
    with_index_wins: int = 0
    without_index_wins: int = 0
    ties: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "withIndexWins": self.with_index_wins,
            "withoutIndexWins": self.without_index_wins,
            "ties": self.ties,
        }


def decide(time_a: float, time_b: float) -> Decision | None:
    """
    Compare two server times; lower wins.

    `DID_NOT_FINISH` (inf) loses against any finite time. Two non-finite times
    yield None: the caller must not score the run.
    """
    a = float(time_a)
    b = float(time_b)
    if math.isnan(a) or math.isnan(b):
        raise ValueError("Scoring times must not be NaN")
    if math.isinf(a) and math.isinf(b):
        return None
    if a < b:
        return Decision.a_wins
    if b < a:
        return Decision.b_wins
    return Decision.tie


class Scoreboard:
    """
    Owns the cumulative `Score`. The value is immutable and replaced as a whole,
    so readers always see a consistent triple.
    """

    def __init__(self, score: Score | None = None):
        self._score = score or Score()

    @property
    def score(self) -> Score:
        return self._score

    def accumulate(self, decision: Decision, *, side_a: SideIdentity) -> Score:
        """
        Count one settled run. `side_a` is the arm passed as `time_a` to `decide`.
        """
        if decision is Decision.tie:
            self._score = replace(self._score, ties=self._score.ties + 1)
            return self._score

        winner = side_a if decision is Decision.a_wins else side_a.other
        if winner is SideIdentity.with_index:
            self._score = replace(
                self._score, with_index_wins=self._score.with_index_wins + 1
            )
        else:
            self._score = replace(
                self._score, without_index_wins=self._score.without_index_wins + 1
            )
        return self._score

    def reset(self) -> Score:
        self._score = Score()
        return self._score
