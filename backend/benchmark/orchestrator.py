from __future__ import annotations

import asyncio
import logging
import random

from benchmark.display import ComparisonDisplay
from benchmark.errors import PreconditionRejected, RunInProgress
from benchmark.scoreboard import Scoreboard, decide
from benchmark.types import (
    ComparisonRun,
    Decision,
    Failure,
    FailureKind,
    QueryOutcome,
    RunState,
    SideIdentity,
    Success,
    scoring_time,
)
from gateway.types import QueryGateway
from geo.aoi import Viewport
from render.types import ResultRenderer
from sync.controller import ViewSyncController
from telemetry.store import TelemetryStore

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_ADVISORY = "Error running query. Check the server log for details."


def zoom_advisory(min_zoom: float) -> str:
    return f"Please zoom in more (zoom level {min_zoom:g}+) to avoid query timeout."


class ComparisonOrchestrator:
    """
    Drives one comparison run at a time: IDLE -> RUNNING -> SETTLING -> IDLE.

    Both arms query the same viewport snapshot, in a per-run random order, one after
    the other (never concurrently, so they don't share backend load). Each arm's
    display is updated as soon as it settles; an arm failure never aborts the other.
    """

    def __init__(
        self,
        *,
        views: ViewSyncController,
        gateway: QueryGateway,
        scoreboard: Scoreboard,
        display: ComparisonDisplay,
        renderer: ResultRenderer,
        min_zoom_for_run: float,
        rng: random.Random | None = None,
        telemetry: TelemetryStore | None = None,
    ):
        self.views = views
        self.gateway = gateway
        self.scoreboard = scoreboard
        self.display = display
        self.renderer = renderer
        self.min_zoom_for_run = float(min_zoom_for_run)
        self.telemetry = telemetry
        self._rng = rng or random.Random()
        self._state = RunState.idle

    @property
    def state(self) -> RunState:
        return self._state

    def can_run(self) -> bool:
        return self._state is RunState.idle

    def choose_order(self) -> tuple[SideIdentity, SideIdentity]:
        # Independent fair coin per run; whichever arm goes first pays the cold cache.
        if self._rng.random() < 0.5:
            return SideIdentity.without_index, SideIdentity.with_index
        return SideIdentity.with_index, SideIdentity.without_index

    def _admit(self) -> Viewport:
        """
        Synchronous gate: raises without touching any state when a run is not allowed.
        """
        if self._state is not RunState.idle:
            raise RunInProgress(self._state.value)
        zoom = self.views.current_zoom()
        if zoom < self.min_zoom_for_run:
            advisory = zoom_advisory(self.min_zoom_for_run)
            self.display.advise(advisory)
            logger.info("Run rejected at zoom %.2f (< %.2f)", zoom, self.min_zoom_for_run)
            raise PreconditionRejected(advisory)
        return self.views.current_viewport()

    async def run(self) -> ComparisonRun:
        viewport = self._admit()
        self._state = RunState.running
        run = ComparisonRun(ordered_sides=self.choose_order())
        logger.info(
            "Comparison run started: order=%s zoom=%.2f bbox=%s",
            [s.value for s in run.ordered_sides],
            viewport.zoom_level,
            viewport.bbox().as_dict(),
        )
        try:
            self.display.reset_for_run()
            for side in SideIdentity:
                self.renderer.clear(side)
            for side in run.ordered_sides:
                outcome = await self._execute_arm(side, viewport)
                run.outcomes[side] = outcome
                self._show_arm(side, outcome)

            self._state = RunState.settling
            self._settle(run)
            self._record(run, viewport)
        except asyncio.CancelledError:
            logger.info("Comparison run abandoned; pending=%s", [s.value for s in run.pending()])
            raise
        except Exception:
            logger.exception("Comparison run failed")
            self.display.advise(UNEXPECTED_ERROR_ADVISORY)
        finally:
            self._state = RunState.idle
        return run

    async def _execute_arm(self, side: SideIdentity, viewport: Viewport) -> QueryOutcome:
        try:
            outcome = await self.gateway.execute(side, viewport)
        except Exception as e:
            # Gateways should return Failure; contain the ones that don't.
            logger.exception("Gateway raised for %s", side.value)
            return Failure(FailureKind.remote_error, f"{type(e).__name__}: {e}")
        if isinstance(outcome, Failure):
            logger.warning(
                "Arm %s failed (%s): %s", side.value, outcome.kind.value, outcome.message
            )
        return outcome

    def _show_arm(self, side: SideIdentity, outcome: QueryOutcome) -> None:
        self.display.show_outcome(side, outcome)
        if isinstance(outcome, Success):
            self.renderer.render(side, outcome.result.rows)
        else:
            self.renderer.clear(side)

    def _settle(self, run: ComparisonRun) -> None:
        side_a, side_b = run.ordered_sides
        time_a = scoring_time(run.outcomes.get(side_a))
        time_b = scoring_time(run.outcomes.get(side_b))
        decision = decide(time_a, time_b)
        run.decision = decision
        if decision is None:
            logger.info("No arm reported a server time; run not scored")
            self.display.mark(None)
            return

        self.scoreboard.accumulate(decision, side_a=side_a)
        run.scored = True
        if decision is Decision.a_wins:
            run.winner = side_a
        elif decision is Decision.b_wins:
            run.winner = side_b
        self.display.mark(run.winner)
        logger.info(
            "Comparison run settled: winner=%s score=%s",
            run.winner.value if run.winner is not None else "tie",
            self.scoreboard.score.as_dict(),
        )

    def _record(self, run: ComparisonRun, viewport: Viewport) -> None:
        if self.telemetry is None:
            return
        try:
            self.telemetry.record(run, viewport)
        except Exception:
            # Telemetry is best-effort and never affects a run.
            logger.debug("Telemetry record failed", exc_info=True)
