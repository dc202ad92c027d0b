from __future__ import annotations

import asyncio
import random

import pytest

from benchmark.display import MAX_ADVISORIES
from benchmark.errors import PreconditionRejected, RunInProgress
from benchmark.orchestrator import UNEXPECTED_ERROR_ADVISORY, ComparisonOrchestrator
from benchmark.scoreboard import Score
from benchmark.types import RunState, SideIdentity
from fakes import (
    RecordingRenderer,
    ScriptedGateway,
    make_orchestrator,
    ok,
    remote_error,
    timed_out,
)

WITH = SideIdentity.with_index
WITHOUT = SideIdentity.without_index


def test_faster_arm_scores_and_is_highlighted():
    gw = ScriptedGateway({WITHOUT: ok(12.4), WITH: ok(3.1)})
    orch = make_orchestrator(gw)

    run = asyncio.run(orch.run())

    assert run.winner is WITH
    assert run.scored
    assert orch.scoreboard.score == Score(with_index_wins=1, without_index_wins=0, ties=0)
    assert orch.display.side(WITH).marking == "faster"
    assert orch.display.side(WITHOUT).marking == "slower"
    assert orch.display.side(WITH).server_time == "3.10 ms"
    assert orch.display.side(WITHOUT).server_time == "12.40 ms"
    assert orch.display.side(WITH).count == "3"
    assert orch.state is RunState.idle


def test_timed_out_arm_loses_to_finite_arm():
    gw = ScriptedGateway({WITHOUT: timed_out(), WITH: ok(9.0)})
    orch = make_orchestrator(gw)

    run = asyncio.run(orch.run())

    assert run.winner is WITH
    assert orch.display.side(WITHOUT).server_time == "Timed out"
    assert orch.display.side(WITHOUT).count == "--"
    assert orch.display.side(WITH).server_time == "9.00 ms"
    assert orch.display.side(WITH).marking == "faster"
    assert orch.scoreboard.score == Score(with_index_wins=1)
    assert orch.display.advisories == []


def test_remote_error_arm_shows_error_text():
    gw = ScriptedGateway({WITHOUT: ok(40.0), WITH: remote_error()})
    orch = make_orchestrator(gw)

    run = asyncio.run(orch.run())

    assert run.winner is WITHOUT
    assert orch.display.side(WITH).server_time == "Error"
    assert orch.scoreboard.score == Score(without_index_wins=1)


def test_both_arms_failing_records_no_score():
    gw = ScriptedGateway({WITHOUT: timed_out(), WITH: remote_error()})
    orch = make_orchestrator(gw)

    run = asyncio.run(orch.run())

    assert not run.scored
    assert run.winner is None
    assert run.decision is None
    assert orch.scoreboard.score == Score()
    assert orch.display.side(WITHOUT).server_time == "Timed out"
    assert orch.display.side(WITH).server_time == "Error"
    assert orch.display.side(WITH).marking is None
    assert orch.state is RunState.idle


def test_missing_server_times_are_not_scored():
    gw = ScriptedGateway({WITHOUT: ok(None), WITH: ok(None)})
    orch = make_orchestrator(gw)

    run = asyncio.run(orch.run())

    assert not run.scored
    assert orch.scoreboard.score == Score()
    assert orch.display.side(WITH).server_time == "N/A"


def test_missing_server_time_loses_to_finite_arm():
    gw = ScriptedGateway({WITHOUT: ok(None), WITH: ok(7.0)})
    orch = make_orchestrator(gw)

    run = asyncio.run(orch.run())

    assert run.scored
    assert run.winner is WITH
    assert orch.scoreboard.score == Score(with_index_wins=1)
    assert orch.display.side(WITHOUT).server_time == "N/A"
    assert orch.display.side(WITHOUT).count == "3"
    assert orch.display.side(WITHOUT).marking == "slower"
    assert orch.display.side(WITH).marking == "faster"


def test_equal_times_are_a_tie_without_highlight():
    gw = ScriptedGateway({WITHOUT: ok(5.0), WITH: ok(5.0)})
    orch = make_orchestrator(gw)

    run = asyncio.run(orch.run())

    assert run.scored
    assert run.winner is None
    assert orch.scoreboard.score == Score(ties=1)
    assert orch.display.side(WITH).marking is None
    assert orch.display.side(WITHOUT).marking is None


def test_low_zoom_is_rejected_with_one_advisory_and_no_mutation():
    gw = ScriptedGateway({WITHOUT: ok(1.0), WITH: ok(2.0)})
    orch = make_orchestrator(gw, zoom=5.0, min_zoom=6.0)
    before = orch.display.as_dict()

    with pytest.raises(PreconditionRejected) as exc:
        asyncio.run(orch.run())

    assert "zoom level 6+" in exc.value.advisory
    assert orch.display.advisories == [exc.value.advisory]
    assert orch.display.as_dict()["sides"] == before["sides"]
    assert orch.scoreboard.score == Score()
    assert gw.calls == []
    assert orch.state is RunState.idle


def test_advisory_from_rejected_run_is_dropped_by_next_run():
    gw = ScriptedGateway({WITHOUT: ok(3.0), WITH: ok(1.0)})
    orch = make_orchestrator(gw, zoom=5.0, min_zoom=6.0)
    with pytest.raises(PreconditionRejected):
        asyncio.run(orch.run())
    assert len(orch.display.advisories) == 1

    orch.views.primary.set_view(orch.views.primary.center, 8.0)
    asyncio.run(orch.run())

    assert orch.display.advisories == []
    assert orch.display.as_dict()["advisories"] == []


def test_repeated_rejections_keep_a_bounded_advisory_list():
    orch = make_orchestrator(ScriptedGateway({}), zoom=3.0, min_zoom=6.0)
    for _ in range(MAX_ADVISORIES * 3):
        with pytest.raises(PreconditionRejected):
            asyncio.run(orch.run())

    assert len(orch.display.advisories) == MAX_ADVISORIES


def test_second_run_is_rejected_while_one_is_in_flight():
    async def scenario():
        gate = asyncio.Event()
        gw = ScriptedGateway({WITHOUT: ok(2.0), WITH: ok(1.0)}, gate=gate)
        orch = make_orchestrator(gw)

        first = asyncio.create_task(orch.run())
        await asyncio.sleep(0)
        assert orch.state is RunState.running
        assert not orch.can_run()

        with pytest.raises(RunInProgress):
            await orch.run()
        assert orch.scoreboard.score == Score()
        assert len(gw.calls) == 1

        gate.set()
        run = await first
        return orch, run

    orch, run = asyncio.run(scenario())
    assert run.winner is WITH
    assert orch.scoreboard.score == Score(with_index_wins=1)
    assert orch.can_run()


def test_arms_run_sequentially_on_one_snapshot():
    orch_ref: list[ComparisonOrchestrator] = []
    seen_display: list[dict] = []

    def on_call(side, viewport):
        orch = orch_ref[0]
        seen_display.append(orch.display.as_dict())
        # Panning mid-run must not change what the second arm queries.
        orch.views.primary.set_view((45.0, -100.0), 12.0)

    gw = ScriptedGateway({WITHOUT: ok(8.0, rows=5), WITH: ok(2.0, rows=2)}, on_call=on_call)
    orch = make_orchestrator(gw)
    orch_ref.append(orch)

    run = asyncio.run(orch.run())

    assert gw.max_active == 1
    assert [c[0] for c in gw.calls] == list(run.ordered_sides)
    first_vp, second_vp = gw.calls[0][1], gw.calls[1][1]
    assert first_vp == second_vp
    assert first_vp.zoom_level == 8.0

    # The first arm's result is on display before the second arm starts.
    first_side = run.ordered_sides[0]
    at_second_call = seen_display[1]["sides"][first_side.value]
    assert at_second_call["count"] == ("5" if first_side is WITHOUT else "2")
    assert seen_display[0]["sides"][first_side.value]["count"] == "--"


def test_order_is_random_per_run():
    orch = make_orchestrator(ScriptedGateway({}), seed=1234)
    firsts = [orch.choose_order()[0] for _ in range(400)]
    n_with = sum(1 for s in firsts if s is WITH)
    assert 140 < n_with < 260
    assert set(orch.choose_order()) == {WITH, WITHOUT}


def test_order_follows_rng_and_both_orders_happen():
    gw = ScriptedGateway({WITHOUT: ok(3.0), WITH: ok(1.0)})
    orch = make_orchestrator(gw, seed=99)
    orders = set()
    for _ in range(20):
        orders.add(asyncio.run(orch.run()).ordered_sides)
    assert orders == {(WITH, WITHOUT), (WITHOUT, WITH)}
    assert orch.scoreboard.score == Score(with_index_wins=20)


def test_renderer_cleared_at_start_then_called_once_per_settled_arm():
    renderer = RecordingRenderer()
    gw = ScriptedGateway({WITHOUT: timed_out(), WITH: ok(1.0, rows=4)})
    orch = make_orchestrator(gw, renderer=renderer)

    asyncio.run(orch.run())

    assert sorted(renderer.calls[:2], key=str) == sorted(
        [("clear", WITH), ("clear", WITHOUT)], key=str
    )
    assert sorted(renderer.calls[2:], key=str) == sorted(
        [("render", WITH, 4), ("clear", WITHOUT)], key=str
    )


def test_previous_results_are_cleared_when_a_run_is_cancelled():
    async def scenario():
        renderer = RecordingRenderer()
        gate = asyncio.Event()
        gw = ScriptedGateway({WITHOUT: ok(2.0), WITH: ok(1.0)})
        orch = make_orchestrator(gw, renderer=renderer)
        await orch.run()

        renderer.calls.clear()
        gw.gate = gate
        task = asyncio.create_task(orch.run())
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return renderer

    renderer = asyncio.run(scenario())
    assert sorted(renderer.calls, key=str) == sorted(
        [("clear", WITH), ("clear", WITHOUT)], key=str
    )


def test_gateway_exception_is_contained_as_remote_error():
    gw = ScriptedGateway({WITHOUT: RuntimeError("socket closed"), WITH: ok(4.0)})
    orch = make_orchestrator(gw)

    run = asyncio.run(orch.run())

    assert run.winner is WITH
    assert orch.display.side(WITHOUT).server_time == "Error"
    assert orch.display.advisories == []


def test_unexpected_render_failure_gives_one_advisory_and_returns_to_idle():
    gw = ScriptedGateway({WITHOUT: ok(4.0), WITH: ok(2.0)})
    orch = make_orchestrator(gw, renderer=RecordingRenderer(fail_on_render=True))

    asyncio.run(orch.run())

    assert orch.display.advisories == [UNEXPECTED_ERROR_ADVISORY]
    assert orch.state is RunState.idle
    assert orch.scoreboard.score == Score()


def test_cancelled_run_returns_to_idle_without_scoring():
    async def scenario():
        gw = ScriptedGateway({WITHOUT: ok(2.0), WITH: ok(1.0)}, gate=asyncio.Event())
        orch = make_orchestrator(gw)
        task = asyncio.create_task(orch.run())
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return orch

    orch = asyncio.run(scenario())
    assert orch.state is RunState.idle
    assert orch.scoreboard.score == Score()


def test_reset_between_runs():
    gw = ScriptedGateway({WITHOUT: ok(3.0), WITH: ok(1.0)})
    orch = make_orchestrator(gw, seed=random.randint(0, 10_000))
    asyncio.run(orch.run())
    asyncio.run(orch.run())
    assert orch.scoreboard.score.with_index_wins == 2

    orch.scoreboard.reset()
    assert orch.scoreboard.score == Score()
