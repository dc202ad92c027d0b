from __future__ import annotations


class BenchmarkError(Exception):
    """Base class for comparison run errors surfaced to the caller."""


class PreconditionRejected(BenchmarkError):
    """
    The run was refused before it started (e.g. the map is zoomed out too far).

    `advisory` is the user-facing text.
    """

    def __init__(self, advisory: str):
        super().__init__(advisory)
        self.advisory = advisory


class RunInProgress(BenchmarkError):
    def __init__(self, state: str):
        super().__init__(f"A comparison run is already in progress (state={state})")
        self.state = state
