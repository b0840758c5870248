"""Per-request bookkeeping while a create-request is in flight."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from basquiat.contracts.enums import FlightState
from basquiat.contracts.errors import PipelineInvariantError
from basquiat.contracts.member import CreateRequest

# Allowed transitions; anything else is a pipeline bug.
_TRANSITIONS: dict[FlightState, frozenset[FlightState]] = {
    FlightState.ADMITTED: frozenset({FlightState.DISPATCHED}),
    FlightState.DISPATCHED: frozenset({FlightState.COMPLETED, FlightState.FAILED}),
    FlightState.COMPLETED: frozenset(),
    FlightState.FAILED: frozenset(),
}


@dataclass(slots=True)
class FlightRecord:
    """Ephemeral state of one admitted request.

    Owned by the dispatcher until dispatch, then by the aggregator.
    Timestamps are time.perf_counter() values.
    """

    request: CreateRequest
    admitted_at: float = field(default_factory=time.perf_counter)
    state: FlightState = FlightState.ADMITTED
    dispatched_at: float | None = None
    settled_at: float | None = None

    @property
    def member_id(self) -> str:
        return self.request.member_id

    @property
    def latency_ms(self) -> float | None:
        """Milliseconds from dispatch to settlement, once settled."""
        if self.dispatched_at is None or self.settled_at is None:
            return None
        return (self.settled_at - self.dispatched_at) * 1000

    def _advance(self, target: FlightState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise PipelineInvariantError(f"Illegal flight transition for {self.member_id}: {self.state} -> {target}")
        self.state = target

    def mark_dispatched(self) -> None:
        self._advance(FlightState.DISPATCHED)
        self.dispatched_at = time.perf_counter()

    def mark_completed(self) -> None:
        self._advance(FlightState.COMPLETED)
        self.settled_at = time.perf_counter()

    def mark_failed(self) -> None:
        self._advance(FlightState.FAILED)
        self.settled_at = time.perf_counter()
