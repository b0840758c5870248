"""Tests for FlightRecord state transitions."""

import pytest

from basquiat.contracts import CreateRequest, FlightRecord, FlightState, PipelineInvariantError


def _flight() -> FlightRecord:
    return FlightRecord(CreateRequest(member_id="uid-1", sequence=1))


class TestFlightRecord:
    def test_starts_admitted(self) -> None:
        flight = _flight()
        assert flight.state == FlightState.ADMITTED
        assert flight.member_id == "uid-1"
        assert flight.latency_ms is None

    def test_dispatch_then_complete(self) -> None:
        flight = _flight()
        flight.mark_dispatched()
        flight.mark_completed()

        assert flight.state == FlightState.COMPLETED
        assert flight.state.is_terminal
        assert flight.latency_ms is not None
        assert flight.latency_ms >= 0

    def test_dispatch_then_fail(self) -> None:
        flight = _flight()
        flight.mark_dispatched()
        flight.mark_failed()
        assert flight.state == FlightState.FAILED

    def test_double_dispatch_rejected(self) -> None:
        flight = _flight()
        flight.mark_dispatched()
        with pytest.raises(PipelineInvariantError, match="dispatched -> dispatched"):
            flight.mark_dispatched()

    def test_settle_before_dispatch_rejected(self) -> None:
        with pytest.raises(PipelineInvariantError):
            _flight().mark_completed()

    def test_terminal_states_are_final(self) -> None:
        flight = _flight()
        flight.mark_dispatched()
        flight.mark_completed()
        with pytest.raises(PipelineInvariantError):
            flight.mark_failed()

    @pytest.mark.parametrize(
        ("state", "terminal"),
        [
            (FlightState.ADMITTED, False),
            (FlightState.DISPATCHED, False),
            (FlightState.COMPLETED, True),
            (FlightState.FAILED, True),
        ],
    )
    def test_is_terminal(self, state: FlightState, terminal: bool) -> None:
        assert state.is_terminal is terminal
