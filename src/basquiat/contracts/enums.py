"""Status values shared across the pipeline."""

from enum import StrEnum


class FlightState(StrEnum):
    """Lifecycle of one admitted create-request.

    ADMITTED -> DISPATCHED -> {COMPLETED | FAILED}. Terminal states are final.
    """

    ADMITTED = "admitted"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """True once the request has settled."""
        return self in (FlightState.COMPLETED, FlightState.FAILED)


class WriteTarget(StrEnum):
    """Backend a load run writes into."""

    SIMULATED = "simulated"
    DATABASE = "database"
