"""Operation outcomes and results.

These types answer: "What did a write (or a whole run) produce?"

IMPORTANT:
- WriteResult.status uses Literal["success", "error"], NOT an enum
- Per-item failures travel as WriteResult.error(...) values, never as
  exceptions, so the aggregator can match on them without suppressing anything
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from basquiat.contracts.errors import DeadlineExceeded, WriteErrorReason
from basquiat.contracts.member import Member


@dataclass(frozen=True, slots=True)
class WriteResult:
    """Result of one persistence call.

    Use the factory methods to create instances.
    """

    status: Literal["success", "error"]
    member: Member | None
    reason: WriteErrorReason | None

    def __post_init__(self) -> None:
        if self.status == "success" and self.member is None:
            raise ValueError("WriteResult with status='success' MUST carry the created member")
        if self.status == "error" and self.reason is None:
            raise ValueError("WriteResult with status='error' MUST carry a reason")

    @classmethod
    def success(cls, member: Member) -> WriteResult:
        """Create a successful result holding the created member."""
        return cls(status="success", member=member, reason=None)

    @classmethod
    def error(cls, reason: WriteErrorReason) -> WriteResult:
        """Create a failed result.

        Args:
            reason: Structured failure details (see WriteErrorReason)
        """
        return cls(status="error", member=None, reason=reason)

    @classmethod
    def from_exception(cls, exc: BaseException, *, reason: str, member_id: str) -> WriteResult:
        """Wrap an exception raised by a persistence call."""
        return cls.error(
            {
                "reason": reason,
                "error": str(exc),
                "error_type": type(exc).__name__,
                "member_id": member_id,
            }
        )


@dataclass(frozen=True, slots=True)
class CounterSnapshot:
    """Point-in-time copy of the pipeline counters."""

    submitted: int
    succeeded: int
    failed: int

    @property
    def settled(self) -> int:
        return self.succeeded + self.failed

    @property
    def in_flight(self) -> int:
        return self.submitted - self.settled


@dataclass(frozen=True, slots=True)
class DrainResult:
    """What the caller sees when join() returns.

    Attributes:
        submitted: Requests admitted into the pipeline
        succeeded: Requests persisted
        failed: Requests whose write failed (contained, not retried)
        timed_out: True when the drain deadline elapsed first
        elapsed_seconds: Time since the pipeline started
    """

    submitted: int
    succeeded: int
    failed: int
    timed_out: bool
    elapsed_seconds: float = 0.0
    timeout: float | None = None

    @property
    def settled(self) -> int:
        return self.succeeded + self.failed

    @property
    def in_flight(self) -> int:
        return self.submitted - self.settled

    def raise_for_timeout(self) -> DrainResult:
        """Raise DeadlineExceeded if the drain timed out, else return self."""
        if self.timed_out:
            raise DeadlineExceeded(self.timeout if self.timeout is not None else self.elapsed_seconds, self.settled, self.submitted)
        return self

    def to_dict(self) -> dict[str, int | float | bool]:
        return {
            "submitted": self.submitted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "timed_out": self.timed_out,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }
