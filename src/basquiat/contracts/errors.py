"""Error taxonomy and reason schema contracts.

Only ConfigurationError is meant to reach the caller of the pipeline.
PersistenceFailure is contained per item and counted; DeadlineExceeded
describes a drain that did not finish in time.
"""

from typing import NotRequired, TypedDict


class WriteErrorReason(TypedDict):
    """Schema for a contained per-item write failure."""

    reason: str  # "persistence_failure", "unexpected_error", "cancelled", "rejected"
    error: str  # String representation of the exception
    error_type: str  # Exception class name
    member_id: NotRequired[str]


class ConfigurationError(Exception):
    """Raised when pipeline bounds or settings are invalid.

    Always raised before any request is pulled from the source.
    """

    pass


class PersistenceFailure(Exception):
    """A single create could not be persisted.

    Attributes:
        member_id: Identifier of the request that failed, when known
    """

    def __init__(self, message: str, *, member_id: str | None = None) -> None:
        super().__init__(message)
        self.member_id = member_id


class DeadlineExceeded(Exception):
    """The drain did not complete before its deadline.

    Non-fatal: admitted work keeps settling in the background.
    """

    def __init__(self, timeout: float, settled: int, submitted: int) -> None:
        super().__init__(f"Drain did not finish within {timeout:.3f}s ({settled}/{submitted} settled)")
        self.timeout = timeout
        self.settled = settled
        self.submitted = submitted


class PipelineInvariantError(Exception):
    """Internal bookkeeping went wrong.

    Indicates a bug in the pipeline itself, never a data problem.
    """

    pass
