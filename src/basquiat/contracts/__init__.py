"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core,
pipeline or persistence. Settings classes live in basquiat.core.config.
"""

from basquiat.contracts.enums import FlightState, WriteTarget
from basquiat.contracts.errors import (
    ConfigurationError,
    DeadlineExceeded,
    PersistenceFailure,
    PipelineInvariantError,
    WriteErrorReason,
)
from basquiat.contracts.flight import FlightRecord
from basquiat.contracts.member import CreateRequest, Member
from basquiat.contracts.results import CounterSnapshot, DrainResult, WriteResult

__all__ = [
    "ConfigurationError",
    "CounterSnapshot",
    "CreateRequest",
    "DeadlineExceeded",
    "DrainResult",
    "FlightRecord",
    "FlightState",
    "Member",
    "PersistenceFailure",
    "PipelineInvariantError",
    "WriteErrorReason",
    "WriteResult",
    "WriteTarget",
]
