"""Protocol for the persistence collaborator the pipeline writes into."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Protocol, runtime_checkable

from basquiat.contracts.member import CreateRequest, Member


@runtime_checkable
class MemberWriter(Protocol):
    """Anything that can create members asynchronously.

    ``create`` must be safe to call from several threads at once. Failure
    is signalled by the returned future raising (PersistenceFailure or any
    other Exception) or by ``create`` raising directly; the pipeline counts
    either as one failed item.

    A writer whose ``create`` blocks before returning (for example a plain
    database insert wrapped in an already-resolved future) should be run
    with a worker pool, otherwise it stalls admission.
    """

    def create(self, request: CreateRequest) -> Future[Member]: ...
