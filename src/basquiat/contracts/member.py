"""Member entity and the request that creates it."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CreateRequest:
    """One member creation request.

    Attributes:
        member_id: Identifier of the member to create (e.g. "uid-42")
        sequence: 1-based position of the request in its source
    """

    member_id: str
    sequence: int


@dataclass(frozen=True, slots=True)
class Member:
    """A persisted member.

    Attributes:
        uid: Primary key
        created: True when the record was produced by the create path
    """

    uid: str
    created: bool = True

    @classmethod
    def from_request(cls, request: CreateRequest) -> Member:
        """Build the record a create-request should produce."""
        return cls(uid=request.member_id, created=True)
