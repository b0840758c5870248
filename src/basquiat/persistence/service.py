"""Member service: the write-pipeline collaborator plus plain CRUD."""

from __future__ import annotations

import threading
from concurrent.futures import Future

import structlog

from basquiat.contracts.errors import PersistenceFailure
from basquiat.contracts.member import CreateRequest, Member
from basquiat.persistence.repository import MemberRepository

logger = structlog.get_logger(__name__)


class MemberService:
    """Creates, reads, updates and deletes members.

    ``create`` implements the MemberWriter protocol. The insert runs in the
    calling thread and the returned future is already settled, so a
    pipeline writing through this service should use a worker pool sized
    to the engine's connection pool.
    """

    def __init__(self, repository: MemberRepository) -> None:
        self._repository = repository

    def create(self, request: CreateRequest) -> Future[Member]:
        future: Future[Member] = Future()
        logger.debug("Creating member", member_id=request.member_id, thread=threading.current_thread().name)
        try:
            member = self._repository.save(Member.from_request(request))
        except PersistenceFailure as e:
            future.set_exception(e)
        else:
            future.set_result(member)
        return future

    def create_member(self, uid: str) -> Member:
        """Create a single member outside the pipeline.

        Raises:
            PersistenceFailure: If the member cannot be inserted
        """
        return self._repository.save(Member(uid=uid, created=True))

    def get_member(self, uid: str) -> Member | None:
        return self._repository.find_by_id(uid)

    def get_all_members(self) -> list[Member]:
        return self._repository.find_all()

    def update_member(self, uid: str) -> Member | None:
        existing = self._repository.find_by_id(uid)
        if existing is None:
            return None
        return self._repository.update(existing)

    def delete_member(self, uid: str) -> bool:
        return self._repository.delete_by_id(uid)
