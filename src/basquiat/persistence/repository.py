# src/basquiat/persistence/repository.py
"""Member repository backed by SQLAlchemy Core.

Every database error is wrapped in PersistenceFailure so the write
pipeline can count it as a single failed item.
"""

from __future__ import annotations

import time

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from basquiat.contracts.errors import PersistenceFailure
from basquiat.contracts.member import Member
from basquiat.persistence.schema import members_table, metadata


class MemberRepository:
    """CRUD access to the ``member`` table.

    Safe to share between threads; each call checks a connection out of
    the engine's pool for the duration of one transaction.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_schema(self) -> None:
        """Create the member table if it does not exist."""
        metadata.create_all(self._engine)

    def save(self, member: Member) -> Member:
        """Insert a new member.

        Raises:
            PersistenceFailure: If the uid already exists or the insert fails
        """
        try:
            with self._engine.begin() as conn:
                conn.execute(insert(members_table).values(uid=member.uid, created_at=time.time()))
        except IntegrityError as e:
            raise PersistenceFailure(f"Member {member.uid} already exists", member_id=member.uid) from e
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to insert member {member.uid}: {e}", member_id=member.uid) from e
        return member

    def find_by_id(self, uid: str) -> Member | None:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(select(members_table.c.uid).where(members_table.c.uid == uid)).first()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to load member {uid}: {e}", member_id=uid) from e
        if row is None:
            return None
        # Loaded rows are not new
        return Member(uid=row.uid, created=False)

    def find_all(self) -> list[Member]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(select(members_table.c.uid).order_by(members_table.c.created_at, members_table.c.uid)).all()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to list members: {e}") from e
        return [Member(uid=row.uid, created=False) for row in rows]

    def update(self, member: Member) -> Member | None:
        """Touch an existing member; returns None when it does not exist."""
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    update(members_table).where(members_table.c.uid == member.uid).values(updated_at=time.time())
                )
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to update member {member.uid}: {e}", member_id=member.uid) from e
        if result.rowcount == 0:
            return None
        return Member(uid=member.uid, created=False)

    def delete_by_id(self, uid: str) -> bool:
        """Delete a member; returns False when nothing was deleted."""
        try:
            with self._engine.begin() as conn:
                result = conn.execute(delete(members_table).where(members_table.c.uid == uid))
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to delete member {uid}: {e}", member_id=uid) from e
        return result.rowcount > 0

    def count(self) -> int:
        try:
            with self._engine.connect() as conn:
                return int(conn.execute(select(func.count()).select_from(members_table)).scalar_one())
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to count members: {e}") from e
