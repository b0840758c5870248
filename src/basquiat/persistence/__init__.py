"""Member persistence (SQLAlchemy Core)."""

from basquiat.persistence.engine import check_worker_pool, create_member_engine
from basquiat.persistence.repository import MemberRepository
from basquiat.persistence.schema import members_table, metadata
from basquiat.persistence.service import MemberService

__all__ = [
    "MemberRepository",
    "MemberService",
    "check_worker_pool",
    "create_member_engine",
    "members_table",
    "metadata",
]
