"""Engine construction for the member database."""

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.pool import StaticPool

from basquiat.contracts.errors import ConfigurationError
from basquiat.core.config import DatabaseSettings


def _is_in_memory_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def create_member_engine(settings: DatabaseSettings) -> Engine:
    """Create an engine whose connection pool matches ``settings.pool_size``.

    The pool never overflows: the worker pool in front of it should be
    sized to the same ceiling.

    In-memory SQLite shares one connection (StaticPool) and is only
    suitable for single-threaded use; see check_worker_pool().
    """
    url = make_url(settings.url)
    kwargs: dict[str, Any] = {"echo": settings.echo}
    if _is_in_memory_sqlite(url):
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    elif url.get_backend_name() == "sqlite":
        kwargs["pool_size"] = settings.pool_size
        kwargs["max_overflow"] = 0
        # Concurrent writers queue on SQLite's file lock
        kwargs["connect_args"] = {"timeout": 30}
    else:
        kwargs["pool_size"] = settings.pool_size
        kwargs["max_overflow"] = 0
        kwargs["pool_pre_ping"] = True
    return create_engine(url, **kwargs)


def check_worker_pool(settings: DatabaseSettings, worker_pool_size: int | None) -> None:
    """Reject worker pools that would share one connection between threads.

    Raises:
        ConfigurationError: If the database is in-memory SQLite and more
            than one worker would write to it concurrently.
    """
    try:
        url = make_url(settings.url)
    except ArgumentError as e:
        raise ConfigurationError(f"Invalid database url {settings.url!r}: {e}") from e
    if worker_pool_size is not None and worker_pool_size > 1 and _is_in_memory_sqlite(url):
        raise ConfigurationError(
            f"In-memory SQLite uses a single shared connection; worker_pool_size={worker_pool_size} "
            "would interleave transactions. Use a file database or worker_pool_size=1."
        )
