# src/basquiat/pipeline/worker_pool.py
"""Fixed-size worker pool for offloading blocking persistence calls.

Size it to the downstream resource's real concurrency ceiling (typically
the database connection pool), never larger.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from types import TracebackType
from typing import Any

import structlog

from basquiat.contracts.errors import ConfigurationError

logger = structlog.get_logger(__name__)


class WorkerPool:
    """Thread pool with a hard worker ceiling and execution statistics.

    Submissions never block; when every worker is busy they queue inside
    the executor until one frees up. The pool carries no business state
    and can serve any number of pipeline runs.

    Usage:
        with WorkerPool(20) as pool:
            handle = submit(source, config, writer, pool=pool)
            handle.join()
    """

    def __init__(self, size: int, *, thread_name_prefix: str = "write-db-worker") -> None:
        if size < 1:
            raise ConfigurationError(f"Worker pool size must be >= 1, got {size}")
        self._size = size
        self._name = thread_name_prefix
        self._executor = ThreadPoolExecutor(max_workers=size, thread_name_prefix=thread_name_prefix)

        self._stats_lock = Lock()
        self._submitted = 0
        self._completed = 0
        self._active_workers = 0
        self._max_concurrent = 0
        self._shutdown = False

    @property
    def size(self) -> int:
        """Maximum concurrent worker executions."""
        return self._size

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def _increment_active_workers(self) -> None:
        with self._stats_lock:
            self._active_workers += 1
            if self._active_workers > self._max_concurrent:
                self._max_concurrent = self._active_workers

    def _decrement_active_workers(self) -> None:
        with self._stats_lock:
            self._active_workers -= 1
            self._completed += 1

    def _run[T](self, fn: Callable[..., T], args: tuple[Any, ...]) -> T:
        self._increment_active_workers()
        try:
            return fn(*args)
        finally:
            self._decrement_active_workers()

    def submit[T](self, fn: Callable[..., T], *args: Any) -> Future[T]:
        """Queue ``fn(*args)`` for a worker; returns immediately.

        Raises:
            RuntimeError: If the pool has been shut down.
        """
        # Counted before handing over so a fast worker never sees completed > submitted
        with self._stats_lock:
            self._submitted += 1
        try:
            return self._executor.submit(self._run, fn, args)
        except RuntimeError:
            with self._stats_lock:
                self._submitted -= 1
            raise

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown the pool.

        Args:
            wait: If True, wait for queued and running work to finish
        """
        with self._stats_lock:
            if self._shutdown:
                return
            self._shutdown = True
        self._executor.shutdown(wait=wait)
        logger.debug("Worker pool shut down", pool=self._name, **self.get_stats())

    def get_stats(self) -> dict[str, int]:
        """Snapshot of pool activity.

        Returns:
            Dict with size, submitted, completed, active, queued and
            max_concurrent_reached
        """
        with self._stats_lock:
            return {
                "size": self._size,
                "submitted": self._submitted,
                "completed": self._completed,
                "active": self._active_workers,
                "queued": self._submitted - self._completed - self._active_workers,
                "max_concurrent_reached": self._max_concurrent,
            }

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown(wait=True)
