# src/basquiat/testing/latency_store.py
"""In-memory member store with injected latency and failures.

Stands in for a database when exercising the write pipeline: every create
settles after a fixed (optionally jittered) delay, and every N-th request
by sequence number fails with PersistenceFailure. Delays are served by one
timer thread, so thousands of pending creates cost no extra threads.
"""

from __future__ import annotations

import heapq
import itertools
import random as random_module
import time
from concurrent.futures import Future
from threading import Condition, Lock, Thread
from types import TracebackType

from basquiat.contracts.errors import PersistenceFailure
from basquiat.contracts.member import CreateRequest, Member


class LatencyMemberStore:
    """Fake MemberWriter for load runs and tests.

    Tracks how many creates are pending at once (``peak_active``), which is
    how tests observe the pipeline's concurrency bounds from the outside.

    Usage:
        with LatencyMemberStore(delay_ms=10, fail_every=10) as store:
            handle = submit(RequestSource(1000), config, store)
            handle.join()
            assert store.peak_active <= config.concurrency_bound
    """

    def __init__(
        self,
        *,
        delay_ms: float = 0.0,
        jitter_ms: float = 0.0,
        fail_every: int = 0,
        rng: random_module.Random | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            delay_ms: Latency applied to every create
            jitter_ms: Uniform +/- jitter around delay_ms (clamped at 0)
            fail_every: Fail requests whose sequence is a multiple of this (0 = never)
            rng: Random instance; inject a seeded one for deterministic jitter
        """
        if delay_ms < 0 or jitter_ms < 0 or fail_every < 0:
            raise ValueError("delay_ms, jitter_ms and fail_every must be >= 0")
        self._delay_ms = delay_ms
        self._jitter_ms = jitter_ms
        self._fail_every = fail_every
        self._rng = rng if rng is not None else random_module.Random()

        self._cond = Condition()
        self._heap: list[tuple[float, int, Future[Member], CreateRequest]] = []
        self._tiebreak = itertools.count()
        self._thread: Thread | None = None
        self._closed = False

        self._stats_lock = Lock()
        self._calls = 0
        self._active = 0
        self._peak_active = 0
        self._succeeded = 0
        self._failed = 0
        self._created: set[str] = set()

    @property
    def calls(self) -> int:
        with self._stats_lock:
            return self._calls

    @property
    def active(self) -> int:
        """Creates issued but not yet settled."""
        with self._stats_lock:
            return self._active

    @property
    def peak_active(self) -> int:
        with self._stats_lock:
            return self._peak_active

    @property
    def created_ids(self) -> frozenset[str]:
        with self._stats_lock:
            return frozenset(self._created)

    def get_stats(self) -> dict[str, int]:
        with self._stats_lock:
            return {
                "calls": self._calls,
                "active": self._active,
                "peak_active": self._peak_active,
                "succeeded": self._succeeded,
                "failed": self._failed,
            }

    def _next_delay(self) -> float:
        if self._jitter_ms:
            with self._stats_lock:
                jitter = self._rng.uniform(-self._jitter_ms, self._jitter_ms)
            return max(0.0, self._delay_ms + jitter) / 1000.0
        return self._delay_ms / 1000.0

    def create(self, request: CreateRequest) -> Future[Member]:
        """Start a create; the future settles after the configured delay.

        Raises:
            RuntimeError: If the store has been closed.
        """
        future: Future[Member] = Future()
        delay = self._next_delay()
        with self._cond:
            if self._closed:
                raise RuntimeError("LatencyMemberStore is closed")
            with self._stats_lock:
                self._calls += 1
                self._active += 1
                if self._active > self._peak_active:
                    self._peak_active = self._active
            if delay > 0:
                if self._thread is None:
                    self._thread = Thread(target=self._run_timer, name="latency-store-timer", daemon=True)
                    self._thread.start()
                heapq.heappush(self._heap, (time.monotonic() + delay, next(self._tiebreak), future, request))
                self._cond.notify()
                return future

        # Zero delay settles inline, outside the lock: settlement runs the caller's callbacks
        self._settle(future, request)
        return future

    def _settle(self, future: Future[Member], request: CreateRequest) -> None:
        fails = self._fail_every > 0 and request.sequence % self._fail_every == 0
        with self._stats_lock:
            # Counted before the future fires so callbacks see a consistent store
            self._active -= 1
            if fails:
                self._failed += 1
            else:
                self._succeeded += 1
                self._created.add(request.member_id)
        if fails:
            future.set_exception(PersistenceFailure(f"Injected failure for {request.member_id}", member_id=request.member_id))
        else:
            future.set_result(Member.from_request(request))

    def _run_timer(self) -> None:
        while True:
            with self._cond:
                while True:
                    if self._heap:
                        wait = self._heap[0][0] - time.monotonic()
                        if wait <= 0:
                            break
                        self._cond.wait(wait)
                    elif self._closed:
                        return
                    else:
                        self._cond.wait()
                now = time.monotonic()
                due: list[tuple[Future[Member], CreateRequest]] = []
                while self._heap and self._heap[0][0] <= now:
                    _, _, future, request = heapq.heappop(self._heap)
                    due.append((future, request))
            # Outside the lock: settlement runs the pipeline's callbacks
            for future, request in due:
                self._settle(future, request)

    def close(self, timeout: float | None = None) -> None:
        """Refuse new creates; pending ones still settle on schedule."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
            thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def __enter__(self) -> LatencyMemberStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
