# src/basquiat/pipeline/aggregator.py
"""Completion aggregation: counters, per-item error containment, bounded join.

Settlements arrive from whichever thread finished the write (a pool worker
or the writer's own completion thread) and in no particular order. The
aggregator never assumes completion order; it only counts.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from threading import Condition, Lock

import structlog

from basquiat.contracts.errors import PipelineInvariantError
from basquiat.contracts.flight import FlightRecord
from basquiat.contracts.member import Member
from basquiat.contracts.results import CounterSnapshot, DrainResult, WriteResult
from basquiat.pipeline.window import AdmissionWindow

logger = structlog.get_logger(__name__)


class Counters:
    """Thread-safe submitted/succeeded/failed tallies."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._submitted = 0
        self._succeeded = 0
        self._failed = 0

    def record_submitted(self) -> int:
        with self._lock:
            self._submitted += 1
            return self._submitted

    def record_success(self) -> int:
        """Count a success; returns the settled total."""
        with self._lock:
            self._succeeded += 1
            return self._succeeded + self._failed

    def record_failure(self) -> int:
        """Count a failure; returns the settled total."""
        with self._lock:
            self._failed += 1
            return self._succeeded + self._failed

    def snapshot(self) -> CounterSnapshot:
        with self._lock:
            return CounterSnapshot(submitted=self._submitted, succeeded=self._succeeded, failed=self._failed)


class CompletionAggregator:
    """Observes every settlement and exposes the blocking join.

    A failed write is counted and logged, never raised: one bad item does
    not stop the pipeline. Every settlement frees one admission slot.
    """

    def __init__(
        self,
        window: AdmissionWindow,
        *,
        progress_interval: int = 0,
        on_success: Callable[[Member], None] | None = None,
    ) -> None:
        self._window = window
        self._progress_interval = progress_interval
        self._on_success = on_success
        self._counters = Counters()
        self._cond = Condition()
        self._dispatch_finished = False
        self._dispatch_error: BaseException | None = None
        self._started_at = time.perf_counter()

    @property
    def counters(self) -> Counters:
        return self._counters

    @property
    def elapsed_seconds(self) -> float:
        return time.perf_counter() - self._started_at

    @property
    def dispatch_finished(self) -> bool:
        with self._cond:
            return self._dispatch_finished

    def record_admitted(self, flight: FlightRecord) -> None:
        self._counters.record_submitted()

    def settle(self, flight: FlightRecord, result: WriteResult) -> None:
        """Record the outcome of one admitted request and free its slot."""
        try:
            match result.status:
                case "success":
                    flight.mark_completed()
                    settled = self._counters.record_success()
                    logger.debug("Member created", member_id=flight.member_id, latency_ms=flight.latency_ms)
                case "error":
                    flight.mark_failed()
                    settled = self._counters.record_failure()
                    logger.warning("Member write failed", **(result.reason or {}))
                case _:
                    raise PipelineInvariantError(f"Unknown write status {result.status!r} for {flight.member_id}")
        finally:
            self._window.release()

        if result.member is not None and self._on_success is not None:
            self._notify_success(result.member)
        if self._progress_interval and settled % self._progress_interval == 0:
            self._log_progress()

        with self._cond:
            if self._is_drained():
                self._cond.notify_all()

    def _notify_success(self, member: Member) -> None:
        assert self._on_success is not None
        try:
            self._on_success(member)
        except Exception as e:
            # Listener failures are the caller's problem; the drain must still complete
            logger.error("Success listener failed", member_id=member.uid, error=str(e), error_type=type(e).__name__)

    def _log_progress(self) -> None:
        snapshot = self._counters.snapshot()
        logger.info(
            "Pipeline progress",
            settled=snapshot.settled,
            succeeded=snapshot.succeeded,
            failed=snapshot.failed,
            in_flight=snapshot.in_flight,
            elapsed_ms=round(self.elapsed_seconds * 1000),
        )

    def finish_dispatch(self, error: BaseException | None = None) -> None:
        """Called once by the dispatcher when it admits nothing further."""
        with self._cond:
            self._dispatch_finished = True
            self._dispatch_error = error
            self._cond.notify_all()

    def _is_drained(self) -> bool:
        # Caller holds self._cond
        return self._dispatch_finished and self._counters.snapshot().in_flight == 0

    def join(self, timeout: float | None) -> DrainResult:
        """Block until drained or until ``timeout`` seconds elapse.

        On timeout the returned DrainResult has ``timed_out=True``; work
        already admitted keeps settling in the background.

        Raises:
            Exception: Whatever the request source raised, if it crashed.
        """
        with self._cond:
            drained = self._cond.wait_for(self._is_drained, timeout)
            error = self._dispatch_error
        if error is not None:
            raise error

        snapshot = self._counters.snapshot()
        return DrainResult(
            submitted=snapshot.submitted,
            succeeded=snapshot.succeeded,
            failed=snapshot.failed,
            timed_out=not drained,
            elapsed_seconds=self.elapsed_seconds,
            timeout=timeout,
        )
