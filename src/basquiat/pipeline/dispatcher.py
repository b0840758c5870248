# src/basquiat/pipeline/dispatcher.py
"""Concurrency-limited dispatcher for member create-requests.

Streams requests from a source into a MemberWriter while:
- Bounding in-flight requests with an admission window
- Pulling from the source in prefetch batches, independent of the bound
- Optionally offloading each write to a fixed-size worker pool
- Containing per-item failures (counted, logged, never retried)

The dispatcher runs on its own thread. Callers get a PipelineHandle and
wait on it with a deadline.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import CancelledError, Future
from functools import partial
from threading import Event, Thread
from types import TracebackType
from typing import Any

import structlog

from basquiat.contracts.errors import ConfigurationError, PersistenceFailure
from basquiat.contracts.flight import FlightRecord
from basquiat.contracts.member import CreateRequest, Member
from basquiat.contracts.results import CounterSnapshot, DrainResult, WriteResult
from basquiat.core.config import PipelineConfig
from basquiat.pipeline.aggregator import CompletionAggregator
from basquiat.pipeline.prefetch import PrefetchBuffer
from basquiat.pipeline.protocols import MemberWriter
from basquiat.pipeline.window import AdmissionWindow
from basquiat.pipeline.worker_pool import WorkerPool

logger = structlog.get_logger(__name__)


def _failure_result(exc: BaseException, member_id: str) -> WriteResult:
    if isinstance(exc, PersistenceFailure):
        reason = "persistence_failure"
    elif isinstance(exc, CancelledError):
        reason = "cancelled"
    else:
        reason = "unexpected_error"
    return WriteResult.from_exception(exc, reason=reason, member_id=member_id)


def _resolve(future: Future[Member], member_id: str) -> WriteResult:
    """Turn a settled writer future into a WriteResult."""
    try:
        member = future.result()
    except Exception as e:
        return _failure_result(e, member_id)
    return WriteResult.success(member)


class Dispatcher:
    """Admits requests into flight and hands them to the writer.

    Only the driving thread runs ``run``; settlement callbacks come back
    on writer or worker threads and go straight to the aggregator.
    """

    def __init__(
        self,
        config: PipelineConfig,
        writer: MemberWriter,
        aggregator: CompletionAggregator,
        window: AdmissionWindow,
        *,
        pool: WorkerPool | None = None,
    ) -> None:
        self._config = config
        self._writer = writer
        self._aggregator = aggregator
        self._window = window
        self._pool = pool
        self._stop_requested = Event()
        self._buffer: PrefetchBuffer | None = None

    @property
    def buffer(self) -> PrefetchBuffer | None:
        return self._buffer

    def stop(self) -> None:
        """Stop admitting new requests; admitted ones still settle."""
        self._stop_requested.set()
        self._window.close()

    def run(self, source: Iterable[CreateRequest]) -> None:
        """Drive the source through the admission window until exhausted or stopped."""
        buffer = PrefetchBuffer(source, self._config.prefetch_window, low_tide=self._config.low_tide)
        self._buffer = buffer
        error: BaseException | None = None
        try:
            while not self._stop_requested.is_set():
                # Slot first: a full window also suspends replenishment
                if not self._window.acquire():
                    break
                try:
                    request = buffer.take()
                except BaseException:
                    self._window.release()
                    raise
                if request is None:
                    self._window.release()
                    break
                flight = FlightRecord(request)
                self._aggregator.record_admitted(flight)
                self._dispatch(flight)
        except Exception as e:
            error = e
            logger.error("Dispatcher stopped by source error", error=str(e), error_type=type(e).__name__)
        finally:
            self._aggregator.finish_dispatch(error)
            logger.debug(
                "Dispatch finished",
                source_exhausted=buffer.exhausted,
                stop_requested=self._stop_requested.is_set(),
                prefetch_pulls=buffer.pulls,
                pulled=buffer.pulled,
            )

    def _dispatch(self, flight: FlightRecord) -> None:
        flight.mark_dispatched()
        if self._pool is not None:
            try:
                pooled = self._pool.submit(self._write_blocking, flight.request)
            except RuntimeError as e:
                logger.error("Worker pool rejected write; stopping admission", member_id=flight.member_id, error=str(e))
                self._aggregator.settle(flight, WriteResult.from_exception(e, reason="rejected", member_id=flight.member_id))
                self.stop()
                return
            pooled.add_done_callback(partial(self._on_pool_done, flight))
            return

        try:
            future = self._writer.create(flight.request)
        except Exception as e:
            self._aggregator.settle(flight, _failure_result(e, flight.member_id))
            return
        future.add_done_callback(partial(self._on_write_done, flight))

    def _write_blocking(self, request: CreateRequest) -> WriteResult:
        """Runs on a pool worker: issue the write and wait for it there."""
        try:
            future = self._writer.create(request)
        except Exception as e:
            return _failure_result(e, request.member_id)
        return _resolve(future, request.member_id)

    def _on_write_done(self, flight: FlightRecord, future: Future[Member]) -> None:
        self._aggregator.settle(flight, _resolve(future, flight.member_id))

    def _on_pool_done(self, flight: FlightRecord, pooled: Future[WriteResult]) -> None:
        if pooled.cancelled():
            result = _failure_result(CancelledError(), flight.member_id)
        elif (exc := pooled.exception()) is not None:
            result = _failure_result(exc, flight.member_id)
        else:
            result = pooled.result()
        self._aggregator.settle(flight, result)


class PipelineHandle:
    """Caller's view of a running pipeline.

    Usage:
        handle = submit(RequestSource(100_000), config, writer)
        result = handle.join(timeout=30)
        if result.timed_out:
            handle.stop()
    """

    def __init__(
        self,
        config: PipelineConfig,
        dispatcher: Dispatcher,
        aggregator: CompletionAggregator,
        window: AdmissionWindow,
        thread: Thread,
        *,
        pool: WorkerPool | None,
        owns_pool: bool,
    ) -> None:
        self._config = config
        self._dispatcher = dispatcher
        self._aggregator = aggregator
        self._window = window
        self._thread = thread
        self._pool = pool
        self._owns_pool = owns_pool

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def counters(self) -> CounterSnapshot:
        return self._aggregator.counters.snapshot()

    @property
    def in_flight(self) -> int:
        """Admitted requests not yet settled."""
        return self._window.in_flight

    @property
    def peak_in_flight(self) -> int:
        return self._window.peak

    def join(self, timeout: float | None = None) -> DrainResult:
        """Wait for full drain, at most ``timeout`` seconds.

        Args:
            timeout: Seconds to wait; defaults to config.drain_timeout_seconds

        Returns:
            DrainResult snapshot. ``timed_out`` is True if the deadline
            passed first; in-flight work is left to settle.
        """
        wait = self._config.drain_timeout_seconds if timeout is None else timeout
        try:
            result = self._aggregator.join(wait)
        except Exception:
            self._release_pool(wait=False)
            raise

        if result.timed_out:
            logger.warning(
                "Drain deadline exceeded",
                timeout_seconds=wait,
                submitted=result.submitted,
                settled=result.settled,
                in_flight=result.in_flight,
            )
            return result

        self._thread.join()
        self._release_pool(wait=True)
        logger.info("Pipeline drained", **result.to_dict())
        return result

    def stop(self) -> None:
        """Stop admitting requests. Does not cancel in-flight writes."""
        self._dispatcher.stop()

    def close(self) -> None:
        """Stop admission and release an owned worker pool."""
        self.stop()
        self._release_pool(wait=False)

    def _release_pool(self, *, wait: bool) -> None:
        if self._owns_pool and self._pool is not None:
            self._pool.shutdown(wait=wait)

    def get_stats(self) -> dict[str, Any]:
        """Pipeline configuration and activity for reporting.

        Returns:
            Dict with pipeline_config and pipeline_stats (counters, peak
            in-flight, prefetch pulls, worker pool stats when pooled)
        """
        snapshot = self.counters
        buffer = self._dispatcher.buffer
        return {
            "pipeline_config": self._config.model_dump(),
            "pipeline_stats": {
                "submitted": snapshot.submitted,
                "succeeded": snapshot.succeeded,
                "failed": snapshot.failed,
                "in_flight": snapshot.in_flight,
                "peak_in_flight": self._window.peak,
                "prefetch_pulls": buffer.pulls if buffer is not None else 0,
                "buffered": buffer.buffered if buffer is not None else 0,
                "worker_pool": self._pool.get_stats() if self._pool is not None else None,
                "elapsed_seconds": self._aggregator.elapsed_seconds,
            },
        }

    def __enter__(self) -> PipelineHandle:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def submit(
    source: Iterable[CreateRequest],
    config: PipelineConfig | Mapping[str, Any],
    writer: MemberWriter,
    *,
    pool: WorkerPool | None = None,
    on_success: Callable[[Member], None] | None = None,
) -> PipelineHandle:
    """Validate configuration and start streaming ``source`` into ``writer``.

    Args:
        source: Create-requests, pulled lazily
        config: PipelineConfig or a dict of its fields
        writer: Persistence collaborator
        pool: Reusable worker pool; when omitted and config.worker_pool_size
            is set, a pool is created and owned by the returned handle
        on_success: Called with each created member (from the settling thread)

    Raises:
        ConfigurationError: If any bound is invalid; nothing is admitted.
    """
    if not isinstance(config, PipelineConfig):
        config = PipelineConfig.from_dict(dict(config))
    if pool is not None and pool.is_shutdown:
        raise ConfigurationError(f"Worker pool {pool.name!r} has been shut down")

    owns_pool = False
    if pool is None and config.worker_pool_size is not None:
        pool = WorkerPool(config.worker_pool_size)
        owns_pool = True

    window = AdmissionWindow(config.concurrency_bound)
    aggregator = CompletionAggregator(window, progress_interval=config.progress_interval, on_success=on_success)
    dispatcher = Dispatcher(config, writer, aggregator, window, pool=pool)
    thread = Thread(target=dispatcher.run, args=(source,), name="pipeline-dispatcher", daemon=True)

    logger.info(
        "Pipeline started",
        concurrency_bound=config.concurrency_bound,
        prefetch_window=config.prefetch_window,
        worker_pool_size=pool.size if pool is not None else None,
        drain_timeout_seconds=config.drain_timeout_seconds,
    )
    thread.start()
    return PipelineHandle(config, dispatcher, aggregator, window, thread, pool=pool, owns_pool=owns_pool)
