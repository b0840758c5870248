"""Full-size drain scenarios: 100k create-requests."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import pytest

from basquiat.core.config import PipelineConfig
from basquiat.pipeline import RequestSource
from basquiat.testing import LatencyMemberStore

pytestmark = pytest.mark.stress


def test_hundred_thousand_with_latency(
    full_load: int, latency_store: Callable[..., LatencyMemberStore], run_pipeline: Callable[..., Any]
) -> None:
    store = latency_store(delay_ms=10)
    config = PipelineConfig(concurrency_bound=1000, prefetch_window=1000, progress_interval=10_000)

    started = time.perf_counter()
    result, handle = run_pipeline(RequestSource(full_load), config, store, timeout=300)
    elapsed = time.perf_counter() - started

    assert not result.timed_out
    assert (result.submitted, result.succeeded, result.failed) == (full_load, full_load, 0)
    assert handle.peak_in_flight <= 1000
    assert store.peak_active <= 1000
    # 100 waves of 10ms; far below the 1000s a serial run would need
    assert elapsed < 120


def test_hundred_thousand_pooled_with_failures(
    full_load: int, latency_store: Callable[..., LatencyMemberStore], run_pipeline: Callable[..., Any]
) -> None:
    store = latency_store(delay_ms=0, fail_every=10)
    config = PipelineConfig(concurrency_bound=256, prefetch_window=256, worker_pool_size=20)

    result, handle = run_pipeline(RequestSource(full_load), config, store, timeout=300)

    assert not result.timed_out
    assert result.succeeded == 90_000
    assert result.failed == 10_000
    assert handle.get_stats()["pipeline_stats"]["worker_pool"]["max_concurrent_reached"] <= 20
    assert store.peak_active <= 20
