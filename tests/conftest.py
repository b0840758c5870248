# tests/conftest.py
"""Shared test fixtures and helpers.

Fixtures:
- latency_store: factory for LatencyMemberStore instances, closed after the test
- run_pipeline: submit + join helper that always releases the handle
- member_engine / member_repository: file-backed SQLite member database

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings
from sqlalchemy.engine import Engine

from basquiat.contracts import CreateRequest, DrainResult
from basquiat.core.config import DatabaseSettings, PipelineConfig
from basquiat.core.logging import configure_logging
from basquiat.persistence import MemberRepository, create_member_engine
from basquiat.pipeline import MemberWriter, PipelineHandle, WorkerPool, submit
from basquiat.testing import LatencyMemberStore

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Thread scheduling makes timings vary
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(autouse=True)
def _quiet_logging() -> None:
    """Route structlog through stdlib at WARNING so per-member debug records stay cheap."""
    configure_logging(level="WARNING")


# =============================================================================
# Pipeline fixtures
# =============================================================================


@pytest.fixture
def latency_store() -> Iterator[Callable[..., LatencyMemberStore]]:
    """Factory for fake member stores; every store is closed at teardown."""
    stores: list[LatencyMemberStore] = []

    def _make(**kwargs: Any) -> LatencyMemberStore:
        store = LatencyMemberStore(**kwargs)
        stores.append(store)
        return store

    yield _make
    for store in stores:
        store.close(timeout=10)


@pytest.fixture
def run_pipeline() -> Iterator[Callable[..., tuple[DrainResult, PipelineHandle]]]:
    """Submit, join and always close the handle.

    Usage:
        result, handle = run_pipeline(RequestSource(100), {"concurrency_bound": 4}, store)
    """
    handles: list[PipelineHandle] = []

    def _run(
        source: Iterable[CreateRequest],
        config: PipelineConfig | dict[str, Any],
        writer: MemberWriter,
        *,
        timeout: float = 30.0,
        pool: WorkerPool | None = None,
        **kwargs: Any,
    ) -> tuple[DrainResult, PipelineHandle]:
        handle = submit(source, config, writer, pool=pool, **kwargs)
        handles.append(handle)
        return handle.join(timeout=timeout), handle

    yield _run
    for handle in handles:
        handle.close()


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def member_engine(tmp_path: Path) -> Iterator[Engine]:
    """File-backed SQLite engine (threads need a shared file, not :memory:)."""
    engine = create_member_engine(DatabaseSettings(url=f"sqlite:///{tmp_path / 'members.db'}", pool_size=4))
    yield engine
    engine.dispose()


@pytest.fixture
def member_repository(member_engine: Engine) -> MemberRepository:
    repository = MemberRepository(member_engine)
    repository.create_schema()
    return repository


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "stress: full-size load scenarios (100k requests)")
