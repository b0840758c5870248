# tests/stress/conftest.py
"""Fixtures for full-size pipeline drains."""

from __future__ import annotations

import pytest

FULL_LOAD = 100_000


@pytest.fixture
def full_load() -> int:
    return FULL_LOAD
