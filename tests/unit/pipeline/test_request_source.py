"""Tests for RequestSource."""

from __future__ import annotations

import pytest

from basquiat.contracts import ConfigurationError, CreateRequest
from basquiat.pipeline import RequestSource


class TestRequestSource:
    def test_identifiers_embed_sequence(self) -> None:
        assert list(RequestSource(3)) == [
            CreateRequest("uid-1", 1),
            CreateRequest("uid-2", 2),
            CreateRequest("uid-3", 3),
        ]

    def test_prefix_and_start(self) -> None:
        requests = list(RequestSource(2, prefix="m-", start=100))
        assert [r.member_id for r in requests] == ["m-100", "m-101"]
        assert [r.sequence for r in requests] == [1, 2]

    def test_empty(self) -> None:
        assert list(RequestSource(0)) == []
        assert len(RequestSource(0)) == 0

    def test_negative_total_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="must be >= 0"):
            RequestSource(-1)

    def test_restartable(self) -> None:
        source = RequestSource(5)
        assert list(source) == list(source)

    def test_lazy(self) -> None:
        iterator = iter(RequestSource(10**12))
        assert next(iterator).member_id == "uid-1"
