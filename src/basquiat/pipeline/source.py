# src/basquiat/pipeline/source.py
"""Counter-driven source of member create-requests."""

from __future__ import annotations

from collections.abc import Iterator

from basquiat.contracts.errors import ConfigurationError
from basquiat.contracts.member import CreateRequest


class RequestSource:
    """Finite, restartable sequence of create-requests.

    Each iteration starts a fresh generator, so the same source can feed
    several pipeline runs. Identifiers embed the sequence index, e.g.
    ``uid-1 .. uid-N``. Nothing is generated until it is pulled.

    Usage:
        source = RequestSource(100_000)
        handle = submit(source, config, writer)
    """

    def __init__(self, total: int, *, prefix: str = "uid-", start: int = 1) -> None:
        if total < 0:
            raise ConfigurationError(f"Request source total must be >= 0, got {total}")
        self._total = total
        self._prefix = prefix
        self._start = start

    @property
    def total(self) -> int:
        return self._total

    def __len__(self) -> int:
        return self._total

    def __iter__(self) -> Iterator[CreateRequest]:
        prefix = self._prefix
        for offset in range(self._total):
            index = self._start + offset
            yield CreateRequest(member_id=f"{prefix}{index}", sequence=offset + 1)

    def __repr__(self) -> str:
        return f"RequestSource(total={self._total}, prefix={self._prefix!r}, start={self._start})"
