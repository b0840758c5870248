# src/basquiat/pipeline/prefetch.py
"""Batched lookahead buffer between the request source and the dispatcher."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator
from itertools import islice

from basquiat.contracts.member import CreateRequest


class PrefetchBuffer:
    """Pulls requests from a source in batches.

    The first pull asks for ``prefetch`` requests. After that the buffer is
    topped back up to ``prefetch`` only once it has drained down to
    ``low_tide`` buffered requests, so the source sees a few large pulls
    rather than one pull per admission. At most ``prefetch`` requests are
    ever held.

    Not thread-safe: only the dispatcher's driving thread touches it.
    """

    def __init__(self, source: Iterable[CreateRequest], prefetch: int, *, low_tide: int | None = None) -> None:
        self._iterator: Iterator[CreateRequest] = iter(source)
        self._prefetch = prefetch
        self._low_tide = prefetch // 4 if low_tide is None else low_tide
        self._queue: deque[CreateRequest] = deque()
        self._source_exhausted = False
        self._pulls = 0
        self._pulled = 0

    @property
    def buffered(self) -> int:
        return len(self._queue)

    @property
    def pulls(self) -> int:
        """Number of replenishment batches requested from the source."""
        return self._pulls

    @property
    def pulled(self) -> int:
        """Requests drawn from the source so far."""
        return self._pulled

    @property
    def exhausted(self) -> bool:
        """True once the source is empty and nothing is left buffered."""
        return self._source_exhausted and not self._queue

    def take(self) -> CreateRequest | None:
        """Return the next request, replenishing first if at the low-water mark.

        Returns:
            The next request, or None when the source is exhausted.
        """
        if not self._source_exhausted and len(self._queue) <= self._low_tide:
            self._replenish()
        if not self._queue:
            return None
        return self._queue.popleft()

    def _replenish(self) -> None:
        wanted = self._prefetch - len(self._queue)
        batch = list(islice(self._iterator, wanted))
        self._pulls += 1
        self._pulled += len(batch)
        if len(batch) < wanted:
            self._source_exhausted = True
        self._queue.extend(batch)
