# src/basquiat/pipeline/window.py
"""Admission window bounding the number of in-flight requests."""

from __future__ import annotations

from threading import Condition

from basquiat.contracts.errors import PipelineInvariantError


class AdmissionWindow:
    """Thread-safe counting gate of width ``bound``.

    The dispatcher acquires a slot before it takes a request from its
    buffer; settlement releases the slot from whatever thread completed
    the write. Closing the window wakes every waiter and refuses further
    admissions.

    Usage:
        window = AdmissionWindow(bound=256)
        if window.acquire():
            ...  # dispatch, later: window.release()
    """

    def __init__(self, bound: int) -> None:
        if bound < 1:
            raise PipelineInvariantError(f"Admission window bound must be >= 1, got {bound}")
        self._bound = bound
        self._in_flight = 0
        self._peak = 0
        self._closed = False
        self._cond = Condition()

    @property
    def bound(self) -> int:
        return self._bound

    @property
    def in_flight(self) -> int:
        with self._cond:
            return self._in_flight

    @property
    def peak(self) -> int:
        """Highest in-flight count observed."""
        with self._cond:
            return self._peak

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def acquire(self, timeout: float | None = None) -> bool:
        """Block until a slot is free, then take it.

        Returns:
            True if a slot was taken, False if the window was closed or the
            timeout elapsed first.
        """
        with self._cond:
            admitted = self._cond.wait_for(lambda: self._closed or self._in_flight < self._bound, timeout)
            if not admitted or self._closed:
                return False
            self._in_flight += 1
            if self._in_flight > self._peak:
                self._peak = self._in_flight
            return True

    def release(self) -> None:
        """Free one slot and wake one waiting admitter."""
        with self._cond:
            if self._in_flight <= 0:
                raise PipelineInvariantError("Admission window released more slots than were acquired")
            self._in_flight -= 1
            self._cond.notify()

    def close(self) -> None:
        """Stop admitting; releases already granted slots still work."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
