"""Counting admission gate shared by the whole tree walk."""

from __future__ import annotations

import contextlib
import threading
from collections.abc import Iterator

DEFAULT_MAX_IN_FLIGHT = 20


class ConcurrencyLimiter:
    """Bound the number of simultaneously in-flight rename operations.

    Backed by a ``threading.BoundedSemaphore`` so a stray extra ``release``
    raises instead of silently widening the gate. ``in_flight`` and
    ``peak_in_flight`` are bookkeeping for observers and tests.
    """

    def __init__(self, capacity: int = DEFAULT_MAX_IN_FLIGHT) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._semaphore = threading.BoundedSemaphore(capacity)
        self._lock = threading.Lock()
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        with self._lock:
            return self._peak_in_flight

    def acquire(self) -> None:
        """Block until a slot is free, then take it."""
        self._semaphore.acquire()
        with self._lock:
            self._in_flight += 1
            if self._in_flight > self._peak_in_flight:
                self._peak_in_flight = self._in_flight

    def release(self) -> None:
        """Return one slot, waking at most one waiter."""
        with self._lock:
            self._in_flight -= 1
        try:
            self._semaphore.release()
        except ValueError:
            with self._lock:
                self._in_flight += 1
            raise

    @contextlib.contextmanager
    def slot(self) -> Iterator[None]:
        """Hold one slot for the duration of the ``with`` block."""
        self.acquire()
        try:
            yield
        finally:
            self.release()


__all__ = [
    "DEFAULT_MAX_IN_FLIGHT",
    "ConcurrencyLimiter",
]
