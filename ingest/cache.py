"""Process-wide freshness cache for the collected source snapshot."""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SnapshotCache(Generic[T]):
    """Hold one loaded value for ``ttl_seconds``.

    Loads are single-flight: callers that miss while another thread is
    loading block on the lock and then reuse that thread's result instead of
    loading again. Values rejected by ``should_cache`` are handed to the
    callers of that load but are not kept.
    """

    def __init__(
        self,
        loader: Callable[[], T],
        ttl_seconds: float,
        should_cache: Callable[[T], bool] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self.ttl_seconds = ttl_seconds
        self._should_cache = should_cache or (lambda value: True)
        self._clock = clock
        self._lock = threading.Lock()
        self._value: Optional[T] = None
        self._stored_at: Optional[float] = None
        self._last: Optional[T] = None
        self._generation = 0

    def _cached(self) -> Optional[T]:
        if self._stored_at is None:
            return None
        if self._clock() - self._stored_at >= self.ttl_seconds:
            return None
        return self._value

    def get(self, fresh: bool = False) -> T:
        """Return the cached value, loading it when stale, empty or ``fresh`` is set."""
        if not fresh:
            value = self._cached()
            if value is not None:
                return value

        generation = self._generation
        with self._lock:
            if self._generation != generation and self._last is not None:
                # Another caller finished a load while we waited.
                return self._last
            if not fresh:
                value = self._cached()
                if value is not None:
                    return value

            logger.info("Refreshing snapshot cache")
            value = self._loader()
            self._last = value
            self._generation += 1
            if self._should_cache(value):
                self._value = value
                self._stored_at = self._clock()
            return value

    def clear(self) -> None:
        with self._lock:
            self._value = None
            self._stored_at = None
            self._last = None
            self._generation += 1
