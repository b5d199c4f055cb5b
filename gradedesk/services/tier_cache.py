"""
Service tier cache.

Catalog reads vastly outnumber admin edits, so the public catalog is served
from a bounded TTL cache. Every admin write calls ``invalidate()``.
"""

import logging
import time
from collections.abc import Callable
from threading import Lock
from typing import Generic, TypeVar

from cachetools import TTLCache

logger = logging.getLogger(__name__)

V = TypeVar("V")

# One key per grading company plus the unfiltered catalog fits comfortably
DEFAULT_MAXSIZE = 32


class TierCache(Generic[V]):
    """
    Keyed TTL cache, safe to share across requests.

    Args:
        ttl_seconds: How long an entry stays fresh
        maxsize: Most entries held at once; the least recently used goes first
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        maxsize: int = DEFAULT_MAXSIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TTLCache[str, V] = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=clock)
        self._lock = Lock()

    def get(self, key: str) -> V | None:
        """Return the cached value, or None if absent or expired."""
        with self._lock:
            return self._cache.get(key)

    def put(self, key: str, value: V) -> None:
        with self._lock:
            self._cache[key] = value

    def invalidate(self, key: str | None = None) -> None:
        """Drop one key, or everything when no key is given."""
        with self._lock:
            if key is None:
                self._cache.clear()
            else:
                self._cache.pop(key, None)
        logger.info("TIER_CACHE_INVALIDATED", extra={"key": key or "*"})

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)
