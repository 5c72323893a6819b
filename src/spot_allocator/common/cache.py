"""
Read-through cache with a per-resource time to live.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

T = TypeVar("T")

LOGGER = logging.getLogger(__name__)

# Cache kinds used by the allocator
REGIONS = "regions"
PLACEMENT_SCORES = "placement_scores"
ZONES = "zones"


class TTLCache:
    """In-memory cache keyed by (kind, scope).

    Each entry remembers when it was fetched; the caller decides on every lookup how
    old an entry may be, so different resource kinds can use different lifetimes.

    The cache is safe to use from multiple threads. The fetch function is called
    outside the lock, so two threads missing the same key at the same time will
    both fetch and the last one to finish wins. Entries are disposable; losing them
    only costs extra remote calls.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[Tuple[str, str], Tuple[Any, float]] = {}

    def get_or_fetch(self, kind: str, scope: str, ttl: float, fetch_fn: Callable[[], T]) -> T:
        """Return the cached value for (kind, scope) or fetch and store a new one.

        Args:
            kind: Resource kind (e.g. "regions")
            scope: Resource scope within the kind (e.g. a region name)
            ttl: Maximum age in seconds of a cached value; zero or negative disables
                caching for this call
            fetch_fn: Function called with no arguments to produce a fresh value

        Returns:
            The cached or freshly fetched value
        """
        if ttl <= 0:
            return fetch_fn()

        key = (kind, scope)
        with self._lock:
            entry = self._entries.get(key)
        if entry is not None:
            value, fetched_at = entry
            if self._clock() - fetched_at < ttl:
                LOGGER.debug(f"Cache hit for {kind} '{scope}'")
                return value

        LOGGER.debug(f"Cache miss for {kind} '{scope}'")
        value = fetch_fn()
        with self._lock:
            self._entries[key] = (value, self._clock())
        return value

    def invalidate(self, kind: Optional[str] = None, scope: Optional[str] = None) -> None:
        """Drop cached entries.

        Args:
            kind: Only drop entries of this kind; all kinds if None
            scope: Only drop entries with this scope; all scopes if None
        """
        with self._lock:
            for key in list(self._entries):
                if kind is not None and key[0] != kind:
                    continue
                if scope is not None and key[1] != scope:
                    continue
                del self._entries[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
