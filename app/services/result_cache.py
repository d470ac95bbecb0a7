"""
Result Cache - in-memory, time-bounded memoization.

- Single process, no background sweeper: expired entries are dropped on
  read and pruned whenever a new entry is stored
- At most `max_entries` entries; when full, the oldest are evicted
- Keys must carry every parameter that changes the result
- Two callers missing the same key at the same time may both compute;
  compute functions are pure, so the second write is identical
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.stored_at >= self.ttl


class ResultCache:

    def __init__(self, ttl_seconds: float = 600.0, clock: Callable[[], float] = time.monotonic,
                 max_entries: int = 1000):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        # Insertion ordered: the first entry is always the oldest write
        self._entries: Dict[Hashable, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the live value for key, evicting it if it has expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        now = self._clock()
        self._entries.pop(key, None)
        self.prune(now)
        while len(self._entries) >= self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug("Cache full, evicted: %s", oldest)
        self._entries[key] = CacheEntry(value=value, stored_at=now, ttl=ttl or self.ttl_seconds)

    def get_or_compute(self, key: Hashable, compute_fn: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        entry = self._entries.get(key)
        if entry is not None and not entry.expired(self._clock()):
            self.hits += 1
            logger.debug("Cache hit: %s", key)
            return entry.value

        self.misses += 1
        logger.debug("Cache miss: %s", key)
        value = compute_fn()
        self.set(key, value, ttl)
        return value

    def prune(self, now: Optional[float] = None) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock() if now is None else now
        expired = [key for key, entry in self._entries.items() if entry.expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def invalidate(self, key: Hashable) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        """Number of live (unexpired) entries."""
        now = self._clock()
        return sum(1 for entry in self._entries.values() if not entry.expired(now))

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None
