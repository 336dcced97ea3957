"""
Overpass result caching

In-process, time-bounded cache keyed by the quantized query key
(see query.cache_key). Stale entries are ignored on read, never deleted;
a newer result for the same key replaces the old entry.
"""

import time
from typing import Callable, Dict, Iterable, Optional

from loguru import logger

from .models import CacheEntry, GeoPoint


class ResultCache:
    """Maps cache keys to freshness-stamped results"""

    def __init__(self, ttl_s: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_s = ttl_s
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry stored under key, fresh or not"""
        return self._entries.get(key)

    def set(self, key: str, entry: CacheEntry) -> None:
        """Store entry under key, replacing any previous one (last writer wins)"""
        self._entries[key] = entry

    def is_fresh(self, entry: Optional[CacheEntry], now: Optional[float] = None) -> bool:
        if entry is None:
            return False
        now = self.clock() if now is None else now
        return now - entry.at < self.ttl_s

    def lookup(self, key: str) -> Optional[CacheEntry]:
        """Return the entry under key only if it is still fresh"""
        entry = self._entries.get(key)
        if self.is_fresh(entry):
            logger.debug(f"Cache hit: {key}")
            return entry
        logger.debug(f"Cache miss: {key}")
        return None

    def store(self, key: str, points: Iterable[GeoPoint]) -> CacheEntry:
        """Stamp points with the current time and store them under key"""
        entry = CacheEntry(at=self.clock(), data=tuple(points))
        self.set(key, entry)
        return entry

    def clear(self) -> None:
        self._entries.clear()
