"""Bounded TTL cache for policy, screen-time and crypto decisions."""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached value with its absolute expiry on the cache clock."""

    key: str
    value: Any
    expires_at: float


class DecisionCache:
    """Thread-safe read-through cache with per-entry expiry and LRU eviction.

    One instance serves every purpose; callers namespace their keys with a
    prefix (``access:``, ``screen:``, ``encrypt:`` ...) so different TTL
    classes never collide.
    """

    def __init__(
        self,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self.hit_count = 0
        self.miss_count = 0
        self.eviction_count = 0

    def get(self, key: str) -> Tuple[Any, bool]:
        """Return ``(value, True)`` for a live entry, ``(None, False)`` otherwise."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.miss_count += 1
                return None, False

            if self._clock() > entry.expires_at:
                del self._entries[key]
                self.miss_count += 1
                return None, False

            self._entries.move_to_end(key)
            self.hit_count += 1
            return entry.value, True

    def put(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""
        with self._lock:
            self._entries[key] = CacheEntry(key, value, self._clock() + ttl_seconds)
            self._entries.move_to_end(key)

            while len(self._entries) > self.max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                self.eviction_count += 1
                logger.debug(f"Evicted least recently used cache entry: {evicted_key}")

    def cleanup_expired(self) -> int:
        """Remove expired entries and return count of removed items."""
        with self._lock:
            now = self._clock()
            expired_keys = [
                key for key, entry in self._entries.items() if now > entry.expires_at
            ]
            for key in expired_keys:
                del self._entries[key]

        if expired_keys:
            logger.debug(f"Cleaned up {len(expired_keys)} expired cache entries")

        return len(expired_keys)

    def get_stats(self) -> Dict[str, float]:
        """Get cache statistics."""
        with self._lock:
            total = self.hit_count + self.miss_count
            return {
                "hits": self.hit_count,
                "misses": self.miss_count,
                "hit_rate": self.hit_count / total if total > 0 else 0.0,
                "evictions": self.eviction_count,
                "cached_items": len(self._entries),
                "max_entries": self.max_entries,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
