"""
Bounded LRU cache with per-entry TTL.

Used to serve repeated analysis queries from the dashboard without hitting
SQLite on every poll. Entries are invalidated by key prefix when new
analysis records arrive for a strategy.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class CacheEntry:
    """A single cache entry; times come from the cache's clock."""
    value: Any
    expires_at: Optional[float]


class TTLCache:
    """Thread-safe LRU cache whose entries expire after a time-to-live."""

    def __init__(
        self,
        name: str,
        max_items: int = 1024,
        default_ttl_seconds: Optional[float] = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_items <= 0:
            raise ValueError("max_items must be positive")

        self.name = name
        self.max_items = max_items
        self.default_ttl = default_ttl_seconds
        self._clock = clock

        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value; expired entries count as misses and are dropped."""
        with self._lock:
            entry = self._entries.get(key)

            if entry is None:
                self._misses += 1
                return default

            if entry.expires_at is not None and self._clock() >= entry.expires_at:
                del self._entries[key]
                self._misses += 1
                return default

            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """
        Store a value.

        A TTL of 0 disables caching for the call; ``None`` uses the cache
        default (which may itself be ``None`` for no expiry).
        """
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        if ttl is not None and ttl <= 0:
            return

        with self._lock:
            expires_at = self._clock() + ttl if ttl is not None else None

            if key in self._entries:
                del self._entries[key]

            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

            while len(self._entries) > self.max_items:
                self._entries.popitem(last=False)
                self._evictions += 1

    def delete(self, key: str) -> bool:
        """Delete one entry."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with ``prefix``."""
        with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]

        if keys:
            logger.debug("Cache entries invalidated", cache=self.name, prefix=prefix, count=len(keys))
        return len(keys)

    def clear(self) -> None:
        """Clear all entries."""
        with self._lock:
            self._entries.clear()
        logger.info("Cache cleared", cache=self.name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, Any]:
        """Hit/miss counters for monitoring."""
        with self._lock:
            total = self._hits + self._misses
            return {
                "name": self.name,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "size": len(self._entries),
                "max_items": self.max_items,
                "hit_rate": self._hits / total if total > 0 else 0.0,
            }
