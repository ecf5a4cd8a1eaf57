"""
Schema catalog cache.

Introspecting the database on every request is cheap for SQLite but not
free for a remote server.  ``CatalogCache`` holds the most recent catalog
for a configurable TTL and can be flushed explicitly (``invalidate``) after
a schema change.  A TTL of 0 disables caching entirely.

The cache is process-local; each worker keeps its own copy.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any

from talkdata.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    """The cached value and when it was stored."""
    value: Any
    created_at: float
    ttl: float
    hit_count: int = 0

    @property
    def age(self) -> float:
        return time.time() - self.created_at

    @property
    def is_expired(self) -> bool:
        return self.age > self.ttl


class CatalogCache:
    """Thread-safe single-slot TTL cache.

    Parameters
    ----------
    ttl : float
        Seconds a stored catalog stays valid.  ``0`` means never store.
    """

    def __init__(self, ttl: float = 0.0):
        self._entry: CacheEntry | None = None
        self._lock = threading.Lock()
        self._ttl = ttl
        self._hits = 0
        self._misses = 0

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def get(self) -> Any | None:
        """Return the cached catalog, or ``None`` on miss / expiry."""
        with self._lock:
            entry = self._entry
            if entry is None or entry.is_expired:
                self._entry = None
                self._misses += 1
                return None
            entry.hit_count += 1
            self._hits += 1
            return entry.value

    def put(self, value: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entry = CacheEntry(value=value, created_at=time.time(), ttl=self._ttl)
        logger.debug("Catalog cached for %.1fs", self._ttl)

    def invalidate(self) -> int:
        """Drop the cached catalog. Returns number of entries removed."""
        with self._lock:
            removed = 1 if self._entry is not None else 0
            self._entry = None
        if removed:
            logger.info("Catalog cache invalidated")
        return removed

    def stats(self) -> dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            entry = self._entry
            return {
                "enabled": self.enabled,
                "cached": entry is not None and not entry.is_expired,
                "age_seconds": round(entry.age, 3) if entry else None,
                "ttl_seconds": self._ttl,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total, 3) if total else 0.0,
            }
