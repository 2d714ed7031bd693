"""
Short-TTL in-process response cache.
"""

import copy
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from shared.logging import get_logger


CATALOG_PREFIX = "catalog:"
DEFAULT_CATALOG_TTL = 300


@dataclass
class CacheEntry:
    key: str
    payload: Any
    stored_at: float


def make_catalog_key(include_inactive: bool, limit: int, offset: int) -> str:
    """Key for a product listing; distinct query shapes never share a key."""
    scope = "all" if include_inactive else "active"
    return f"{CATALOG_PREFIX}products:{scope}:limit={limit}:offset={offset}"


def make_product_key(product_id: int) -> str:
    """Key for a single active product lookup."""
    return f"{CATALOG_PREFIX}product:{product_id}"


class ResponseCache:
    """TTL cache with prefix invalidation.

    Every invalidation bumps a generation counter. Readers capture the
    generation before querying the store and pass it to :meth:`put`; a
    payload computed before an invalidation is then discarded instead of
    resurrecting pre-write data.
    """

    def __init__(self, name: str = "catalog", ttl_seconds: int = DEFAULT_CATALOG_TTL,
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._generation = 0
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()
        self.logger = get_logger(f"storefront.cache.{name}")

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(self, key: str) -> Tuple[Optional[Any], bool]:
        """Return ``(payload, hit)``; expired entries count as misses and are dropped."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._clock() - entry.stored_at >= self.ttl_seconds:
                del self._entries[key]
                entry = None

            if entry is None:
                self._misses += 1
                return None, False

            self._hits += 1
            return copy.deepcopy(entry.payload), True

    def put(self, key: str, payload: Any, generation: Optional[int] = None) -> bool:
        """Store a payload. Returns False when ``generation`` is stale."""
        with self._lock:
            if generation is not None and generation != self._generation:
                stale = True
            else:
                stale = False
                self._entries[key] = CacheEntry(key=key, payload=copy.deepcopy(payload), stored_at=self._clock())

        if stale:
            self.logger.debug("Discarded stale cache fill", key=key)
            return False
        return True

    def invalidate(self, prefix: str = "") -> int:
        """Drop every entry whose key starts with ``prefix``."""
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
            self._generation += 1

        self.logger.info("Cache invalidated", prefix=prefix, keys_count=len(doomed))
        return len(doomed)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            now = self._clock()
            live = sum(1 for entry in self._entries.values() if now - entry.stored_at < self.ttl_seconds)
            total = self._hits + self._misses
            return {
                "name": self.name,
                "entries": live,
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "hit_ratio": round(self._hits / total, 4) if total else 0.0,
                "generation": self._generation,
            }
