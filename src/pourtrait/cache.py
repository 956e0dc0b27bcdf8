"""
In-memory TTL cache for external wine-data responses.

Keys hash the source id together with the normalized query, so the same
wine looked up with different casing or spacing hits the same entry.
"""

import hashlib
import json
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

from pourtrait.constants import AlgorithmConstants

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    stored_at: float


class TTLCache:
    """
    Time-to-live cache with an injectable clock.

    Expired entries are dropped lazily on access.
    """

    def __init__(
        self,
        ttl_hours: float = AlgorithmConstants.EXTERNAL_CACHE_TTL_HOURS,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize cache.

        Args:
            ttl_hours: Time-to-live in hours for cache entries
            clock: Time source in seconds
        """
        self.ttl = timedelta(hours=ttl_hours)
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(namespace: str, payload: Dict[str, Any]) -> str:
        """Generate cache key from a namespace and a JSON-serializable payload."""
        cache_input = {'namespace': namespace, **payload}
        cache_str = json.dumps(cache_input, sort_keys=True, default=str)
        return hashlib.sha256(cache_str.encode()).hexdigest()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if self.clock() - entry.stored_at >= self.ttl.total_seconds():
            logger.debug(f"Cache expired for key {key[:8]}...")
            del self._entries[key]
            self.misses += 1
            return None

        self.hits += 1
        logger.debug(f"Cache HIT for key {key[:8]}...")
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, stored_at=self.clock())
        logger.debug(f"Cache SET for key {key[:8]}...")

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0
        logger.info("Cache cleared")

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            'entries': len(self._entries),
            'hits': self.hits,
            'misses': self.misses,
            'hit_rate': self.hits / total if total else 0.0,
        }
