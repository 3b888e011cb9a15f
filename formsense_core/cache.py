"""
In-memory enhancement cache.

Bounded, time-expiring map from field fingerprint to a previously computed
enhancement. Eviction is by insertion order (oldest inserted goes first),
not LRU. Expired entries are dropped lazily when read.

No locking: callers share one cache from a single event loop.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .enhancement import FieldEnhancement

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: FieldEnhancement
    expires_at: float


class SimpleMemoryCache:
    """Insertion-ordered TTL cache for field enhancements."""

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            max_size: Maximum number of resident entries
            default_ttl_seconds: TTL used when ``set`` gets none
            clock: Monotonic time source in seconds
        """
        self.max_size = max_size
        self.default_ttl = default_ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[FieldEnhancement]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            logger.debug(f"Cache entry expired: {key}")
            return None
        return entry.value

    def set(self, key: str, value: FieldEnhancement, ttl_seconds: Optional[float] = None) -> None:
        if self.max_size <= 0:
            return
        # overwrite counts as a fresh insertion
        self._entries.pop(key, None)
        if len(self._entries) >= self.max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug(f"Cache full ({self.max_size}), evicted: {oldest}")
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
