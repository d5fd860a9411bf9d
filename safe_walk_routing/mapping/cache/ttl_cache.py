"""
In-memory TTL + max-size cache with an injectable clock.
"""

import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)

_MISSING = object()


class TTLCache:
    """
    Map with per-entry expiry and oldest-first eviction.

    Writes are plain overwrites: storing the same key again replaces the
    value and refreshes its timestamp.
    """

    def __init__(self, ttl_s: float, max_entries: int,
                 clock: Callable[[], float] = time.monotonic, name: str = "cache"):
        """
        Args:
            ttl_s: Default time-to-live in seconds
            max_entries: Entries kept before the oldest is evicted
            clock: Monotonic time source, injectable for tests
            name: Label used in logs and stats
        """
        if ttl_s <= 0:
            raise ValueError("ttl_s must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.ttl_s = ttl_s
        self.max_entries = max_entries
        self.clock = clock
        self.name = name
        self._entries: 'OrderedDict[Hashable, Tuple[float, Any]]' = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._entries.get(key, _MISSING)
        if entry is _MISSING:
            self.misses += 1
            return default
        expires_at, value = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            self.misses += 1
            return default
        self.hits += 1
        return value

    def put(self, key: Hashable, value: Any, ttl_s: Optional[float] = None) -> None:
        ttl = self.ttl_s if ttl_s is None else ttl_s
        self._entries[key] = (self.clock() + ttl, value)
        self._entries.move_to_end(key)
        if len(self._entries) > self.max_entries:
            self._evict()

    def _evict(self) -> None:
        removed = self.evict_expired()
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
            removed += 1
        if removed:
            logger.debug(f"{self.name}: evicted {removed} entries")

    def evict_expired(self) -> int:
        now = self.clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def get_stats(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'entries': len(self._entries),
            'max_entries': self.max_entries,
            'ttl_s': self.ttl_s,
            'hits': self.hits,
            'misses': self.misses,
        }
