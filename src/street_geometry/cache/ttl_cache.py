"""
In-memory key/value cache with per-entry expiry.

The cache is owned by whoever creates it and is passed explicitly to the
components that use it; nothing in this package keeps a module-level
instance.
"""

import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class TTLCache:
    """Thread-safe cache whose entries expire ttl_s seconds after being set."""

    def __init__(
        self,
        ttl_s: float,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize cache.

        Args:
            ttl_s: Entry lifetime in seconds
            max_entries: Oldest entries are evicted beyond this size
            clock: Time source, injectable for tests
        """
        if ttl_s <= 0:
            raise ValueError("ttl_s must be positive")

        self.ttl_s = ttl_s
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable) -> Optional[Any]:
        """Get a live value, or None when missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            stored_at, value = entry
            if self._clock() - stored_at >= self.ttl_s:
                del self._entries[key]
                self.misses += 1
                return None

            self.hits += 1
            return value

    def set(self, key: Hashable, value: Any) -> None:
        """Store a value, evicting the oldest entry when full."""
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (self._clock(), value)

            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    oldest = next(iter(self._entries))
                    del self._entries[oldest]

    def purge_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, (stored_at, _) in self._entries.items() if now - stored_at >= self.ttl_s]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_statistics(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            total = self.hits + self.misses
            return {
                "entries": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": self.hits / total if total > 0 else 0.0,
            }

    def __len__(self) -> int:
        return len(self._entries)
