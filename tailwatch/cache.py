"""
Keyed in-memory store with per-entry expiry.

Used wherever a short-lived lookup table is needed:
- Read-through cache of upstream AeroAPI responses
- Central-auth verification results
- Rate limiting counters

Each component that needs one is handed its own instance, so lifetime
and test isolation are explicit. Expired entries are dropped lazily on
access; ``sweep()`` can be called to purge them eagerly. There is no
background thread.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass
class _Entry:
    value: Any
    expires_at: float
    stored_at: float = field(default_factory=time.monotonic)


class ExpiringStore:
    """
    Thread-safe key/value store whose entries expire after a TTL.

    Args:
        ttl_seconds: Default lifetime of an entry.
        max_entries: Capacity; the oldest 10% is evicted when exceeded.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock

        self._entries: Dict[Hashable, _Entry] = {}
        self._lock = threading.RLock()

        # Statistics
        self._hits = 0
        self._misses = 0

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the live value for key, or default if absent/expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                if self._clock() < entry.expires_at:
                    self._hits += 1
                    return entry.value
                # Expired
                del self._entries[key]
            self._misses += 1
        return default

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def set(self, key: Hashable, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Store value under key for ttl_seconds (default TTL if None)."""
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        now = self._clock()
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=now + ttl, stored_at=now)

            if len(self._entries) > self.max_entries:
                self._evict_oldest()

    def get_or_set(self, key: Hashable, factory: Callable[[], Any]) -> Any:
        """
        Return the cached value for key, computing and storing it on a miss.

        The factory runs outside the lock; exceptions it raises propagate
        and nothing is cached.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value
        value = factory()
        self.set(key, value)
        return value

    def increment(self, key: Hashable) -> Tuple[int, float]:
        """
        Atomically add one to the counter under key.

        A missing or expired counter starts at 1 with the default TTL;
        a live one keeps its original expiry. Returns the new count and
        the seconds left until the counter expires.
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None or now >= entry.expires_at:
                entry = _Entry(value=0, expires_at=now + self.ttl_seconds, stored_at=now)
                self._entries[key] = entry
                if len(self._entries) > self.max_entries:
                    self._evict_oldest()
            entry.value += 1
            return entry.value, entry.expires_at - now

    def expires_in(self, key: Hashable) -> Optional[float]:
        """Seconds until key expires, or None if absent."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            remaining = entry.expires_at - self._clock()
            return remaining if remaining > 0 else None

    def delete(self, key: Hashable) -> None:
        """Remove a specific entry."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Drop all expired entries. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now >= e.expires_at]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f'Swept {len(expired)} expired entries')
        return len(expired)

    def _evict_oldest(self) -> None:
        """Remove oldest entries when over capacity."""
        entries = sorted(self._entries.items(), key=lambda x: x[1].stored_at)
        # Remove oldest 10%
        to_remove = max(1, len(entries) // 10)
        for key, _ in entries[:to_remove]:
            del self._entries[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def stats(self) -> dict:
        """Get store statistics."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                'entries': len(self._entries),
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate': self._hits / lookups if lookups > 0 else 0,
            }
