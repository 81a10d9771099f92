"""Replay protection caches for redeemed ALTCHA tokens."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from threading import Lock
from typing import Any, Final, Protocol

from cachetools import Cache, TLRUCache

from altcha_guard.core.errors import CacheBackendError
from altcha_guard.core.settings import Settings

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

BACKEND_MEMORY: Final[str] = "memory"
BACKEND_BOUNDED: Final[str] = "bounded"


class ReplayCache(Protocol):
    """Interface shared by every replay cache backend."""

    backend: str

    def contains_active(self, token_key: str) -> bool: ...

    def insert(self, token_key: str, ttl_seconds: float) -> None: ...

    def add(self, token_key: str, ttl_seconds: float) -> bool: ...

    def sweep(self) -> int: ...

    def clear(self) -> None: ...

    def stats(self) -> dict[str, Any]: ...

    def __len__(self) -> int: ...


class MemoryReplayCache:
    """Unbounded token map guarded by a single lock.

    Entries are kept until a sweep removes them. Lookups compare against the
    clock so an expired entry never blocks a token, swept or not.
    """

    backend = BACKEND_MEMORY

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, float] = {}
        self._lock = Lock()
        self._inserts = 0
        self._sweeps = 0
        self._swept = 0

    def contains_active(self, token_key: str) -> bool:
        """Return True if the token was redeemed and its record has not expired."""
        now = self._clock()
        with self._lock:
            expires_at = self._entries.get(token_key)
        return expires_at is not None and expires_at > now

    def insert(self, token_key: str, ttl_seconds: float) -> None:
        """Record a redeemed token until `now + ttl_seconds`."""
        expires_at = self._clock() + ttl_seconds
        with self._lock:
            self._entries[token_key] = expires_at
            self._inserts += 1

    def add(self, token_key: str, ttl_seconds: float) -> bool:
        """Record the token unless an active record already exists.

        Returns True when this call created the record.
        """
        now = self._clock()
        with self._lock:
            expires_at = self._entries.get(token_key)
            if expires_at is not None and expires_at > now:
                return False
            self._entries[token_key] = now + ttl_seconds
            self._inserts += 1
            return True

    def sweep(self) -> int:
        """Remove every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, expires_at in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]
            self._sweeps += 1
            self._swept += len(expired)
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "backend": self.backend,
                "size": len(self._entries),
                "inserts": self._inserts,
                "sweeps": self._sweeps,
                "swept": self._swept,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _expires_after_ttl(_key: str, ttl_seconds: float, now: float) -> float:
    return now + ttl_seconds


class _EvictionTrackingCache(TLRUCache):
    """TLRU cache that reports capacity evictions to a callback."""

    def __init__(
        self,
        maxsize: int,
        timer: Clock,
        on_evict: Callable[[str], None],
    ) -> None:
        super().__init__(maxsize, _expires_after_ttl, timer=timer)
        self._on_evict = on_evict

    def popitem(self) -> tuple[str, float]:
        key, value = super().popitem()
        self._on_evict(key)
        return key, value

    def stored_size(self) -> int:
        """Return the number of stored entries, expired ones included."""
        # The timed cache's own __len__ and currsize expire entries first.
        return Cache.__len__(self)


class BoundedReplayCache:
    """Fixed-capacity cache with per-entry TTL enforced by the store.

    When full, the least recently used live entry is evicted to make room.
    An evicted token can be replayed until it expires at the verifier; that
    false negative is accepted in exchange for bounded memory.
    """

    backend = BACKEND_BOUNDED

    def __init__(self, max_entries: int, clock: Clock = time.monotonic) -> None:
        if max_entries <= 0:
            raise CacheBackendError(
                f"Bounded replay cache requires a positive capacity, got {max_entries}"
            )
        self.max_entries = max_entries
        self._lock = Lock()
        self._cache = _EvictionTrackingCache(max_entries, clock, self._record_eviction)
        self._inserts = 0
        self._sweeps = 0
        self._swept = 0
        self._evictions = 0

    def _record_eviction(self, token_key: str) -> None:
        # Called from inside __setitem__, the lock is already held.
        self._evictions += 1
        logger.debug("Evicted replay record under capacity pressure (%d chars)", len(token_key))

    def contains_active(self, token_key: str) -> bool:
        with self._lock:
            return token_key in self._cache

    def insert(self, token_key: str, ttl_seconds: float) -> None:
        with self._lock:
            self._cache[token_key] = ttl_seconds
            self._inserts += 1

    def add(self, token_key: str, ttl_seconds: float) -> bool:
        with self._lock:
            if token_key in self._cache:
                return False
            self._cache[token_key] = ttl_seconds
            self._inserts += 1
            return True

    def sweep(self) -> int:
        with self._lock:
            removed = len(self._cache.expire())
            self._sweeps += 1
            self._swept += removed
        return removed

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "backend": self.backend,
                "size": self._cache.stored_size(),
                "capacity": self.max_entries,
                "inserts": self._inserts,
                "sweeps": self._sweeps,
                "swept": self._swept,
                "evictions": self._evictions,
            }

    def __len__(self) -> int:
        with self._lock:
            return self._cache.stored_size()


def build_replay_cache(settings: Settings, clock: Clock = time.monotonic) -> ReplayCache:
    """Construct the replay cache backend selected by configuration."""
    backend = settings.cache_backend
    if backend == BACKEND_MEMORY:
        return MemoryReplayCache(clock=clock)
    if backend == BACKEND_BOUNDED:
        return BoundedReplayCache(settings.cache_max_entries, clock=clock)
    raise CacheBackendError(f"Unknown replay cache backend: {backend!r}")
