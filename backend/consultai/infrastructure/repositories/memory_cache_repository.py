"""
In-Memory Cache Repository

Process-local cache repository honoring TTLs. Used when
``CACHE_BACKEND=memory`` (development, single-process deployments)
and as a real backend in tests.
"""

import asyncio
import fnmatch
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

from ...domain.cache.repository_interfaces import CacheRepository

logger = logging.getLogger(__name__)


class InMemoryCacheRepository(CacheRepository):
    """
    Dictionary-backed cache repository.

    Entries are stored as ``(payload, expires_at)`` and expired lazily on
    access. ``clock`` is injectable so tests can move time forward.
    """

    def __init__(
        self,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = asyncio.Lock()

    def _live_entry(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        payload, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        return payload

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            return self._live_entry(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Cache payload must be str, got {type(value).__name__}")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        async with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._purge_expired()
                if len(self._entries) >= self.max_entries:
                    # Evict the entry closest to expiry
                    victim = min(self._entries, key=lambda k: self._entries[k][1])
                    del self._entries[victim]
                    logger.debug(f"Evicted cache entry {victim} (capacity reached)")
            self._entries[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        async with self._lock:
            matched = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
            for key in matched:
                del self._entries[key]
            return len(matched)

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return self._live_entry(key) is not None

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        async with self._lock:
            payload = self._live_entry(key)
            if payload is None:
                return False
            self._entries[key] = (payload, self._clock() + ttl_seconds)
            return True

    async def health_check(self) -> Dict[str, Any]:
        async with self._lock:
            self._purge_expired()
            size = len(self._entries)
        return {
            "status": "healthy",
            "service": "memory",
            "entries": size,
            "max_entries": self.max_entries,
        }

    async def close(self) -> None:
        async with self._lock:
            self._entries.clear()
