"""In-memory key-value store for local development and testing."""

import asyncio
import time
from typing import Callable, Dict, Optional, Tuple


class InMemoryKeyValueStore:
    """
    Process-local store with TTL expiry.

    Entries expire after their TTL (measured with a monotonic clock). Expired
    entries are purged lazily on writes and whenever they are read.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, Tuple[float, str]] = {}
        self._clock = clock
        self._lock = asyncio.Lock()

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        async with self._lock:
            self._cleanup()
            self._entries[key] = (self._clock() + ttl_seconds, value)

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            return self._live_value(key)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def take(self, key: str) -> Optional[str]:
        async with self._lock:
            value = self._live_value(key)
            self._entries.pop(key, None)
            return value

    async def aclose(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _live_value(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def _cleanup(self) -> None:
        """Remove expired entries."""
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
