"""In-process cache adapter (default metadata cache backend)."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import structlog

log = structlog.get_logger(__name__)


class MemoryCacheAdapter:
    """Dict-backed CachePort with per-entry expiry and an entry cap.

    Expired entries are dropped on read.  When a ``set()`` finds the cache
    full, every expired entry is swept first; if that frees nothing, the
    oldest writes are evicted.  Nothing survives a restart.

    Args:
        ttl_seconds: Default TTL for `set()` without explicit value.
        max_entries: Upper bound on stored entries.
        clock: Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        ttl_seconds: int = 3600,
        *,
        max_entries: int = 2048,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.default_ttl = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._data: dict[str, tuple[Any, float]] = {}

    def __len__(self) -> int:
        return len(self._data)

    async def __aenter__(self) -> MemoryCacheAdapter:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._data.clear()

    async def get(self, key: str) -> Any | None:
        entry = self._data.get(key)
        if entry is None:
            log.debug("cache_get", key=key, hit=False)
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._data[key]
            log.debug("cache_expired", key=key)
            return None
        log.debug("cache_get", key=key, hit=True)
        return value

    def _make_room(self, now: float) -> None:
        expired = [key for key, (_, at) in self._data.items() if now >= at]
        for key in expired:
            del self._data[key]
        evicted = 0
        while len(self._data) >= self.max_entries:
            del self._data[next(iter(self._data))]
            evicted += 1
        log.debug("cache_swept", expired=len(expired), evicted=evicted)

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        expire_time = ttl if ttl is not None else self.default_ttl
        now = self._clock()
        # re-inserting moves the key to the young end of the eviction order
        self._data.pop(key, None)
        if len(self._data) >= self.max_entries:
            self._make_room(now)
        self._data[key] = (value, now + expire_time)
        log.debug("cache_set", key=key, ttl=expire_time)

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def clear(self) -> None:
        self._data.clear()
