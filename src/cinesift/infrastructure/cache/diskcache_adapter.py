"""Persistent metadata cache on top of ``diskcache`` (SQLite, no daemon)."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import structlog
from diskcache import Cache as DiskCache

log = structlog.get_logger(__name__)

_T = TypeVar("_T")


class DiskcacheAdapter:
    """CachePort backed by ``diskcache.Cache``.

    diskcache is blocking, so every call runs in a worker thread.  Details
    and trending payloads survive restarts; search results never land
    here.  A small semaphore bounds concurrent SQLite access.

    Args:
        directory: Folder holding the SQLite files (created on open).
        ttl_seconds: Expiry applied when ``set()`` gets no ``ttl``.
        max_concurrent: Upper bound on simultaneous disk operations.
    """

    def __init__(
        self,
        directory: str | Path = "./.cache/cinesift",
        ttl_seconds: int = 3600,
        max_concurrent: int = 4,
    ) -> None:
        self.directory = Path(directory)
        self.default_ttl = ttl_seconds
        self._store: DiskCache | None = None
        self._io_slots = asyncio.Semaphore(max_concurrent)

    async def __aenter__(self) -> DiskcacheAdapter:
        if self._store is None:
            self._store = await asyncio.to_thread(DiskCache, str(self.directory))
            log.info(
                "metadata_cache_opened",
                backend="diskcache",
                path=str(self.directory),
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        store, self._store = self._store, None
        if store is not None:
            await asyncio.to_thread(store.close)
            log.info("metadata_cache_closed", backend="diskcache")

    async def _call(self, fn: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
        async with self._io_slots:
            return await asyncio.to_thread(fn, *args, **kwargs)

    def _opened(self) -> DiskCache:
        if self._store is None:
            raise RuntimeError(
                "DiskcacheAdapter not initialized; enter it with 'async with' first"
            )
        return self._store

    async def get(self, key: str) -> Any | None:
        value = await self._call(self._opened().get, key, default=None)
        log.debug("cache_get", key=key, hit=value is not None)
        return value

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        expire = self.default_ttl if ttl is None else ttl
        await self._call(self._opened().set, key, value, expire=expire)
        log.debug("cache_set", key=key, ttl=expire)

    async def delete(self, key: str) -> bool:
        if self._store is None:
            return False
        return bool(await self._call(self._store.delete, key))

    async def clear(self) -> None:
        if self._store is None:
            return
        removed = await self._call(self._store.clear)
        log.info("metadata_cache_cleared", backend="diskcache", removed=removed)
