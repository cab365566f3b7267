"""Cache factory - builds the metadata cache adapter from config."""

from __future__ import annotations

from typing import Literal

import structlog

from cinesift.domain.ports.cache import CachePort
from cinesift.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from cinesift.infrastructure.cache.memory_adapter import MemoryCacheAdapter

log = structlog.get_logger(__name__)

CacheBackend = Literal["memory", "diskcache"]


def create_cache(
    backend: CacheBackend = "memory",
    *,
    directory: str = "./.cache/cinesift",
    ttl_seconds: int = 3600,
    max_entries: int = 2048,
) -> CachePort:
    """Create the metadata cache adapter for *backend*.

    Args:
        backend: "memory" (in-process) or "diskcache" (SQLite).
        directory: Diskcache path (ignored for memory).
        ttl_seconds: Default TTL for both backends.
        max_entries: Entry cap (memory only).

    Raises:
        ValueError: If `backend` is unknown.
    """
    log.info("cache_factory_create", backend=backend, ttl=ttl_seconds)
    if backend == "memory":
        return MemoryCacheAdapter(ttl_seconds=ttl_seconds, max_entries=max_entries)
    if backend == "diskcache":
        return DiskcacheAdapter(directory=directory, ttl_seconds=ttl_seconds)
    raise ValueError(
        f"Unknown cache backend: {backend!r}. Must be 'memory' or 'diskcache'."
    )
