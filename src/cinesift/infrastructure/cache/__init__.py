"""Metadata cache backends."""

from .cache_factory import CacheBackend, create_cache
from .diskcache_adapter import DiskcacheAdapter
from .memory_adapter import MemoryCacheAdapter

__all__ = [
    "CacheBackend",
    "DiskcacheAdapter",
    "MemoryCacheAdapter",
    "create_cache",
]
