"""Time-bounded, size-bounded in-memory cache of search results."""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import structlog

from cinesift.domain.entities.movie import Movie
from cinesift.domain.entities.search import normalize_query

log = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_MAX_ENTRIES = 256


@dataclass(frozen=True)
class CacheEntry:
    results: tuple[Movie, ...]
    stored_at: float


class ResultCache:
    """LRU map of normalized query → result snapshot with lazy expiry.

    Stale entries are treated as absent and dropped when read; there is
    no background sweep.  Lookups never touch the network.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def get(self, query: str) -> tuple[Movie, ...] | None:
        key = normalize_query(query)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self._ttl:
            del self._entries[key]
            log.debug("result_cache_expired", query=key)
            return None
        self._entries.move_to_end(key)
        return entry.results

    def put(self, query: str, results: Sequence[Movie]) -> None:
        key = normalize_query(query)
        if not key:
            return
        self._entries[key] = CacheEntry(tuple(results), self._clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            log.debug("result_cache_evicted", query=evicted)

    def invalidate(self, query: str) -> bool:
        return self._entries.pop(normalize_query(query), None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, query: object) -> bool:
        return isinstance(query, str) and self.get(query) is not None
