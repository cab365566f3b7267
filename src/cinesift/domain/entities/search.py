"""Domain entities for the search pipeline (queries, outcomes, snapshots)."""

from __future__ import annotations

from dataclasses import dataclass

from cinesift.domain.entities.movie import Movie

# Source label used when results come from the last-resort trending list.
TRENDING_SOURCE = "trending"


def normalize_query(text: str) -> str:
    """Return the cache/dedup key for *text*.

    Trims, case-folds and collapses inner whitespace, so
    ``normalize_query(" Inception ") == normalize_query("inception")``.
    """
    return " ".join(text.split()).casefold()


@dataclass(frozen=True)
class SearchQuery:
    """Raw user input plus its normalized key."""

    raw: str

    @property
    def normalized(self) -> str:
        return normalize_query(self.raw)

    @property
    def text(self) -> str:
        """Trimmed text sent to providers."""
        return self.raw.strip()

    @property
    def is_empty(self) -> bool:
        return not self.normalized


@dataclass(frozen=True)
class SearchOutcome:
    """Result of one traversal of the fallback chain."""

    results: tuple[Movie, ...]
    source: str
    last_resort: bool = False


@dataclass(frozen=True)
class StableResultView:
    """Last known-good result set and the query that produced it."""

    query: str = ""
    results: tuple[Movie, ...] = ()


@dataclass(frozen=True)
class SearchSnapshot:
    """What the UI layer renders: results, loading flag and error."""

    query: str = ""
    results: tuple[Movie, ...] = ()
    loading: bool = False
    error: str | None = None
    source: str | None = None
    stale: bool = False
