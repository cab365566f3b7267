"""Decide which result set to render while a search is in flight."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from cinesift.domain.entities.movie import Movie
from cinesift.domain.entities.search import normalize_query


@dataclass(frozen=True)
class StabilizedView:
    query: str
    results: tuple[Movie, ...]
    stale: bool = False


def is_refinement(previous: str, current: str) -> bool:
    """True when *current* continues typing (or backspacing) *previous*."""
    prev = normalize_query(previous)
    cur = normalize_query(current)
    if not prev or not cur:
        return False
    return cur.startswith(prev) or prev.startswith(cur)


def stabilize(
    current_query: str,
    current_results: Sequence[Movie],
    loading: bool,
    stable_query: str,
    stable_results: Sequence[Movie],
) -> StabilizedView:
    """Pick the results to display.

    While loading a refinement of the last stable query, keep showing the
    last stable results instead of an empty grid.  Anything else shows
    the current state as-is.
    """
    if loading and stable_results and is_refinement(stable_query, current_query):
        return StabilizedView(
            query=normalize_query(stable_query),
            results=tuple(stable_results),
            stale=True,
        )
    return StabilizedView(
        query=normalize_query(current_query),
        results=tuple(current_results),
    )
