"""Shared test fixtures for the cinesift test suite."""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from cinesift.domain.entities.movie import Movie

# ---------------------------------------------------------------------------
# Domain entity helpers
# ---------------------------------------------------------------------------


def make_movie(
    movie_id: int = 1,
    title: str = "Batman Begins",
    *,
    source: str = "tmdb",
    release_date: str = "2005-06-15",
    vote_average: float = 7.7,
    imdb_id: str | None = None,
) -> Movie:
    return Movie(
        id=movie_id,
        title=title,
        poster_path=f"https://image.tmdb.org/t/p/w500/{movie_id}.jpg",
        backdrop_path=f"https://image.tmdb.org/t/p/original/{movie_id}.jpg",
        release_date=release_date,
        vote_average=vote_average,
        vote_count=100,
        overview=f"Overview of {title}",
        imdb_id=imdb_id,
        source=source,
    )


def make_movies(count: int, *, source: str = "tmdb", start: int = 1) -> list[Movie]:
    return [
        make_movie(start + i, f"Movie {start + i}", source=source)
        for i in range(count)
    ]


@pytest.fixture()
def movie() -> Movie:
    return make_movie()


@pytest.fixture()
def movie_factory() -> Callable[..., Movie]:
    return make_movie


@pytest.fixture()
def movies_factory() -> Callable[..., list[Movie]]:
    return make_movies


# ---------------------------------------------------------------------------
# Mock port fixtures
# ---------------------------------------------------------------------------


def make_provider(
    name: str,
    *,
    results: list[Movie] | None = None,
    trending: list[Movie] | None = None,
) -> AsyncMock:
    """Mock CatalogProviderPort with async search/trending/details."""
    provider = AsyncMock()
    provider.name = name
    provider.search = AsyncMock(return_value=results or [])
    provider.fetch_trending = AsyncMock(return_value=trending or [])
    provider.fetch_details = AsyncMock()
    provider.fetch_details_by_imdb_id = AsyncMock(return_value=None)
    return provider


@pytest.fixture()
def provider_factory() -> Callable[..., AsyncMock]:
    return make_provider


@pytest.fixture()
def mock_health() -> MagicMock:
    """ProviderHealthPort that allows everything."""
    health = MagicMock()
    health.allow.return_value = True
    return health


@pytest.fixture()
def mock_cache() -> AsyncMock:
    """Mock CachePort (always a miss)."""
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock()
    cache.delete = AsyncMock(return_value=True)
    cache.clear = AsyncMock()
    cache.aclose = AsyncMock()
    return cache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()
