"""Tests for ImdbCatalog (RapidAPI IMDb adapter)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from cinesift.domain.cancellation import CancellationToken
from cinesift.domain.errors import ProviderUnavailableError
from cinesift.infrastructure.common.converters import PLACEHOLDER_IMAGE
from cinesift.infrastructure.providers.imdb import ImdbCatalog

_KEY = "rapid-key"
_HOST = "imdb-com.p.rapidapi.com"
_BASE = f"https://{_HOST}"


@pytest.fixture()
def http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient()


@pytest.fixture()
def catalog(http_client: httpx.AsyncClient, mock_cache: AsyncMock) -> ImdbCatalog:
    return ImdbCatalog(rapidapi_key=_KEY, http_client=http_client, cache=mock_cache)


_FIND_RESPONSE = {
    "results": [
        {
            "id": "/title/tt0372784/",
            "title": "Batman Begins",
            "titleType": "movie",
            "year": 2005,
            "image": {"url": "https://m.media-amazon.com/bb.jpg"},
        },
        {
            "id": "/title/tt0112178/",
            "title": "Batman",
            "titleType": "tvSeries",
            "year": 1966,
        },
        {
            "id": "/title/tt1877830/",
            "titleText": {"text": "The Batman"},
            "titleType": "movie",
            "ratingsSummary": {"aggregateRating": 7.8, "voteCount": 800000},
        },
    ]
}

_OVERVIEW = {
    "id": "/title/tt0111161/",
    "title": {
        "title": "The Shawshank Redemption",
        "year": 1994,
        "image": {"url": "https://m.media-amazon.com/shaw.jpg"},
        "runningTimeInMinutes": 142,
    },
    "ratings": {"rating": 9.3, "ratingCount": 2800000},
    "genres": ["Drama"],
    "plotSummary": {"text": "Two imprisoned men bond. Over a number of years."},
}


class TestSearch:
    @respx.mock
    async def test_keeps_movies_only(self, catalog: ImdbCatalog) -> None:
        route = respx.get(f"{_BASE}/title/find").respond(json=_FIND_RESPONSE)

        movies = await catalog.search("batman", CancellationToken())

        assert [m.title for m in movies] == ["Batman Begins", "The Batman"]
        assert route.calls.last.request.url.params["q"] == "batman"

    @respx.mock
    async def test_maps_flat_and_nested_fields(self, catalog: ImdbCatalog) -> None:
        respx.get(f"{_BASE}/title/find").respond(json=_FIND_RESPONSE)

        begins, the_batman = await catalog.search("batman", CancellationToken())

        assert begins.id == 372784
        assert begins.imdb_id == "tt0372784"
        assert begins.source == "imdb"
        assert begins.release_date == "2005"
        assert begins.poster_path == "https://m.media-amazon.com/bb.jpg"
        assert begins.backdrop_path == begins.poster_path
        assert begins.vote_average == 0.0
        assert begins.overview == "No plot available."

        assert the_batman.vote_average == 7.8
        assert the_batman.vote_count == 800000
        assert the_batman.release_date == "N/A"
        assert the_batman.poster_path == PLACEHOLDER_IMAGE

    @respx.mock
    async def test_sends_rapidapi_headers(self, catalog: ImdbCatalog) -> None:
        route = respx.get(f"{_BASE}/title/find").respond(json={"results": []})

        await catalog.search("batman", CancellationToken())

        headers = route.calls.last.request.headers
        assert headers["X-RapidAPI-Key"] == _KEY
        assert headers["X-RapidAPI-Host"] == _HOST

    @respx.mock
    async def test_missing_results_is_empty(self, catalog: ImdbCatalog) -> None:
        respx.get(f"{_BASE}/title/find").respond(json={})
        assert await catalog.search("zzz", CancellationToken()) == []

    @respx.mock
    async def test_non_object_payload(self, catalog: ImdbCatalog) -> None:
        respx.get(f"{_BASE}/title/find").respond(json=["unexpected"])
        with pytest.raises(ProviderUnavailableError, match="malformed"):
            await catalog.search("batman", CancellationToken())

    @respx.mock
    async def test_quota_exceeded(self, catalog: ImdbCatalog) -> None:
        respx.get(f"{_BASE}/title/find").respond(status_code=429)
        with pytest.raises(ProviderUnavailableError, match="HTTP 429"):
            await catalog.search("batman", CancellationToken())


class TestTrending:
    @respx.mock
    async def test_resolves_each_id(
        self, catalog: ImdbCatalog, mock_cache: AsyncMock
    ) -> None:
        respx.get(f"{_BASE}/title/get-most-popular-movies").respond(
            json=["/title/tt0111161/", "/title/tt0068646/"]
        )
        overview = respx.get(f"{_BASE}/title/get-overview-details")
        overview.side_effect = [
            httpx.Response(200, json=_OVERVIEW),
            httpx.Response(500),
        ]

        movies = await catalog.fetch_trending()

        # the failed lookup is skipped, not fatal
        assert [m.title for m in movies] == ["The Shawshank Redemption"]
        assert movies[0].vote_average == 9.3
        assert overview.call_count == 2
        mock_cache.set.assert_awaited_once()

    @respx.mock
    async def test_non_list_payload(self, catalog: ImdbCatalog) -> None:
        respx.get(f"{_BASE}/title/get-most-popular-movies").respond(json={"x": 1})
        with pytest.raises(ProviderUnavailableError):
            await catalog.fetch_trending()


class TestDetails:
    @respx.mock
    async def test_by_numeric_id_pads_tt(self, catalog: ImdbCatalog) -> None:
        route = respx.get(f"{_BASE}/title/get-overview-details").respond(
            json=_OVERVIEW
        )

        details = await catalog.fetch_details(111161)

        assert route.calls.last.request.url.params["tconst"] == "tt0111161"
        assert details.title == "The Shawshank Redemption"
        assert details.runtime == 142
        assert details.genres == ["Drama"]
        assert details.tagline == "Two imprisoned men bond."

    @respx.mock
    async def test_scalar_collections_are_ignored(self, catalog: ImdbCatalog) -> None:
        respx.get(f"{_BASE}/title/get-overview-details").respond(
            json={
                **_OVERVIEW,
                "genres": "Drama",
                "directors": "Frank Darabont",
                "spokenLanguages": "English",
            }
        )

        details = await catalog.fetch_details_by_imdb_id("tt0111161")

        assert details.genres == []
        assert details.crew == []
        assert details.spoken_languages == []

    @respx.mock
    async def test_cached_details_skip_request(
        self, catalog: ImdbCatalog, mock_cache: AsyncMock
    ) -> None:
        cached = object()
        mock_cache.get.return_value = cached
        route = respx.get(f"{_BASE}/title/get-overview-details")

        assert await catalog.fetch_details_by_imdb_id("tt0111161") is cached
        mock_cache.get.assert_awaited_with("imdb:details:tt0111161")
        assert not route.called
