"""OMDb catalog adapter: search and details, no trending endpoint."""

from __future__ import annotations

from typing import Any

import httpx

from cinesift.domain.cancellation import CancellationToken
from cinesift.domain.entities.movie import CreditEntry, Movie, MovieDetails
from cinesift.domain.ports.cache import CachePort
from cinesift.infrastructure.common.converters import (
    derive_movie_id,
    format_imdb_id,
    image_or_placeholder,
    parse_rating,
    parse_runtime_minutes,
    split_csv,
    to_int,
)
from cinesift.infrastructure.providers.base import HttpxCatalogBase

_BASE_URL = "https://www.omdbapi.com"

# OMDb reports these with Response=False, but they are answers, not outages.
_EMPTY_ANSWERS = frozenset({"movie not found!", "too many results."})


class OmdbCatalog(HttpxCatalogBase):
    """Async OMDb adapter.

    Every OMDb payload carries ``Response: "True" | "False"``; a false
    response is either a definitive empty answer or an API error
    (bad key, quota), which is reported as a provider failure.
    """

    name = "omdb"
    base_url = _BASE_URL

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        cache: CachePort,
        api_key: str,
        timeout: float = 8.0,
        max_results: int = 20,
    ) -> None:
        super().__init__(
            http_client=http_client,
            cache=cache,
            timeout=timeout,
            max_results=max_results,
        )
        self._api_key = api_key

    def _params(self, **extra: Any) -> dict[str, Any]:
        return {"apikey": self._api_key, **extra}

    def _answer(self, data: Any) -> dict[str, Any] | None:
        """Return the payload, None for an empty answer, raise on API errors."""
        if not isinstance(data, dict):
            raise self._malformed("response is not an object")
        if data.get("Response") == "True":
            return data
        error = str(data.get("Error", ""))
        if error.strip().lower() in _EMPTY_ANSWERS:
            return None
        self._log.warning("omdb_api_error", error=error)
        raise self._malformed(error or "Response=False")

    def _to_movie(self, item: dict[str, Any], index: int = 0) -> Movie:
        imdb_id = item.get("imdbID") or None
        poster = image_or_placeholder(item.get("Poster"))
        return Movie(
            id=derive_movie_id(imdb_id, index),
            title=item.get("Title") or "Unknown Title",
            poster_path=poster,
            backdrop_path=poster,
            release_date=item.get("Year") or "N/A",
            vote_average=parse_rating(item.get("imdbRating")),
            vote_count=to_int(item.get("imdbVotes")) or 0,
            overview=item.get("Plot") if item.get("Plot") not in (None, "N/A") else "",
            imdb_id=imdb_id,
            source=self.name,
        )

    def _to_details(self, data: dict[str, Any]) -> MovieDetails:
        cast = [
            CreditEntry(id=i + 1, name=name, role="Actor")
            for i, name in enumerate(split_csv(data.get("Actors")))
        ]
        crew = [
            CreditEntry(id=i + 1, name=name, role="Director")
            for i, name in enumerate(split_csv(data.get("Director")))
        ]
        return MovieDetails(
            movie=self._to_movie(data),
            genres=split_csv(data.get("Genre")),
            runtime=parse_runtime_minutes(data.get("Runtime")),
            production_companies=split_csv(data.get("Production")),
            spoken_languages=split_csv(data.get("Language")),
            revenue=to_int(data.get("BoxOffice")) or 0,
            cast=cast,
            crew=crew,
        )

    async def search(self, query: str, token: CancellationToken) -> list[Movie]:
        if not query.strip():
            return []
        data = self._answer(
            await self._get_json("/", token=token, s=query.strip(), type="movie")
        )
        if data is None:
            return []
        found = data.get("Search") or []
        if not isinstance(found, list):
            raise self._malformed("Search is not a list")
        items = [r for r in found if isinstance(r, dict)]
        movies = [
            self._mapped("search item", self._to_movie, r, i)
            for i, r in enumerate(items[: self._max_results])
        ]
        self._log.debug("omdb_search", query=query, count=len(movies))
        return movies

    async def fetch_trending(self) -> list[Movie]:
        """OMDb has no trending list."""
        return []

    async def fetch_details(self, movie_id: int) -> MovieDetails:
        details = await self.fetch_details_by_imdb_id(format_imdb_id(movie_id))
        if details is None:
            raise self._malformed(f"unknown id {movie_id}")
        return details

    async def fetch_details_by_imdb_id(self, imdb_id: str) -> MovieDetails | None:
        key = self._cache_key("details", imdb_id)
        cached = await self._cached_details(key)
        if cached is not None:
            return cached
        data = self._answer(await self._get_json("/", i=imdb_id, plot="full"))
        if data is None:
            return None
        details = self._mapped("details", self._to_details, data)
        return await self._store_details(key, details)
