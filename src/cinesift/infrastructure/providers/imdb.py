"""IMDb catalog adapter (RapidAPI ``imdb-com`` gateway), the secondary provider.

The gateway's payloads are loosely shaped: the same endpoint returns
flat fields (``title``, ``image``, ``rating``) for some titles and nested
GraphQL-style ones (``titleText.text``, ``primaryImage.url``,
``ratingsSummary.aggregateRating``) for others, so the mapping accepts
both.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any

import httpx

from cinesift.domain.cancellation import CancellationToken
from cinesift.domain.entities.movie import CreditEntry, Movie, MovieDetails
from cinesift.domain.errors import ProviderUnavailableError
from cinesift.domain.ports.cache import CachePort
from cinesift.infrastructure.common.converters import (
    derive_movie_id,
    format_imdb_id,
    image_or_placeholder,
    parse_rating,
    to_int,
)
from cinesift.infrastructure.providers.base import HttpxCatalogBase

_DEFAULT_HOST = "imdb-com.p.rapidapi.com"
_TT_RE = re.compile(r"tt\d+")
_MAX_TRENDING_LOOKUPS = 20
_MAX_CAST = 10


def _dig(data: Any, *path: str) -> Any:
    """Follow *path* through nested dicts, None when any hop is missing."""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _first(*values: Any) -> Any:
    for value in values:
        if value not in (None, "", [], {}):
            return value
    return None


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _extract_tt(raw: Any) -> str | None:
    """``"/title/tt0111161/"`` or ``"tt0111161"`` → ``"tt0111161"``."""
    if not isinstance(raw, str):
        return None
    match = _TT_RE.search(raw)
    return match.group(0) if match else None


class ImdbCatalog(HttpxCatalogBase):
    """Async IMDb adapter through RapidAPI."""

    name = "imdb"

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        cache: CachePort,
        rapidapi_key: str,
        host: str = _DEFAULT_HOST,
        timeout: float = 8.0,
        max_results: int = 20,
    ) -> None:
        super().__init__(
            http_client=http_client,
            cache=cache,
            timeout=timeout,
            max_results=max_results,
        )
        self._key = rapidapi_key
        self._host = host
        self.base_url = f"https://{host}"

    def _headers(self) -> dict[str, str]:
        return {"X-RapidAPI-Host": self._host, "X-RapidAPI-Key": self._key}

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def _to_movie(self, item: dict[str, Any], index: int = 0) -> Movie:
        imdb_id = _extract_tt(item.get("id"))
        title = _first(
            item.get("title") if isinstance(item.get("title"), str) else None,
            _dig(item, "title", "title"),
            _dig(item, "titleText", "text"),
        )
        image = _first(
            item.get("image") if isinstance(item.get("image"), str) else None,
            _dig(item, "image", "url"),
            _dig(item, "title", "image", "url"),
            _dig(item, "primaryImage", "url"),
        )
        year = _first(
            item.get("year"),
            _dig(item, "title", "year"),
            _dig(item, "releaseYear", "year"),
        )
        rating = _first(
            item.get("rating") if not isinstance(item.get("rating"), dict) else None,
            _dig(item, "ratings", "rating"),
            _dig(item, "ratingsSummary", "aggregateRating"),
        )
        votes = _first(
            item.get("ratingCount"),
            _dig(item, "ratings", "ratingCount"),
            _dig(item, "ratingsSummary", "voteCount"),
        )
        plot = _first(
            item.get("plot") if isinstance(item.get("plot"), str) else None,
            _dig(item, "plotSummary", "text"),
            _dig(item, "plotOutline", "text"),
            _dig(item, "plot", "plotText", "plainText"),
        )
        poster = image_or_placeholder(image)
        return Movie(
            id=derive_movie_id(imdb_id, index),
            title=title or "Unknown Title",
            poster_path=poster,
            backdrop_path=poster,
            release_date=str(year) if year else "N/A",
            vote_average=parse_rating(rating),
            vote_count=to_int(votes) or 0,
            overview=plot or "No plot available.",
            imdb_id=imdb_id,
            source=self.name,
        )

    def _to_details(self, data: dict[str, Any]) -> MovieDetails:
        movie = self._to_movie(data)
        genres = [
            g.get("text", "") if isinstance(g, dict) else str(g)
            for g in _as_list(
                _first(data.get("genres"), _dig(data, "titleGenres", "genres"))
            )
        ]
        runtime_seconds = to_int(_dig(data, "runtime", "seconds"))
        if runtime_seconds:
            runtime: int | None = runtime_seconds // 60
        else:
            runtime = to_int(_dig(data, "title", "runningTimeInMinutes")) or None

        principal = data.get("principalCredits")
        cast_items: list[Any] = []
        if isinstance(principal, list) and principal and isinstance(principal[0], dict):
            cast_items = principal[0].get("credits") or []
        cast = [
            CreditEntry(
                id=i + 1,
                name=self._person_name(c),
                role=self._character(c),
                profile_path=_dig(c, "name", "primaryImage", "url"),
            )
            for i, c in enumerate(cast_items[:_MAX_CAST])
            if isinstance(c, dict)
        ]
        crew = [
            CreditEntry(id=i + 1, name=name, role="Director")
            for i, name in enumerate(self._directors(data))
        ]
        tagline = ""
        plot = _dig(data, "plotSummary", "text")
        if isinstance(plot, str) and plot:
            tagline = plot.split(".")[0] + "."
        return MovieDetails(
            movie=movie,
            genres=[g for g in genres if g],
            runtime=runtime,
            tagline=tagline,
            production_companies=[
                _first(_dig(c, "company", "companyText", "text"), c.get("name"))
                or "Unknown"
                for c in _as_list(data.get("productionCompanies"))
                if isinstance(c, dict)
            ],
            spoken_languages=[
                lang.get("text", "") if isinstance(lang, dict) else str(lang)
                for lang in _as_list(data.get("spokenLanguages"))
            ],
            cast=cast,
            crew=crew,
        )

    @staticmethod
    def _person_name(credit: dict[str, Any]) -> str:
        name = credit.get("name")
        if isinstance(name, str) and name:
            return name
        return _dig(credit, "name", "nameText", "text") or "Unknown"

    @staticmethod
    def _character(credit: dict[str, Any]) -> str:
        characters = credit.get("characters")
        if isinstance(characters, list) and characters:
            first = characters[0]
            if isinstance(first, dict):
                return first.get("name") or "Actor"
            return str(first)
        return "Actor"

    @classmethod
    def _directors(cls, data: dict[str, Any]) -> list[str]:
        names: list[str] = []
        for director in _as_list(data.get("directors")):
            if isinstance(director, str):
                names.append(director)
                continue
            if not isinstance(director, dict):
                continue
            credits = director.get("credits")
            if isinstance(credits, list) and credits and isinstance(credits[0], dict):
                names.append(cls._person_name(credits[0]))
            else:
                names.append(cls._person_name(director))
        return names

    # ------------------------------------------------------------------
    # CatalogProviderPort
    # ------------------------------------------------------------------

    async def search(self, query: str, token: CancellationToken) -> list[Movie]:
        if not query.strip():
            return []
        data = await self._get_json("/title/find", token=token, q=query.strip())
        if not isinstance(data, dict):
            raise self._malformed("search response is not an object")
        results = data.get("results") or []
        if not isinstance(results, list):
            raise self._malformed("results is not a list")
        items = [
            r for r in results if isinstance(r, dict) and r.get("titleType") == "movie"
        ]
        movies = [
            self._mapped("search item", self._to_movie, r, i)
            for i, r in enumerate(items[: self._max_results])
        ]
        self._log.debug("imdb_search", query=query, count=len(movies))
        return movies

    async def _overview(self, imdb_id: str) -> dict[str, Any]:
        data = await self._get_json(
            "/title/get-overview-details", tconst=imdb_id, currentCountry="US"
        )
        if not isinstance(data, dict) or not data:
            raise self._malformed(f"empty overview for {imdb_id}")
        data.setdefault("id", imdb_id)
        return data

    async def _trending_entry(self, imdb_id: str, index: int) -> Movie | None:
        try:
            overview = await self._overview(imdb_id)
            return self._mapped("trending entry", self._to_movie, overview, index)
        except ProviderUnavailableError:
            self._log.debug("imdb_trending_entry_skipped", imdb_id=imdb_id)
            return None

    async def fetch_trending(self) -> list[Movie]:
        cached = await self._cached_trending()
        if cached is not None:
            return cached
        data = await self._get_json(
            "/title/get-most-popular-movies",
            homeCountry="US",
            purchaseCountry="US",
            currentCountry="US",
        )
        if not isinstance(data, list):
            raise self._malformed("popular movies is not a list")
        ids = [tt for tt in (_extract_tt(raw) for raw in data) if tt]
        entries = await asyncio.gather(
            *(
                self._trending_entry(tt, i)
                for i, tt in enumerate(ids[:_MAX_TRENDING_LOOKUPS])
            )
        )
        movies = [m for m in entries if m is not None]
        self._log.debug("imdb_trending", requested=len(ids), resolved=len(movies))
        return await self._store_trending(movies)

    async def fetch_details(self, movie_id: int) -> MovieDetails:
        return await self._details(format_imdb_id(movie_id))

    async def fetch_details_by_imdb_id(self, imdb_id: str) -> MovieDetails | None:
        return await self._details(imdb_id)

    async def _details(self, imdb_id: str) -> MovieDetails:
        key = self._cache_key("details", imdb_id)
        cached = await self._cached_details(key)
        if cached is not None:
            return cached
        data = await self._overview(imdb_id)
        details = self._mapped("details", self._to_details, data)
        return await self._store_details(key, details)
