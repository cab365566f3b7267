"""TMDB catalog adapter (primary provider)."""

from __future__ import annotations

from typing import Any

import httpx

from cinesift.domain.cancellation import CancellationToken
from cinesift.domain.entities.movie import (
    CreditEntry,
    Movie,
    MovieDetails,
    PersonCredit,
    PersonDetails,
)
from cinesift.domain.ports.cache import CachePort
from cinesift.infrastructure.common.converters import (
    derive_movie_id,
    image_or_placeholder,
    parse_rating,
    to_int,
)
from cinesift.infrastructure.providers.base import HttpxCatalogBase

_BASE_URL = "https://api.themoviedb.org/3"
_IMAGE_BASE = "https://image.tmdb.org/t/p"
_POSTER_BASE = f"{_IMAGE_BASE}/w500"
_BACKDROP_BASE = f"{_IMAGE_BASE}/original"
_PROFILE_BASE = f"{_IMAGE_BASE}/w185"

_MAX_CAST = 10
_CREW_JOBS = frozenset({"Director", "Screenplay", "Writer", "Producer"})


def _profile_url(raw: Any) -> str | None:
    if isinstance(raw, str) and raw:
        return f"{_PROFILE_BASE}{raw}"
    return None


class TmdbCatalog(HttpxCatalogBase):
    """Async TMDB adapter (v3 API).

    Authenticates with the v4 read access token when configured, otherwise
    with the v3 ``api_key`` query parameter.
    """

    name = "tmdb"
    base_url = _BASE_URL

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        cache: CachePort,
        api_key: str | None = None,
        read_access_token: str | None = None,
        language: str = "en-US",
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
        self._read_access_token = read_access_token
        self._language = language

    def _headers(self) -> dict[str, str]:
        if self._read_access_token:
            return {"Authorization": f"Bearer {self._read_access_token}"}
        return {}

    def _params(self, **extra: Any) -> dict[str, Any]:
        params: dict[str, Any] = {"language": self._language, **extra}
        if self._api_key and not self._read_access_token:
            params["api_key"] = self._api_key
        return params

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def _to_movie(self, item: dict[str, Any], index: int = 0) -> Movie:
        return Movie(
            id=derive_movie_id(item.get("id"), index),
            title=item.get("title") or item.get("original_title") or "Unknown Title",
            poster_path=image_or_placeholder(
                item.get("poster_path"), prefix=_POSTER_BASE
            ),
            backdrop_path=image_or_placeholder(
                item.get("backdrop_path"), prefix=_BACKDROP_BASE
            ),
            release_date=str(item.get("release_date") or ""),
            vote_average=parse_rating(item.get("vote_average")),
            vote_count=to_int(item.get("vote_count")) or 0,
            overview=item.get("overview") or "",
            imdb_id=item.get("imdb_id") or None,
            source=self.name,
        )

    def _results(self, data: Any) -> list[Movie]:
        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            raise self._malformed("missing results list")
        items = [r for r in data["results"] if isinstance(r, dict)]
        return [
            self._mapped("result item", self._to_movie, r, i)
            for i, r in enumerate(items[: self._max_results])
        ]

    @staticmethod
    def _credit(entry: dict[str, Any], role_field: str) -> CreditEntry:
        return CreditEntry(
            id=to_int(entry.get("id")) or 0,
            name=entry.get("name") or "Unknown",
            role=entry.get(role_field) or "",
            profile_path=_profile_url(entry.get("profile_path")),
        )

    def _to_details(self, data: dict[str, Any]) -> MovieDetails:
        credits = data.get("credits") or {}
        cast = [
            self._credit(c, "character")
            for c in (credits.get("cast") or [])[:_MAX_CAST]
        ]
        crew = [
            self._credit(c, "job")
            for c in credits.get("crew") or []
            if c.get("job") in _CREW_JOBS
        ]
        return MovieDetails(
            movie=self._to_movie(data),
            genres=[g.get("name", "") for g in data.get("genres") or []],
            runtime=to_int(data.get("runtime")) or None,
            tagline=data.get("tagline") or "",
            budget=to_int(data.get("budget")) or 0,
            revenue=to_int(data.get("revenue")) or 0,
            production_companies=[
                c.get("name", "") for c in data.get("production_companies") or []
            ],
            spoken_languages=[
                lang.get("english_name") or lang.get("name", "")
                for lang in data.get("spoken_languages") or []
            ],
            cast=cast,
            crew=crew,
        )

    def _to_person(
        self, person: dict[str, Any], credits: dict[str, Any]
    ) -> PersonDetails:
        return PersonDetails(
            id=to_int(person.get("id")) or 0,
            name=person.get("name") or "Unknown",
            biography=person.get("biography") or "",
            birthday=person.get("birthday") or None,
            deathday=person.get("deathday") or None,
            place_of_birth=person.get("place_of_birth") or None,
            known_for_department=person.get("known_for_department") or "",
            popularity=float(person.get("popularity") or 0.0),
            profile_path=_profile_url(person.get("profile_path")),
            cast=[
                PersonCredit(self._to_movie(c, i), c.get("character") or "")
                for i, c in enumerate(credits.get("cast") or [])
            ],
            crew=[
                PersonCredit(self._to_movie(c, i), c.get("job") or "")
                for i, c in enumerate(credits.get("crew") or [])
            ],
        )

    # ------------------------------------------------------------------
    # CatalogProviderPort
    # ------------------------------------------------------------------

    async def search(self, query: str, token: CancellationToken) -> list[Movie]:
        if not query.strip():
            return []
        data = await self._get_json(
            "/search/movie",
            token=token,
            query=query.strip(),
            page=1,
            include_adult="false",
        )
        movies = self._results(data)
        self._log.debug("tmdb_search", query=query, count=len(movies))
        return movies

    async def fetch_trending(self) -> list[Movie]:
        cached = await self._cached_trending()
        if cached is not None:
            return cached
        data = await self._get_json("/trending/movie/week")
        return await self._store_trending(self._results(data))

    async def fetch_details(self, movie_id: int) -> MovieDetails:
        key = self._cache_key("details", movie_id)
        cached = await self._cached_details(key)
        if cached is not None:
            return cached
        data = await self._get_json(
            f"/movie/{movie_id}", append_to_response="credits"
        )
        if not isinstance(data, dict) or "id" not in data:
            raise self._malformed("details without id")
        details = self._mapped("details", self._to_details, data)
        return await self._store_details(key, details)

    async def fetch_details_by_imdb_id(self, imdb_id: str) -> MovieDetails | None:
        data = await self._get_json(f"/find/{imdb_id}", external_source="imdb_id")
        if not isinstance(data, dict):
            raise self._malformed("find response is not an object")
        matches = data.get("movie_results") or []
        if not matches:
            return None
        tmdb_id = self._mapped(
            "find result", lambda found: to_int(found[0].get("id")), matches
        )
        if tmdb_id is None:
            return None
        return await self.fetch_details(tmdb_id)

    # ------------------------------------------------------------------
    # PersonLookupPort
    # ------------------------------------------------------------------

    async def fetch_person(self, person_id: int) -> PersonDetails:
        """Profile and movie credits, two requests, cached like details."""
        key = self._cache_key("person", person_id)
        cached = await self._cached_details(key)
        if cached is not None:
            return cached
        person = await self._get_json(f"/person/{person_id}")
        if not isinstance(person, dict) or "id" not in person:
            raise self._malformed("person without id")
        credits = await self._get_json(f"/person/{person_id}/movie_credits")
        if not isinstance(credits, dict):
            raise self._malformed("movie_credits is not an object")
        details = self._mapped("person", self._to_person, person, credits)
        self._log.debug(
            "tmdb_person",
            person_id=person_id,
            cast=len(details.cast),
            crew=len(details.crew),
        )
        return await self._store_details(key, details)
