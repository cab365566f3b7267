"""Provider fallback chain: primary → secondary → last-resort trending."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import structlog

from cinesift.domain.cancellation import CancellationToken
from cinesift.domain.entities.movie import Movie, MovieDetails, PersonDetails
from cinesift.domain.entities.search import TRENDING_SOURCE, SearchOutcome
from cinesift.domain.errors import (
    AllProvidersExhaustedError,
    NoMatchesError,
    ProviderUnavailableError,
)
from cinesift.domain.ports.catalog import CatalogProviderPort, PersonLookupPort
from cinesift.domain.ports.health import ProviderHealthPort

log = structlog.get_logger(__name__)


def dedupe(movies: Iterable[Movie], limit: int) -> tuple[Movie, ...]:
    """Drop repeated ``(source, id)`` pairs, keep order, cap at *limit*."""
    seen: set[tuple[str, int]] = set()
    out: list[Movie] = []
    for movie in movies:
        key = (movie.source, movie.id)
        if key in seen:
            continue
        seen.add(key)
        out.append(movie)
        if len(out) >= limit:
            break
    return tuple(out)


class FallbackCoordinator:
    """Try providers in strict priority order until one yields results.

    Provider failures and empty answers are absorbed here.  Only
    ``AllProvidersExhaustedError`` leaves ``resolve()``; cancellation
    propagates untouched and never advances the chain.

    Every call starts again at the primary provider; nothing about a
    previous fallback is remembered except what the health tracker
    (circuit breaker) records.
    """

    def __init__(
        self,
        providers: Sequence[CatalogProviderPort],
        *,
        health: ProviderHealthPort | None = None,
        max_results: int = 20,
    ) -> None:
        if not providers:
            raise ValueError("at least one provider is required")
        self._providers = list(providers)
        self._health = health
        self._max_results = max_results

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self._providers]

    def _reachable(self, provider: CatalogProviderPort) -> bool:
        if self._health is None:
            return True
        return self._health.allow(provider.name)

    def _record(self, provider: CatalogProviderPort, ok: bool) -> None:
        if self._health is None:
            return
        if ok:
            self._health.record_success(provider.name)
        else:
            self._health.record_failure(provider.name)

    async def _search_one(
        self,
        provider: CatalogProviderPort,
        query: str,
        token: CancellationToken,
    ) -> tuple[Movie, ...]:
        try:
            movies = await provider.search(query, token)
        except ProviderUnavailableError:
            self._record(provider, ok=False)
            raise
        self._record(provider, ok=True)
        token.raise_if_cancelled()

        results = dedupe(movies, self._max_results)
        if not results:
            raise NoMatchesError(provider.name, query)
        return results

    async def resolve(self, query: str, token: CancellationToken) -> SearchOutcome:
        """Resolve *query* through the chain.

        Raises:
            AllProvidersExhaustedError: every provider and the trending
                last resort failed or returned nothing.
        """
        attempts: list[str] = []

        for provider in self._providers:
            if not self._reachable(provider):
                log.info("provider_skipped_open_breaker", provider=provider.name)
                attempts.append(f"{provider.name}:skipped")
                continue
            try:
                results = await self._search_one(provider, query, token)
            except ProviderUnavailableError as exc:
                log.warning(
                    "provider_failed",
                    provider=provider.name,
                    query=query,
                    reason=exc.reason,
                )
                attempts.append(f"{provider.name}:failed")
                continue
            except NoMatchesError:
                log.info("provider_no_matches", provider=provider.name, query=query)
                attempts.append(f"{provider.name}:empty")
                continue

            log.info(
                "search_resolved",
                provider=provider.name,
                query=query,
                count=len(results),
                fallback_depth=len(attempts),
            )
            return SearchOutcome(results=results, source=provider.name)

        outcome = await self._last_resort(token, attempts)
        if outcome is None:
            log.warning("search_exhausted", query=query, attempts=attempts)
            raise AllProvidersExhaustedError(query, attempts)

        log.info(
            "fallback_last_resort",
            query=query,
            count=len(outcome.results),
            attempts=attempts,
        )
        return outcome

    async def _last_resort(
        self,
        token: CancellationToken | None,
        attempts: list[str],
    ) -> SearchOutcome | None:
        for provider in self._providers:
            if not self._reachable(provider):
                continue
            try:
                movies = await provider.fetch_trending()
            except ProviderUnavailableError as exc:
                self._record(provider, ok=False)
                log.warning(
                    "trending_failed", provider=provider.name, reason=exc.reason
                )
                attempts.append(f"{provider.name}:trending_failed")
                continue
            self._record(provider, ok=True)
            if token is not None:
                token.raise_if_cancelled()

            results = dedupe(movies, self._max_results)
            if results:
                return SearchOutcome(
                    results=results, source=TRENDING_SOURCE, last_resort=True
                )
            attempts.append(f"{provider.name}:trending_empty")
        return None

    async def trending(self) -> SearchOutcome:
        """Trending list for the home view (first reachable provider wins)."""
        attempts: list[str] = []
        outcome = await self._last_resort(None, attempts)
        if outcome is None:
            raise AllProvidersExhaustedError("", attempts)
        return outcome

    async def details(self, movie: Movie) -> MovieDetails:
        """Full record for *movie*, asked from the provider that produced it.

        When that provider fails and the movie carries an IMDb id, the
        other reachable providers are asked by IMDb id instead.

        Raises:
            ProviderUnavailableError: no provider could answer.
        """
        by_name = {p.name: p for p in self._providers}
        origin = by_name.get(movie.source)
        failure: ProviderUnavailableError | None = None

        if origin is not None:
            try:
                details = await origin.fetch_details(movie.id)
            except ProviderUnavailableError as exc:
                self._record(origin, ok=False)
                failure = exc
                log.warning(
                    "details_failed",
                    provider=origin.name,
                    movie_id=movie.id,
                    reason=exc.reason,
                )
            else:
                self._record(origin, ok=True)
                return details

        if movie.imdb_id:
            for provider in self._providers:
                if provider is origin or not self._reachable(provider):
                    continue
                try:
                    details = await provider.fetch_details_by_imdb_id(movie.imdb_id)
                except ProviderUnavailableError:
                    self._record(provider, ok=False)
                    continue
                self._record(provider, ok=True)
                if details is not None:
                    log.info(
                        "details_fallback",
                        provider=provider.name,
                        imdb_id=movie.imdb_id,
                    )
                    return details

        if failure is not None:
            raise failure
        raise ProviderUnavailableError(movie.source or "unknown", "no details source")

    async def person(self, person_id: int, *, source: str) -> PersonDetails:
        """Profile for a ``CreditEntry`` from a details record built by *source*.

        Person ids are provider-specific, so there is no fallback.

        Raises:
            ProviderUnavailableError: *source* is not in the chain, has no
                person lookup, is skipped by the breaker or failed.
        """
        provider = next((p for p in self._providers if p.name == source), None)
        if provider is None or not isinstance(provider, PersonLookupPort):
            raise ProviderUnavailableError(source, "no person lookup")
        if not self._reachable(provider):
            raise ProviderUnavailableError(source, "circuit open")
        try:
            person = await provider.fetch_person(person_id)
        except ProviderUnavailableError as exc:
            self._record(provider, ok=False)
            log.warning(
                "person_failed",
                provider=source,
                person_id=person_id,
                reason=exc.reason,
            )
            raise
        self._record(provider, ok=True)
        return person
