"""Shared base class for httpx-based catalog adapters.

Handles the boilerplate every adapter repeats: the shared client, the
per-call timeout, mapping transport/HTTP/JSON failures onto
``ProviderUnavailableError`` and metadata caching for details and
trending lookups.

This base class lives in the *infrastructure* layer because it depends
on ``httpx`` and ``structlog``.  The application layer only knows
``CatalogProviderPort``; adapters that inherit from ``HttpxCatalogBase``
structurally satisfy that Protocol.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import httpx
import structlog

from cinesift.domain.cancellation import CancellationToken
from cinesift.domain.entities.movie import Movie
from cinesift.domain.errors import ProviderUnavailableError
from cinesift.domain.ports.cache import CachePort

# Cache TTLs (seconds)
TTL_DETAILS = 86_400  # 24 hours
TTL_TRENDING = 21_600  # 6 hours

DEFAULT_MAX_RESULTS = 20

# Wrong-typed JSON fields surface as one of these while mapping.
_MAPPING_ERRORS = (AttributeError, TypeError, KeyError, ValueError, IndexError)

_T = TypeVar("_T")


class HttpxCatalogBase:
    """Shared base for catalog adapters.

    Subclasses **must** set ``name`` and ``base_url`` and implement
    ``search()``, ``fetch_details()``, ``fetch_details_by_imdb_id()`` and
    ``fetch_trending()``.
    """

    name: str = ""
    base_url: str = ""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        cache: CachePort,
        timeout: float = 8.0,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> None:
        self._http = http_client
        self._cache = cache
        self._timeout = timeout
        self._max_results = max_results
        self._log = structlog.get_logger(f"cinesift.providers.{self.name}")

    # ------------------------------------------------------------------
    # Overridable hooks
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {}

    def _params(self, **extra: Any) -> dict[str, Any]:
        return dict(extra)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _get_json(
        self,
        path: str,
        *,
        token: CancellationToken | None = None,
        **params: Any,
    ) -> Any:
        """GET ``base_url + path`` and decode JSON.

        Raises:
            ProviderUnavailableError: timeout, network error, non-2xx
                status or a body that is not JSON.
            SearchCancelledError: *token* was cancelled while the
                request was outstanding.
        """
        if token is not None:
            token.raise_if_cancelled()

        url = f"{self.base_url}{path}"
        try:
            resp = await self._http.get(
                url,
                params=self._params(**params),
                headers=self._headers(),
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as exc:
            self._log.warning("provider_timeout", provider=self.name, path=path)
            raise ProviderUnavailableError(self.name, "timeout") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            self._log.warning(
                "provider_http_error", provider=self.name, path=path, status=status
            )
            raise ProviderUnavailableError(self.name, f"HTTP {status}") from exc
        except httpx.HTTPError as exc:
            self._log.warning(
                "provider_network_error", provider=self.name, path=path, exc_info=True
            )
            raise ProviderUnavailableError(self.name, "network error") from exc
        except ValueError as exc:
            self._log.warning("provider_bad_payload", provider=self.name, path=path)
            raise ProviderUnavailableError(self.name, "malformed payload") from exc

        if token is not None:
            token.raise_if_cancelled()
        return data

    def _malformed(self, what: str) -> ProviderUnavailableError:
        self._log.warning("provider_bad_payload", provider=self.name, detail=what)
        return ProviderUnavailableError(self.name, f"malformed payload: {what}")

    def _mapped(self, what: str, mapper: Callable[..., _T], *args: Any) -> _T:
        """Run *mapper* over decoded JSON; shape errors become ``_malformed``."""
        try:
            return mapper(*args)
        except _MAPPING_ERRORS as exc:
            raise self._malformed(f"{what}: {exc}") from exc

    # ------------------------------------------------------------------
    # Metadata cache helpers
    # ------------------------------------------------------------------

    def _cache_key(self, *parts: object) -> str:
        return ":".join([self.name, *(str(p) for p in parts)])

    async def _cached_details(self, key: str) -> Any:
        return await self._cache.get(key)

    async def _store_details(self, key: str, details: _T) -> _T:
        await self._cache.set(key, details, ttl=TTL_DETAILS)
        return details

    async def _cached_trending(self) -> list[Movie] | None:
        cached = await self._cache.get(self._cache_key("trending"))
        return list(cached) if cached is not None else None

    async def _store_trending(self, movies: list[Movie]) -> list[Movie]:
        if movies:
            await self._cache.set(
                self._cache_key("trending"), tuple(movies), ttl=TTL_TRENDING
            )
        return movies

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
