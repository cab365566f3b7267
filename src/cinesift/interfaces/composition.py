"""Composition root: build the search pipeline from an AppConfig."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import httpx
import structlog

from cinesift.application.search.fallback import FallbackCoordinator
from cinesift.application.search.result_cache import ResultCache
from cinesift.application.search.session import SearchSession
from cinesift.domain.errors import ProviderConfigError
from cinesift.domain.ports.cache import CachePort
from cinesift.domain.ports.catalog import CatalogProviderPort
from cinesift.infrastructure.cache.cache_factory import create_cache
from cinesift.infrastructure.circuit_breaker import ProviderCircuitBreaker
from cinesift.infrastructure.common.retry_transport import RetryTransport
from cinesift.infrastructure.config.schema import AppConfig
from cinesift.infrastructure.providers.imdb import ImdbCatalog
from cinesift.infrastructure.providers.omdb import OmdbCatalog
from cinesift.infrastructure.providers.tmdb import TmdbCatalog

log = structlog.get_logger(__name__)


@dataclass
class AppState:
    """Everything one process needs to run searches.

    Lifecycle managed by ``lifespan()``.
    """

    config: AppConfig
    cache: CachePort
    http_client: httpx.AsyncClient
    breaker: ProviderCircuitBreaker
    coordinator: FallbackCoordinator

    def new_session(self) -> SearchSession:
        """Fresh session with its own result cache and in-flight handle."""
        search = self.config.search
        return SearchSession(
            self.coordinator,
            ResultCache(
                ttl_seconds=search.cache_ttl_seconds,
                max_entries=search.cache_max_entries,
            ),
            debounce_seconds=search.debounce_seconds,
        )


def build_http_client(config: AppConfig) -> httpx.AsyncClient:
    """Shared client: per-request timeout plus 429/503 retry."""
    transport = RetryTransport(max_retries=config.http_max_retries)
    return httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=True,
    )


def build_providers(
    config: AppConfig,
    *,
    http_client: httpx.AsyncClient,
    cache: CachePort,
) -> list[CatalogProviderPort]:
    """Instantiate the adapters named in ``search.provider_chain``, in order.

    Raises:
        ProviderConfigError: A provider in the chain has no credentials.
    """
    common = {
        "http_client": http_client,
        "cache": cache,
        "timeout": config.http_timeout_seconds,
        "max_results": config.search.max_results,
    }
    providers: list[CatalogProviderPort] = []

    for name in config.search.provider_chain:
        if name == "tmdb":
            if not config.tmdb.configured:
                raise ProviderConfigError(
                    "tmdb is in the provider chain but neither tmdb.api_key "
                    "nor tmdb.read_access_token is set"
                )
            providers.append(
                TmdbCatalog(
                    api_key=config.tmdb.api_key,
                    read_access_token=config.tmdb.read_access_token,
                    language=config.tmdb.language,
                    **common,
                )
            )
        elif name == "imdb":
            if not config.imdb.configured:
                raise ProviderConfigError(
                    "imdb is in the provider chain but imdb.rapidapi_key is not set"
                )
            providers.append(
                ImdbCatalog(
                    rapidapi_key=config.imdb.rapidapi_key,
                    host=config.imdb.host,
                    **common,
                )
            )
        elif name == "omdb":
            if not config.omdb.configured:
                raise ProviderConfigError(
                    "omdb is in the provider chain but omdb.api_key is not set"
                )
            providers.append(OmdbCatalog(api_key=config.omdb.api_key, **common))
        else:
            raise ProviderConfigError(f"unknown provider: {name!r}")

    log.info("providers_initialized", chain=[p.name for p in providers])
    return providers


@asynccontextmanager
async def lifespan(config: AppConfig) -> AsyncIterator[AppState]:
    """Initialize and clean up all resources.

    Order matters:
        1. Metadata cache (adapters depend on it)
        2. HTTP client
        3. Providers (fail fast on missing credentials)
        4. Circuit breaker + fallback coordinator
    """
    cache = create_cache(
        backend=config.metadata_cache.backend,
        directory=str(config.metadata_cache.directory),
        ttl_seconds=config.metadata_cache.ttl_seconds,
        max_entries=config.metadata_cache.max_entries,
    )
    await cache.__aenter__()
    log.info("cache_initialized", backend=config.metadata_cache.backend)

    http_client = build_http_client(config)
    log.info(
        "http_client_initialized",
        timeout_seconds=config.http_timeout_seconds,
        max_retries=config.http_max_retries,
    )

    try:
        providers = build_providers(config, http_client=http_client, cache=cache)
        breaker = ProviderCircuitBreaker(
            failure_threshold=config.breaker.failure_threshold,
            cooldown_seconds=config.breaker.cooldown_seconds,
        )
        coordinator = FallbackCoordinator(
            providers,
            health=breaker,
            max_results=config.search.max_results,
        )
        yield AppState(
            config=config,
            cache=cache,
            http_client=http_client,
            breaker=breaker,
            coordinator=coordinator,
        )
    finally:
        await http_client.aclose()
        await cache.aclose()
        log.info("shutdown_complete")
