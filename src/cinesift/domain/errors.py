"""Catalog and search pipeline exceptions."""

from __future__ import annotations

# Generic message shown for every user-visible search failure.
SEARCH_FAILED_MESSAGE = "Search failed. Please try again."


class CatalogError(Exception):
    """Base class for all catalog/search errors."""


class ProviderUnavailableError(CatalogError):
    """A provider call failed (network, HTTP status, timeout, bad payload).

    Recovered inside the fallback chain; never reaches the UI.
    """

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


class NoMatchesError(CatalogError):
    """A provider answered definitively with zero results."""

    def __init__(self, provider: str, query: str) -> None:
        super().__init__(f"{provider}: no matches for {query!r}")
        self.provider = provider
        self.query = query


class AllProvidersExhaustedError(CatalogError):
    """Every provider, including the last-resort list, failed or was empty."""

    def __init__(self, query: str, attempts: list[str] | None = None) -> None:
        super().__init__(f"all providers exhausted for {query!r}")
        self.query = query
        self.attempts = attempts or []


class SearchCancelledError(CatalogError):
    """The request was superseded; its outcome must be discarded."""


class SessionClosedError(CatalogError):
    """Raised when a disposed SearchSession is used."""


class SessionNotStartedError(CatalogError):
    """Raised when input reaches a SearchSession before ``start()``."""


class ProviderConfigError(CatalogError):
    """A provider is enabled but lacks credentials or is unknown."""
