"""Port for external movie catalog providers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cinesift.domain.cancellation import CancellationToken
from cinesift.domain.entities.movie import Movie, MovieDetails, PersonDetails


@runtime_checkable
class CatalogProviderPort(Protocol):
    """Async interface every catalog adapter implements.

    Three outcomes are kept apart: a non-empty list, an empty list
    (definitive "no matches") and ``ProviderUnavailableError``.
    """

    name: str

    async def search(self, query: str, token: CancellationToken) -> list[Movie]:
        """Search movies by free-text query."""
        ...

    async def fetch_details(self, movie_id: int) -> MovieDetails:
        """Fetch the full record for one of this provider's ids."""
        ...

    async def fetch_details_by_imdb_id(self, imdb_id: str) -> MovieDetails | None:
        """Fetch details by IMDb id. None if the provider cannot map it."""
        ...

    async def fetch_trending(self) -> list[Movie]:
        """Fetch the provider's trending/popular list."""
        ...


@runtime_checkable
class PersonLookupPort(Protocol):
    """Optional capability: cast/crew profiles keyed by ``CreditEntry.id``."""

    name: str

    async def fetch_person(self, person_id: int) -> PersonDetails:
        """Profile plus movie credits for one of this provider's person ids."""
        ...
