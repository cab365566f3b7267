"""Domain entities for catalog movies.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Movie:
    """Canonical movie record produced by every catalog adapter.

    ``id`` is namespaced by ``source``: two providers may hand out the
    same integer for different titles.
    """

    id: int
    title: str
    poster_path: str
    backdrop_path: str
    release_date: str  # "1999" or "1999-10-15", provider-dependent
    vote_average: float = 0.0  # 0.0-10.0, one decimal
    vote_count: int = 0
    overview: str = ""
    imdb_id: str | None = None
    source: str = ""


@dataclass(frozen=True)
class CreditEntry:
    """Cast or crew member attached to a details lookup."""

    id: int
    name: str
    role: str  # character for cast, job for crew
    profile_path: str | None = None


@dataclass(frozen=True)
class MovieDetails:
    """Full record for the details view."""

    movie: Movie
    genres: list[str] = field(default_factory=list)
    runtime: int | None = None  # minutes
    tagline: str = ""
    budget: int = 0
    revenue: int = 0
    production_companies: list[str] = field(default_factory=list)
    spoken_languages: list[str] = field(default_factory=list)
    cast: list[CreditEntry] = field(default_factory=list)
    crew: list[CreditEntry] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.movie.id

    @property
    def title(self) -> str:
        return self.movie.title


@dataclass(frozen=True)
class PersonCredit:
    """One film in a person's filmography, with their part in it."""

    movie: Movie
    role: str  # character for acting credits, job otherwise


@dataclass(frozen=True)
class PersonDetails:
    """Profile of a cast or crew member, opened from a details view."""

    id: int
    name: str
    biography: str = ""
    birthday: str | None = None
    deathday: str | None = None
    place_of_birth: str | None = None
    known_for_department: str = ""
    popularity: float = 0.0
    profile_path: str | None = None
    cast: list[PersonCredit] = field(default_factory=list)
    crew: list[PersonCredit] = field(default_factory=list)
