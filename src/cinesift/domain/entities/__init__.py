from .movie import CreditEntry, Movie, MovieDetails, PersonCredit, PersonDetails
from .search import (
    TRENDING_SOURCE,
    SearchOutcome,
    SearchQuery,
    SearchSnapshot,
    StableResultView,
    normalize_query,
)

__all__ = [
    "TRENDING_SOURCE",
    "CreditEntry",
    "Movie",
    "MovieDetails",
    "PersonCredit",
    "PersonDetails",
    "SearchOutcome",
    "SearchQuery",
    "SearchSnapshot",
    "StableResultView",
    "normalize_query",
]
