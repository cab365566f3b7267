"""Catalog provider adapters."""

from .base import HttpxCatalogBase
from .imdb import ImdbCatalog
from .omdb import OmdbCatalog
from .tmdb import TmdbCatalog

__all__ = [
    "HttpxCatalogBase",
    "ImdbCatalog",
    "OmdbCatalog",
    "TmdbCatalog",
]
