from .converters import (
    PLACEHOLDER_IMAGE,
    derive_movie_id,
    format_imdb_id,
    image_or_placeholder,
    parse_imdb_id,
    parse_rating,
    parse_runtime_minutes,
    split_csv,
    to_int,
)
from .retry_transport import RetryTransport, backoff_delay

__all__ = [
    "PLACEHOLDER_IMAGE",
    "RetryTransport",
    "backoff_delay",
    "derive_movie_id",
    "format_imdb_id",
    "image_or_placeholder",
    "parse_imdb_id",
    "parse_rating",
    "parse_runtime_minutes",
    "split_csv",
    "to_int",
]
