"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "cinesift",
    "environment": "dev",
    "http": {
        "timeout_seconds": 8.0,
        "user_agent": "cinesift/0.1.0",
        "max_retries": 2,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "search": {
        "debounce_ms": 300,
        "provider_chain": ["tmdb", "imdb"],
        "max_results": 20,
        "cache_ttl_seconds": 300,
        "cache_max_entries": 256,
    },
    "metadata_cache": {
        "backend": "memory",
        "dir": "./.cache/cinesift",
        "ttl_seconds": 3600,
        "max_entries": 2048,
    },
    "breaker": {
        "failure_threshold": 3,
        "cooldown_seconds": 60.0,
    },
    "tmdb": {
        "language": "en-US",
    },
    "imdb": {
        "host": "imdb-com.p.rapidapi.com",
    },
}
