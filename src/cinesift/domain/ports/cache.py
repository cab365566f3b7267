"""Metadata cache port used by the catalog adapters."""

from __future__ import annotations

from typing import Any, Protocol


class CachePort(Protocol):
    """Async key/value store with per-entry expiry.

    Holds provider metadata (details, trending lists) only; the search
    result cache is a separate in-memory structure owned by the session.
    Adapters are async context managers and must be entered before use.
    """

    async def get(self, key: str) -> Any:
        """Stored value, or None when missing or expired."""
        ...

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        """Store *value*; ``ttl`` in seconds, adapter default when None."""
        ...

    async def delete(self, key: str) -> bool:
        """Remove *key*; False when nothing was stored."""
        ...

    async def clear(self) -> None: ...

    async def aclose(self) -> None: ...

    async def __aenter__(self) -> CachePort: ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...
