"""Port for provider reachability tracking."""

from __future__ import annotations

from typing import Protocol


class ProviderHealthPort(Protocol):
    """Decides whether a provider is currently reachable."""

    def allow(self, name: str) -> bool: ...

    def record_success(self, name: str) -> None: ...

    def record_failure(self, name: str) -> None: ...
