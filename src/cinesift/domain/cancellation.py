"""Cancellation token shared between the request coordinator and adapters."""

from __future__ import annotations

from cinesift.domain.errors import SearchCancelledError


class CancellationToken:
    """One-shot cancellation flag.

    The owning task is cancelled as well, which aborts the httpx request;
    the token additionally guards transports that finish before the
    cancellation is delivered.
    """

    __slots__ = ("_cancelled", "reason")

    def __init__(self) -> None:
        self._cancelled = False
        self.reason = ""

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "superseded") -> bool:
        """Mark as cancelled. Returns False if it already was (no-op)."""
        if self._cancelled:
            return False
        self._cancelled = True
        self.reason = reason
        return True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise SearchCancelledError(self.reason)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"
