"""Per-provider circuit breaker deciding which catalogs are reachable.

When a provider accumulates ``failure_threshold`` consecutive failures
(HTTP errors, timeouts, malformed payloads), the breaker opens and the
fallback chain skips it for ``cooldown_seconds``.  After the cooldown a
single trial call is allowed (half-open state).  If the trial succeeds
the breaker resets; if it fails the cooldown restarts.

Empty answers are successes: a provider that says "no matches" is
reachable.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from enum import Enum

import structlog

log = structlog.get_logger(__name__)


class _State(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class ProviderCircuitBreaker:
    """Track per-provider failure counts and manage open/closed state.

    Not thread-safe; safe for single-threaded asyncio (no concurrent
    mutations within one event loop tick).
    """

    def __init__(
        self,
        *,
        failure_threshold: int = 3,
        cooldown_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._threshold = failure_threshold
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._failures: dict[str, int] = {}
        self._states: dict[str, _State] = {}
        self._opened_at: dict[str, float] = {}

    def allow(self, name: str) -> bool:
        """Return ``True`` if *name* may be called.

        - **CLOSED**: always allowed.
        - **OPEN**: blocked until cooldown expires, then transitions to
          HALF_OPEN and allows a single trial call.
        - **HALF_OPEN**: allowed (trial in progress).
        """
        state = self._states.get(name, _State.CLOSED)

        if state == _State.CLOSED:
            return True

        if state == _State.OPEN:
            elapsed = self._clock() - self._opened_at.get(name, 0.0)
            if elapsed >= self._cooldown:
                self._states[name] = _State.HALF_OPEN
                log.info("provider_breaker_half_open", provider=name)
                return True
            return False

        return True

    def record_success(self, name: str) -> None:
        """Record a successful call; resets the breaker to CLOSED."""
        if self._states.get(name) is not None:
            log.info("provider_breaker_closed", provider=name)
        self._failures.pop(name, None)
        self._states.pop(name, None)
        self._opened_at.pop(name, None)

    def record_failure(self, name: str) -> None:
        """Record a failed call.

        Increments the consecutive failure counter.  When the counter
        reaches the threshold the breaker opens.  In HALF_OPEN state a
        single failure re-opens the breaker immediately.
        """
        state = self._states.get(name, _State.CLOSED)

        if state == _State.HALF_OPEN:
            self._open(name)
            return

        count = self._failures.get(name, 0) + 1
        self._failures[name] = count

        if count >= self._threshold and state != _State.OPEN:
            self._open(name)

    def _open(self, name: str) -> None:
        self._states[name] = _State.OPEN
        self._opened_at[name] = self._clock()
        log.warning(
            "provider_breaker_opened",
            provider=name,
            failures=self._failures.get(name, 0),
            cooldown=self._cooldown,
        )

    def state(self, name: str) -> str:
        """Return the current state as a string (for diagnostics)."""
        return self._states.get(name, _State.CLOSED).value

    def reset(self, name: str) -> None:
        """Manually reset *name* back to CLOSED."""
        self.record_success(name)

    def snapshot(self) -> dict[str, dict[str, object]]:
        """Return a diagnostic snapshot of all tracked providers."""
        names = set(self._failures) | set(self._states)
        return {
            n: {"state": self.state(n), "failures": self._failures.get(n, 0)}
            for n in sorted(names)
        }
