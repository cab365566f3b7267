"""Single-flight request coordination with cancellation of superseded work."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from cinesift.domain.cancellation import CancellationToken
from cinesift.domain.entities.search import SearchQuery
from cinesift.domain.errors import SearchCancelledError

log = structlog.get_logger(__name__)

Runner = Callable[[SearchQuery, CancellationToken], Awaitable[Any]]
SettledCallback = Callable[["InFlightRequest", Any, "BaseException | None"], None]


@dataclass
class InFlightRequest:
    """The one search a coordinator currently owns."""

    query: SearchQuery
    generation: int
    token: CancellationToken = field(default_factory=CancellationToken)
    task: asyncio.Task[Any] | None = None

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()

    def cancel(self, reason: str = "superseded") -> bool:
        """Cancel token and task. Idempotent; False when already cancelled."""
        if not self.token.cancel(reason):
            return False
        if self.task is not None and not self.task.done():
            self.task.cancel()
        return True


class RequestCoordinator:
    """Own at most one in-flight search at a time.

    ``start()`` cancels the previous request *before* the new task is
    created.  A request's outcome reaches ``on_settled`` only if it is
    still the current request and its token was never cancelled; the rest
    is dropped, so a late answer for Q(n) can never overwrite Q(n+1).
    A current request whose task is cancelled from outside still settles,
    with ``SearchCancelledError``, so the owner can leave its loading state.
    """

    def __init__(self) -> None:
        self._current: InFlightRequest | None = None
        self._generation = 0

    @property
    def current(self) -> InFlightRequest | None:
        return self._current

    @property
    def in_flight(self) -> bool:
        return self._current is not None

    def start(
        self,
        query: SearchQuery,
        runner: Runner,
        on_settled: SettledCallback,
    ) -> InFlightRequest:
        self.cancel("superseded")

        self._generation += 1
        request = InFlightRequest(query=query, generation=self._generation)
        loop = asyncio.get_running_loop()
        request.task = loop.create_task(
            runner(query, request.token),
            name=f"cinesift-search-{request.generation}",
        )
        self._current = request
        request.task.add_done_callback(
            lambda task: self._settle(request, task, on_settled)
        )
        log.debug(
            "request_started", query=query.normalized, generation=request.generation
        )
        return request

    def cancel(self, reason: str = "cancelled") -> bool:
        """Cancel the current request, if any. Idempotent."""
        request = self._current
        if request is None:
            return False
        self._current = None
        cancelled = request.cancel(reason)
        if cancelled:
            log.debug(
                "request_cancelled",
                query=request.query.normalized,
                generation=request.generation,
                reason=reason,
            )
        return cancelled

    def _settle(
        self,
        request: InFlightRequest,
        task: asyncio.Task[Any],
        on_settled: SettledCallback,
    ) -> None:
        # Always retrieve the outcome so asyncio never reports it as lost.
        exc: BaseException | None = None
        if not task.cancelled():
            exc = task.exception()

        if request is not self._current or request.token.cancelled:
            log.debug(
                "request_result_discarded",
                query=request.query.normalized,
                generation=request.generation,
            )
            return

        self._current = None
        if task.cancelled():
            # cancelled outside the coordinator, e.g. by loop shutdown
            exc = SearchCancelledError("search task cancelled")
        on_settled(request, None if exc is not None else task.result(), exc)

    async def wait(self) -> None:
        """Wait until no request is in flight (used by drivers and tests)."""
        while self._current is not None and self._current.task is not None:
            await asyncio.wait({self._current.task})
            # done callbacks run on the next loop iteration
            await asyncio.sleep(0)
