"""SearchSession: the explicit owner of one search UI's pipeline state.

Keystrokes go through the debouncer, then the result cache, then the
request coordinator and finally the fallback chain.  Every state change
is pushed to subscribers as a stabilized ``SearchSnapshot``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import structlog

from cinesift.application.search.debounce import Debouncer
from cinesift.application.search.fallback import FallbackCoordinator
from cinesift.application.search.requests import InFlightRequest, RequestCoordinator
from cinesift.application.search.result_cache import ResultCache
from cinesift.application.search.stabilizer import stabilize
from cinesift.domain.cancellation import CancellationToken
from cinesift.domain.entities.movie import Movie
from cinesift.domain.entities.search import (
    SearchOutcome,
    SearchQuery,
    SearchSnapshot,
    StableResultView,
)
from cinesift.domain.errors import (
    SEARCH_FAILED_MESSAGE,
    AllProvidersExhaustedError,
    SearchCancelledError,
    SessionClosedError,
    SessionNotStartedError,
)

log = structlog.get_logger(__name__)

Listener = Callable[[SearchSnapshot], None]

CACHE_SOURCE = "cache"


@dataclass(frozen=True)
class _State:
    query: SearchQuery = SearchQuery("")
    results: tuple[Movie, ...] = ()
    loading: bool = False
    error: str | None = None
    source: str | None = None


class SearchSession:
    """Explicit-lifecycle search session.

    Usage::

        async with SearchSession(coordinator) as session:
            session.subscribe(render)
            session.update_query("bat")

    Entry points (``update_query``, ``submit``, ``clear``, ``retry``) are
    synchronous and must be called from the event loop thread; network
    work runs in a task owned by the session's ``RequestCoordinator``.
    They raise ``SessionNotStartedError`` until ``start()`` (or ``async
    with``) has run and ``SessionClosedError`` after ``dispose()``.
    ``subscribe()`` is allowed before ``start()`` so a listener can see
    the first snapshot.
    """

    def __init__(
        self,
        coordinator: FallbackCoordinator,
        cache: ResultCache | None = None,
        *,
        debounce_seconds: float = 0.3,
    ) -> None:
        self._fallback = coordinator
        self._cache = cache if cache is not None else ResultCache()
        self._requests = RequestCoordinator()
        self._debouncer: Debouncer[SearchQuery] = Debouncer(
            debounce_seconds, self._on_debounced
        )
        self._listeners: list[Listener] = []
        self._state = _State()
        self._stable = StableResultView()
        self._started = False
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> SearchSession:
        self._ensure_open()
        if not self._started:
            self._started = True
            log.debug("search_session_started")
        return self

    def dispose(self) -> None:
        """Cancel timers and in-flight work. Safe to call twice."""
        if self._closed:
            return
        self._debouncer.close()
        self._requests.cancel("disposed")
        self._listeners.clear()
        self._closed = True
        log.debug("search_session_disposed")

    async def __aenter__(self) -> SearchSession:
        return self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.dispose()

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("search session has been disposed")

    def _ensure_running(self) -> None:
        self._ensure_open()
        if not self._started:
            raise SessionNotStartedError("call start() before sending input")

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a function that unregisters it."""
        self._ensure_open()
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        snapshot = self.snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                log.warning("search_listener_failed", exc_info=True)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> SearchSnapshot:
        state = self._state
        view = stabilize(
            state.query.raw,
            state.results,
            state.loading,
            self._stable.query,
            self._stable.results,
        )
        return SearchSnapshot(
            query=state.query.text,
            results=view.results,
            loading=state.loading,
            error=state.error,
            source=state.source,
            stale=view.stale,
        )

    @property
    def cache(self) -> ResultCache:
        return self._cache

    @property
    def in_flight(self) -> bool:
        return self._requests.in_flight

    @property
    def debounce_pending(self) -> bool:
        return self._debouncer.pending

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def update_query(self, text: str) -> None:
        """Keystroke input. Searches once input settles; empty text clears."""
        self._ensure_running()
        query = SearchQuery(text)
        if query.is_empty:
            self.clear()
            return
        self._debouncer.push(query)

    def submit(self, text: str) -> None:
        """Search immediately (manual submit, voice/hero search)."""
        self._ensure_running()
        self._debouncer.cancel()
        query = SearchQuery(text)
        if query.is_empty:
            self.clear()
            return
        self._search(query)

    def clear(self) -> None:
        """Cancel everything and return to Idle with nothing displayed."""
        self._ensure_running()
        self._debouncer.cancel()
        self._requests.cancel("cleared")
        self._state = _State()
        self._stable = StableResultView()
        self._publish()

    def retry(self) -> None:
        """Re-issue the last query. No-op when it is already in flight."""
        self._ensure_running()
        query = self._state.query
        if query.is_empty:
            return
        current = self._requests.current
        if current is not None and current.query.normalized == query.normalized:
            return
        log.info("search_retry", query=query.normalized)
        self._search(query)

    async def wait_idle(self) -> None:
        """Wait for the in-flight request (if any) to settle."""
        await self._requests.wait()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _on_debounced(self, query: SearchQuery) -> None:
        if self._closed:
            return
        self._search(query)

    def _search(self, query: SearchQuery) -> None:
        cached = self._cache.get(query.normalized)
        if cached is not None:
            self._requests.cancel("cache_hit")
            log.debug("result_cache_hit", query=query.normalized, count=len(cached))
            self._apply(query, SearchOutcome(results=cached, source=CACHE_SOURCE))
            return

        current = self._requests.current
        if current is not None and current.query.normalized == query.normalized:
            log.debug("search_deduplicated", query=query.normalized)
            return

        log.info("search_started", query=query.normalized)
        self._state = _State(query=query, loading=True)
        self._requests.start(query, self._run, self._on_settled)
        self._publish()

    async def _run(self, query: SearchQuery, token: CancellationToken) -> SearchOutcome:
        return await self._fallback.resolve(query.text, token)

    def _on_settled(
        self,
        request: InFlightRequest,
        outcome: SearchOutcome | None,
        exc: BaseException | None,
    ) -> None:
        if self._closed:
            return
        query = request.query

        if isinstance(exc, SearchCancelledError):
            log.info("search_interrupted", query=query.normalized)
            self._state = _State(query=query)
            self._publish()
            return

        if exc is None and outcome is not None:
            if not outcome.last_resort:
                self._cache.put(query.normalized, outcome.results)
            self._apply(query, outcome)
            return

        if isinstance(exc, AllProvidersExhaustedError):
            log.warning("search_failed", query=query.normalized, attempts=exc.attempts)
        else:
            log.error(
                "search_unexpected_error",
                query=query.normalized,
                exc_info=exc,
            )
        self._state = _State(query=query, error=SEARCH_FAILED_MESSAGE)
        self._publish()

    def _apply(self, query: SearchQuery, outcome: SearchOutcome) -> None:
        self._state = _State(
            query=query,
            results=outcome.results,
            source=outcome.source,
        )
        if outcome.results:
            self._stable = StableResultView(
                query=query.normalized, results=outcome.results
            )
        self._publish()
