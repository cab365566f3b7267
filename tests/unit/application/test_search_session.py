"""Tests for SearchSession (end-to-end pipeline with mocked providers)."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from cinesift.application.search.fallback import FallbackCoordinator
from cinesift.application.search.result_cache import ResultCache
from cinesift.application.search.session import SearchSession
from cinesift.domain.entities.search import TRENDING_SOURCE, SearchSnapshot
from cinesift.domain.errors import (
    SEARCH_FAILED_MESSAGE,
    ProviderUnavailableError,
    SessionClosedError,
    SessionNotStartedError,
)

_DEBOUNCE = 0.03


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def primary(provider_factory, movies_factory) -> AsyncMock:
    return provider_factory("tmdb", results=movies_factory(12))


@pytest.fixture()
def secondary(provider_factory) -> AsyncMock:
    return provider_factory("imdb")


@pytest.fixture()
def result_cache(clock) -> ResultCache:
    return ResultCache(ttl_seconds=300, clock=clock)


@pytest.fixture()
async def session(primary, secondary, result_cache) -> SearchSession:
    coordinator = FallbackCoordinator([primary, secondary])
    async with SearchSession(
        coordinator, result_cache, debounce_seconds=_DEBOUNCE
    ) as s:
        yield s


@pytest.fixture()
def snapshots(session: SearchSession) -> list[SearchSnapshot]:
    seen: list[SearchSnapshot] = []
    session.subscribe(seen.append)
    return seen


async def _settle_debounce(session: SearchSession) -> None:
    await asyncio.sleep(_DEBOUNCE * 3)
    await session.wait_idle()


# ---------------------------------------------------------------------------
# Debounced input
# ---------------------------------------------------------------------------


class TestDebouncedInput:
    async def test_burst_resolves_once_for_final_value(
        self, session: SearchSession, primary: AsyncMock
    ) -> None:
        for text in ("b", "ba", "bat"):
            session.update_query(text)
            await asyncio.sleep(_DEBOUNCE / 5)

        await _settle_debounce(session)

        assert primary.search.await_count == 1
        assert primary.search.await_args.args[0] == "bat"
        assert session.snapshot.query == "bat"
        assert len(session.snapshot.results) == 12

    async def test_keystrokes_do_not_publish_until_search_starts(
        self, session: SearchSession, snapshots: list[SearchSnapshot]
    ) -> None:
        session.update_query("bat")
        assert snapshots == []
        assert session.debounce_pending is True

        await _settle_debounce(session)
        assert snapshots[0].loading is True
        assert snapshots[-1].loading is False

    async def test_empty_input_clears(
        self, session: SearchSession, primary: AsyncMock
    ) -> None:
        session.update_query("bat")
        session.update_query("   ")
        await asyncio.sleep(_DEBOUNCE * 3)

        primary.search.assert_not_awaited()
        assert session.snapshot == SearchSnapshot()


# ---------------------------------------------------------------------------
# Submit / cache
# ---------------------------------------------------------------------------


class TestSubmitAndCache:
    async def test_submit_searches_immediately(
        self, session: SearchSession, primary: AsyncMock
    ) -> None:
        session.submit("Batman")
        assert session.snapshot.loading is True
        await session.wait_idle()

        snap = session.snapshot
        assert snap.loading is False
        assert snap.error is None
        assert snap.source == "tmdb"
        assert len(snap.results) == 12

    async def test_submit_cancels_pending_debounce(
        self, session: SearchSession, primary: AsyncMock
    ) -> None:
        session.update_query("bat")
        session.submit("batman")
        await _settle_debounce(session)

        assert primary.search.await_count == 1
        assert primary.search.await_args.args[0] == "batman"

    async def test_repeat_within_ttl_served_from_cache(
        self, session: SearchSession, primary: AsyncMock, clock
    ) -> None:
        session.submit("batman")
        await session.wait_idle()

        clock.advance(1)
        session.submit(" Batman ")
        await session.wait_idle()

        assert primary.search.await_count == 1
        assert session.snapshot.source == "cache"
        assert len(session.snapshot.results) == 12
        assert session.in_flight is False

    async def test_repeat_after_ttl_fetches_again(
        self, session: SearchSession, primary: AsyncMock, clock
    ) -> None:
        session.submit("batman")
        await session.wait_idle()

        clock.advance(301)
        session.submit("batman")
        await session.wait_idle()

        assert primary.search.await_count == 2

    async def test_duplicate_in_flight_query_is_ignored(
        self, session: SearchSession, primary: AsyncMock, movies_factory
    ) -> None:
        gate = asyncio.Event()

        async def slow(query, token):
            await gate.wait()
            return movies_factory(2)

        primary.search.side_effect = slow
        session.submit("bat")
        await asyncio.sleep(0)
        session.submit("BAT")
        gate.set()
        await session.wait_idle()

        assert primary.search.await_count == 1


# ---------------------------------------------------------------------------
# Races
# ---------------------------------------------------------------------------


class TestRaces:
    async def test_second_query_wins_over_slow_first(
        self, session: SearchSession, primary: AsyncMock, movies_factory
    ) -> None:
        alien_gate = asyncio.Event()
        alien = movies_factory(3, start=100)
        batman = movies_factory(5, start=200)

        async def search(query, token):
            if query == "alien":
                await alien_gate.wait()
                return alien
            return batman

        primary.search.side_effect = search

        session.submit("alien")
        await asyncio.sleep(0)
        session.submit("batman")
        alien_gate.set()
        await session.wait_idle()
        await asyncio.sleep(0.01)

        snap = session.snapshot
        assert snap.query == "batman"
        assert snap.results == tuple(batman)
        # superseded result never reached the cache either
        assert session.cache.get("alien") is None

    async def test_cache_hit_cancels_in_flight_request(
        self, session: SearchSession, primary: AsyncMock, movies_factory
    ) -> None:
        session.submit("batman")
        await session.wait_idle()

        gate = asyncio.Event()

        async def slow(query, token):
            await gate.wait()
            return movies_factory(1, start=900)

        primary.search.side_effect = slow
        session.submit("superman")
        await asyncio.sleep(0)
        session.submit("batman")  # cached

        gate.set()
        await asyncio.sleep(0.01)

        assert session.snapshot.query == "batman"
        assert session.snapshot.source == "cache"
        assert session.in_flight is False


# ---------------------------------------------------------------------------
# Stabilized view
# ---------------------------------------------------------------------------


class TestStabilizedView:
    async def test_refinement_keeps_previous_results_while_loading(
        self, session: SearchSession, primary: AsyncMock, movies_factory
    ) -> None:
        session.submit("bat")
        await session.wait_idle()
        previous = session.snapshot.results

        gate = asyncio.Event()

        async def slow(query, token):
            await gate.wait()
            return movies_factory(4, start=300)

        primary.search.side_effect = slow
        session.submit("batm")

        loading = session.snapshot
        assert loading.loading is True
        assert loading.stale is True
        assert loading.results == previous

        gate.set()
        await session.wait_idle()
        assert session.snapshot.stale is False
        assert [m.id for m in session.snapshot.results] == [300, 301, 302, 303]

    async def test_unrelated_query_shows_empty_while_loading(
        self, session: SearchSession, primary: AsyncMock, movies_factory
    ) -> None:
        session.submit("batman")
        await session.wait_idle()

        gate = asyncio.Event()

        async def slow(query, token):
            await gate.wait()
            return movies_factory(1)

        primary.search.side_effect = slow
        session.submit("alien")

        assert session.snapshot.loading is True
        assert session.snapshot.results == ()
        gate.set()
        await session.wait_idle()


# ---------------------------------------------------------------------------
# Fallback and errors
# ---------------------------------------------------------------------------


class TestFallbackAndErrors:
    async def test_secondary_results_when_primary_errors(
        self,
        session: SearchSession,
        primary: AsyncMock,
        secondary: AsyncMock,
        movies_factory,
    ) -> None:
        primary.search.side_effect = ProviderUnavailableError("tmdb", "HTTP 500")
        fallback = movies_factory(7, source="imdb")
        secondary.search.return_value = fallback

        session.submit("inception")
        await session.wait_idle()

        assert session.snapshot.results == tuple(fallback)
        assert session.snapshot.source == "imdb"
        assert session.snapshot.error is None

    async def test_no_matches_anywhere_shows_trending(
        self,
        session: SearchSession,
        primary: AsyncMock,
        movies_factory,
    ) -> None:
        primary.search.return_value = []
        trending = movies_factory(6, start=500)
        primary.fetch_trending.return_value = trending

        session.submit("xyznotamovie")
        await session.wait_idle()

        snap = session.snapshot
        assert snap.error is None
        assert snap.source == TRENDING_SOURCE
        assert snap.results == tuple(trending)
        # last-resort lists are not cached under the query
        assert session.cache.get("xyznotamovie") is None

    async def test_everything_fails_sets_generic_error(
        self,
        session: SearchSession,
        primary: AsyncMock,
        secondary: AsyncMock,
    ) -> None:
        primary.search.side_effect = ProviderUnavailableError("tmdb", "timeout")
        secondary.search.side_effect = ProviderUnavailableError("imdb", "timeout")

        session.submit("batman")
        await session.wait_idle()

        snap = session.snapshot
        assert snap.loading is False
        assert snap.error == SEARCH_FAILED_MESSAGE
        assert snap.results == ()

    async def test_unexpected_error_sets_generic_error(
        self, session: SearchSession, primary: AsyncMock
    ) -> None:
        primary.search.side_effect = TypeError("bad mapping")

        session.submit("batman")
        await session.wait_idle()

        assert session.snapshot.error == SEARCH_FAILED_MESSAGE
        assert session.snapshot.loading is False


# ---------------------------------------------------------------------------
# retry / clear
# ---------------------------------------------------------------------------


class TestRetry:
    async def test_retry_after_error_reissues_query(
        self,
        session: SearchSession,
        primary: AsyncMock,
        secondary: AsyncMock,
        movies_factory,
    ) -> None:
        primary.search.side_effect = ProviderUnavailableError("tmdb", "timeout")
        secondary.search.side_effect = ProviderUnavailableError("imdb", "timeout")
        session.submit("batman")
        await session.wait_idle()
        assert session.snapshot.error is not None

        primary.search.side_effect = None
        primary.search.return_value = movies_factory(3)
        session.retry()
        await session.wait_idle()

        assert session.snapshot.error is None
        assert len(session.snapshot.results) == 3

    async def test_retry_while_in_flight_is_noop(
        self, session: SearchSession, primary: AsyncMock, movies_factory
    ) -> None:
        gate = asyncio.Event()

        async def slow(query, token):
            await gate.wait()
            return movies_factory(1)

        primary.search.side_effect = slow
        session.submit("batman")
        await asyncio.sleep(0)
        session.retry()
        session.retry()
        gate.set()
        await session.wait_idle()

        assert primary.search.await_count == 1

    async def test_retry_without_query_is_noop(
        self, session: SearchSession, primary: AsyncMock
    ) -> None:
        session.retry()
        assert session.in_flight is False
        primary.search.assert_not_awaited()


class TestClear:
    async def test_clear_cancels_and_resets(
        self,
        session: SearchSession,
        primary: AsyncMock,
        snapshots: list[SearchSnapshot],
        movies_factory,
    ) -> None:
        gate = asyncio.Event()

        async def slow(query, token):
            await gate.wait()
            return movies_factory(1)

        primary.search.side_effect = slow
        session.submit("batman")
        await asyncio.sleep(0)
        session.clear()
        gate.set()
        await asyncio.sleep(0.01)

        assert session.snapshot == SearchSnapshot()
        assert snapshots[-1] == SearchSnapshot()
        assert session.in_flight is False


# ---------------------------------------------------------------------------
# Subscribers and lifecycle
# ---------------------------------------------------------------------------


class TestSubscribers:
    async def test_unsubscribe_stops_delivery(self, session: SearchSession) -> None:
        seen: list[SearchSnapshot] = []
        unsubscribe = session.subscribe(seen.append)
        unsubscribe()
        unsubscribe()  # second call is harmless

        session.submit("batman")
        await session.wait_idle()
        assert seen == []

    async def test_failing_listener_does_not_break_session(
        self, session: SearchSession
    ) -> None:
        def broken(_: SearchSnapshot) -> None:
            raise RuntimeError("render failed")

        seen: list[SearchSnapshot] = []
        session.subscribe(broken)
        session.subscribe(seen.append)

        session.submit("batman")
        await session.wait_idle()

        assert seen[-1].results
        assert seen[-1].loading is False


class TestLifecycle:
    async def test_dispose_cancels_and_blocks_entry_points(
        self, primary, secondary, movies_factory
    ) -> None:
        gate = asyncio.Event()

        async def slow(query, token):
            await gate.wait()
            return movies_factory(1)

        primary.search.side_effect = slow
        session = SearchSession(
            FallbackCoordinator([primary, secondary]), debounce_seconds=_DEBOUNCE
        ).start()
        seen: list[SearchSnapshot] = []
        session.subscribe(seen.append)

        session.update_query("bat")
        session.submit("batman")
        await asyncio.sleep(0)
        delivered = len(seen)

        session.dispose()
        session.dispose()  # idempotent
        gate.set()
        await asyncio.sleep(_DEBOUNCE * 3)

        assert session.closed is True
        assert len(seen) == delivered
        for call in (
            lambda: session.update_query("x"),
            lambda: session.submit("x"),
            session.clear,
            session.retry,
            lambda: session.subscribe(seen.append),
            session.start,
        ):
            with pytest.raises(SessionClosedError):
                call()

    async def test_async_context_manager_disposes(self, primary, secondary) -> None:
        async with SearchSession(FallbackCoordinator([primary, secondary])) as s:
            assert s.closed is False
        assert s.closed is True

    async def test_input_before_start_is_rejected(self, primary, secondary) -> None:
        session = SearchSession(FallbackCoordinator([primary, secondary]))
        seen: list[SearchSnapshot] = []
        session.subscribe(seen.append)

        for call in (
            lambda: session.update_query("bat"),
            lambda: session.submit("batman"),
            session.clear,
            session.retry,
        ):
            with pytest.raises(SessionNotStartedError):
                call()

        session.start()
        session.submit("batman")
        await session.wait_idle()
        assert seen[-1].results
        session.dispose()

    async def test_externally_cancelled_search_returns_to_idle(
        self, session: SearchSession, snapshots, primary
    ) -> None:
        gate = asyncio.Event()

        async def hang(query, token):
            await gate.wait()
            return []

        primary.search.side_effect = hang
        session.submit("batman")
        await asyncio.sleep(0)
        assert session.snapshot.loading is True

        session._requests.current.task.cancel()
        await session.wait_idle()

        assert session.in_flight is False
        assert snapshots[-1].loading is False
        assert snapshots[-1].error is None
        assert snapshots[-1].query == "batman"
