"""Tests for ProviderCircuitBreaker."""

from __future__ import annotations

from cinesift.infrastructure.circuit_breaker import ProviderCircuitBreaker


class TestInitialState:
    def test_new_provider_is_allowed(self) -> None:
        cb = ProviderCircuitBreaker()
        assert cb.allow("tmdb") is True

    def test_new_provider_state_is_closed(self) -> None:
        cb = ProviderCircuitBreaker()
        assert cb.state("tmdb") == "closed"


class TestClosedState:
    def test_failures_below_threshold_stay_closed(self) -> None:
        cb = ProviderCircuitBreaker(failure_threshold=3)
        cb.record_failure("tmdb")
        cb.record_failure("tmdb")
        assert cb.allow("tmdb") is True
        assert cb.state("tmdb") == "closed"

    def test_success_resets_failure_count(self) -> None:
        cb = ProviderCircuitBreaker(failure_threshold=3)
        cb.record_failure("tmdb")
        cb.record_failure("tmdb")
        cb.record_success("tmdb")
        cb.record_failure("tmdb")
        # Only 1 failure after reset, still closed
        assert cb.allow("tmdb") is True


class TestOpenState:
    def test_opens_at_threshold(self) -> None:
        cb = ProviderCircuitBreaker(failure_threshold=3)
        for _ in range(3):
            cb.record_failure("tmdb")
        assert cb.state("tmdb") == "open"
        assert cb.allow("tmdb") is False

    def test_transitions_to_half_open_after_cooldown(self, clock) -> None:
        cb = ProviderCircuitBreaker(
            failure_threshold=2, cooldown_seconds=10, clock=clock
        )
        cb.record_failure("tmdb")
        cb.record_failure("tmdb")

        clock.advance(9)
        assert cb.allow("tmdb") is False

        clock.advance(2)
        assert cb.allow("tmdb") is True
        assert cb.state("tmdb") == "half_open"


class TestHalfOpenState:
    def test_success_closes_breaker(self) -> None:
        cb = ProviderCircuitBreaker(failure_threshold=2, cooldown_seconds=0)
        cb.record_failure("tmdb")
        cb.record_failure("tmdb")
        # Cooldown = 0 → immediately half-open
        assert cb.allow("tmdb") is True
        cb.record_success("tmdb")
        assert cb.state("tmdb") == "closed"

    def test_failure_reopens_breaker(self, clock) -> None:
        cb = ProviderCircuitBreaker(
            failure_threshold=2, cooldown_seconds=60, clock=clock
        )
        cb.record_failure("tmdb")
        cb.record_failure("tmdb")
        clock.advance(61)
        assert cb.allow("tmdb") is True  # half-open trial
        cb.record_failure("tmdb")
        assert cb.state("tmdb") == "open"
        # Fresh cooldown started, blocked again
        assert cb.allow("tmdb") is False


class TestIsolationAndReset:
    def test_providers_are_independent(self) -> None:
        cb = ProviderCircuitBreaker(failure_threshold=2)
        cb.record_failure("tmdb")
        cb.record_failure("tmdb")
        assert cb.allow("tmdb") is False
        assert cb.allow("imdb") is True

    def test_manual_reset_closes_breaker(self) -> None:
        cb = ProviderCircuitBreaker(failure_threshold=1)
        cb.record_failure("tmdb")
        cb.reset("tmdb")
        assert cb.state("tmdb") == "closed"
        assert cb.allow("tmdb") is True

    def test_snapshot_shows_state_and_failures(self) -> None:
        cb = ProviderCircuitBreaker(failure_threshold=3)
        assert cb.snapshot() == {}
        cb.record_failure("imdb")
        for _ in range(3):
            cb.record_failure("tmdb")
        snap = cb.snapshot()
        assert snap["imdb"] == {"state": "closed", "failures": 1}
        assert snap["tmdb"] == {"state": "open", "failures": 3}
