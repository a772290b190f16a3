"""
Unit tests for the circuit breaker.
"""

import pytest

from core.circuit_breaker import CircuitBreaker, CircuitState


def _fail(breaker, times):
    for _ in range(times):
        breaker.on_failure()


class TestClosedState:
    """Normal operation."""

    def test_starts_closed(self, breaker):
        assert breaker.state == CircuitState.CLOSED
        assert breaker.can_request() is True
        assert breaker.retry_after() == 0

    def test_stays_closed_below_threshold(self, breaker):
        _fail(breaker, 4)

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 4
        assert breaker.can_request() is True

    def test_success_resets_count(self, breaker):
        _fail(breaker, 4)
        breaker.on_success()
        _fail(breaker, 4)

        assert breaker.state == CircuitState.CLOSED
        assert breaker.can_request() is True


class TestOpening:
    """Threshold and reset timeout."""

    def test_opens_at_threshold(self, breaker):
        _fail(breaker, 5)

        assert breaker.state == CircuitState.OPEN
        assert breaker.can_request() is False

    def test_denies_until_reset_timeout(self, breaker, clock):
        _fail(breaker, 5)

        clock.advance(30.0)
        assert breaker.can_request() is False

        clock.advance(0.1)
        assert breaker.can_request() is True
        assert breaker.state == CircuitState.HALF_OPEN

    def test_timeout_counts_from_last_failure(self, breaker, clock):
        _fail(breaker, 5)
        clock.advance(20.0)
        breaker.on_failure()

        clock.advance(20.0)
        assert breaker.can_request() is False

        clock.advance(11.0)
        assert breaker.can_request() is True

    def test_retry_after_counts_down(self, breaker, clock):
        _fail(breaker, 5)
        assert breaker.retry_after() == 30

        clock.advance(12.5)
        assert breaker.retry_after() == 18

        clock.advance(30.0)
        assert breaker.retry_after() == 1

    def test_success_closes_open_circuit(self, breaker):
        _fail(breaker, 5)
        breaker.on_success()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0
        assert breaker.can_request() is True


class TestHalfOpen:
    """Probe handling."""

    @pytest.fixture
    def half_open(self, breaker, clock):
        _fail(breaker, 5)
        clock.advance(31.0)
        assert breaker.can_request() is True
        return breaker

    def test_single_probe_admitted(self, half_open):
        assert half_open.can_request() is False

    def test_probe_success_closes(self, half_open):
        half_open.on_success()

        assert half_open.state == CircuitState.CLOSED
        assert half_open.can_request() is True

    def test_probe_failure_reopens(self, half_open):
        half_open.on_failure()

        assert half_open.state == CircuitState.OPEN
        assert half_open.can_request() is False

    def test_lost_probe_is_replaced(self, half_open, clock):
        clock.advance(31.0)

        assert half_open.can_request() is True


class TestConfiguration:
    """Constructor validation and introspection."""

    def test_rejects_bad_threshold(self):
        with pytest.raises(ValueError):
            CircuitBreaker(failure_threshold=0)

    def test_rejects_bad_timeout(self):
        with pytest.raises(ValueError):
            CircuitBreaker(reset_timeout=0)

    def test_custom_threshold(self, clock):
        breaker = CircuitBreaker(failure_threshold=2, reset_timeout=5.0, clock=clock)
        _fail(breaker, 2)

        assert breaker.can_request() is False

    def test_snapshot(self, breaker):
        breaker.on_failure()

        assert breaker.snapshot() == {
            "state": "closed",
            "failure_count": 1,
            "failure_threshold": 5,
            "reset_timeout_seconds": 30.0,
        }

    def test_reset(self, breaker):
        _fail(breaker, 5)
        breaker.reset()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.can_request() is True
