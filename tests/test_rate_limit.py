"""Tests for the fixed-window rate limiter."""
import threading

import pytest

from ado_mcp.rate_limit import (
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW_MS,
    FixedWindowRateLimiter,
    RateLimitExceeded,
)


class TestCeiling:
    """Test the per-window request ceiling."""

    def test_defaults(self):
        limiter = FixedWindowRateLimiter()
        assert limiter.max_requests == RATE_LIMIT_MAX_REQUESTS == 100
        assert limiter.window_ms == RATE_LIMIT_WINDOW_MS == 60_000

    def test_first_hundred_succeed_then_fail(self, clock):
        """Calls 1-100 succeed and every later call in the window fails."""
        limiter = FixedWindowRateLimiter(clock=clock)
        for _ in range(100):
            limiter.check()

        for _ in range(25):
            with pytest.raises(RateLimitExceeded, match="Rate limit exceeded"):
                limiter.check()

    def test_rejected_calls_still_count(self, clock):
        limiter = FixedWindowRateLimiter(max_requests=2, clock=clock)
        limiter.check()
        limiter.check()
        for _ in range(3):
            with pytest.raises(RateLimitExceeded):
                limiter.check()
        assert limiter.window.count == 5

    def test_exception_details(self, clock):
        limiter = FixedWindowRateLimiter(max_requests=1, window_ms=1000, clock=clock)
        limiter.check()
        clock.advance(400)
        with pytest.raises(RateLimitExceeded) as exc_info:
            limiter.check()
        assert exc_info.value.count == 2
        assert exc_info.value.max_requests == 1
        assert exc_info.value.retry_after_ms == 600

    def test_remaining(self, clock):
        limiter = FixedWindowRateLimiter(max_requests=3, clock=clock)
        assert limiter.remaining == 3
        limiter.check()
        assert limiter.remaining == 2
        limiter.check()
        limiter.check()
        with pytest.raises(RateLimitExceeded):
            limiter.check()
        assert limiter.remaining == 0


class TestRollover:
    """Test window rollover."""

    def test_call_after_window_resets(self, clock):
        """A call more than one window after the start succeeds and starts a new window."""
        limiter = FixedWindowRateLimiter(clock=clock)
        for _ in range(150):
            try:
                limiter.check()
            except RateLimitExceeded:
                pass

        clock.advance(60_001)
        limiter.check()  # Should not raise
        assert limiter.window.count == 1
        assert limiter.window.window_start_ms == clock.now

    def test_exactly_one_window_does_not_roll_over(self, clock):
        limiter = FixedWindowRateLimiter(max_requests=1, clock=clock)
        limiter.check()
        clock.advance(60_000)
        with pytest.raises(RateLimitExceeded):
            limiter.check()

    def test_long_idle_gap_starts_fresh(self, clock):
        """No backlog is preserved however long the gap."""
        limiter = FixedWindowRateLimiter(max_requests=2, clock=clock)
        limiter.check()
        limiter.check()
        clock.advance(10 * 60_000)
        limiter.check()
        limiter.check()
        with pytest.raises(RateLimitExceeded):
            limiter.check()

    def test_reset(self, clock):
        limiter = FixedWindowRateLimiter(max_requests=1, clock=clock)
        limiter.check()
        limiter.reset()
        limiter.check()  # Should not raise


class TestIsolation:
    """Test limiter independence and thread safety."""

    def test_instances_do_not_share_state(self, clock):
        first = FixedWindowRateLimiter(max_requests=1, clock=clock)
        second = FixedWindowRateLimiter(max_requests=1, clock=clock)
        first.check()
        second.check()  # Should not raise
        with pytest.raises(RateLimitExceeded):
            first.check()

    def test_ceiling_holds_across_threads(self, clock):
        limiter = FixedWindowRateLimiter(max_requests=100, clock=clock)
        allowed = []
        lock = threading.Lock()

        def worker():
            for _ in range(50):
                try:
                    limiter.check()
                except RateLimitExceeded:
                    continue
                with lock:
                    allowed.append(1)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(allowed) == 100
        assert limiter.window.count == 400

    @pytest.mark.parametrize("kwargs", [{"max_requests": 0}, {"window_ms": -1}])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            FixedWindowRateLimiter(**kwargs)
