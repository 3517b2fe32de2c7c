"""Unit tests for RateLimiter."""

import pytest

from boardhook.auth import RateLimiter, RateLimitExceededError


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.unit
class TestRateLimiter:
    """Tests for the fixed-window limiter."""

    def test_allows_up_to_limit(self) -> None:
        """The first `limit` requests in a window pass."""
        limiter = RateLimiter(limit=3, window_seconds=60, clock=FakeClock())

        for _ in range(3):
            limiter.check("key-1")

    def test_rejects_over_limit(self) -> None:
        """Request limit+1 raises with a retry-after."""
        clock = FakeClock()
        limiter = RateLimiter(limit=3, window_seconds=60, clock=clock)
        for _ in range(3):
            limiter.check("key-1")

        clock.now += 20.5
        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.check("key-1")

        assert exc_info.value.retry_after == 40

    def test_retry_after_is_at_least_one(self) -> None:
        """Retry-After never drops to zero inside the window."""
        clock = FakeClock()
        limiter = RateLimiter(limit=1, window_seconds=60, clock=clock)
        limiter.check("key-1")

        clock.now += 59.99
        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.check("key-1")

        assert exc_info.value.retry_after == 1

    def test_window_resets(self) -> None:
        """A new window starts once the old one has passed."""
        clock = FakeClock()
        limiter = RateLimiter(limit=1, window_seconds=60, clock=clock)
        limiter.check("key-1")

        clock.now += 61
        limiter.check("key-1")

    def test_keys_are_independent(self) -> None:
        """Each API key has its own window."""
        limiter = RateLimiter(limit=1, window_seconds=60, clock=FakeClock())
        limiter.check("key-1")

        limiter.check("key-2")
        with pytest.raises(RateLimitExceededError):
            limiter.check("key-1")

    def test_reset(self) -> None:
        """reset() forgets all windows."""
        limiter = RateLimiter(limit=1, window_seconds=60, clock=FakeClock())
        limiter.check("key-1")

        limiter.reset()

        limiter.check("key-1")
