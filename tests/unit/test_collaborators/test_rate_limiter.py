"""Tests for the token-bucket rate limiter."""

import pytest

from curator.collaborators.rate_limiter import TokenBucketRateLimiter
from tests.helpers.time import FakeClock


class TestTokenBucketRateLimiter:
    """Tests for TokenBucketRateLimiter."""

    def test_burst_up_to_capacity(self) -> None:
        """Test the bucket starts full."""
        clock = FakeClock()
        limiter = TokenBucketRateLimiter(
            max_qps=2.0, bucket_capacity=2.0, clock=clock, sleep=clock.sleep
        )

        assert limiter.try_acquire()
        assert limiter.try_acquire()
        assert not limiter.try_acquire()
        assert limiter.rate_limited_count == 1

    def test_refills_over_time(self) -> None:
        """Test tokens come back at max_qps."""
        clock = FakeClock()
        limiter = TokenBucketRateLimiter(max_qps=1.0, clock=clock, sleep=clock.sleep)
        limiter.acquire()

        clock.advance(1.0)

        assert limiter.try_acquire()

    def test_acquire_waits_for_token(self) -> None:
        """Test acquire sleeps until a token is available."""
        clock = FakeClock()
        limiter = TokenBucketRateLimiter(max_qps=4.0, clock=clock, sleep=clock.sleep)
        for _ in range(4):
            limiter.acquire()

        limiter.acquire()

        assert clock.sleeps == [0.25]

    def test_default_capacity_at_least_one(self) -> None:
        """Test fractional rates still allow one immediate request."""
        limiter = TokenBucketRateLimiter(max_qps=0.5, clock=FakeClock())
        assert limiter.bucket_capacity == 1.0
        assert limiter.try_acquire()

    def test_invalid_rate(self) -> None:
        """Test a non-positive rate is rejected."""
        with pytest.raises(ValueError, match="must be positive"):
            TokenBucketRateLimiter(max_qps=0.0)
