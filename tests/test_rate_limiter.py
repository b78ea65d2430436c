"""Tests for the token bucket and adaptive rate limiters."""

import time
from unittest.mock import patch

import pytest
from site2md.http.rate_limiter import AdaptiveRateLimiter, RateLimiter


class TestRateLimiter:
    """Tests for RateLimiter."""

    def test_starts_full(self):
        """Test that a new bucket holds max_tokens."""
        limiter = RateLimiter(max_tokens=5, refill_rate=1.0)
        assert limiter.available_tokens() == 5

    def test_rejects_invalid_arguments(self):
        """Test constructor validation."""
        with pytest.raises(ValueError):
            RateLimiter(max_tokens=0, refill_rate=1.0)
        with pytest.raises(ValueError):
            RateLimiter(max_tokens=1, refill_rate=0)

    @pytest.mark.asyncio
    async def test_burst_then_wait(self):
        """Test that five tokens are immediate and the sixth waits about a second."""
        limiter = RateLimiter(max_tokens=5, refill_rate=1.0)

        start = time.monotonic()
        for _ in range(5):
            await limiter.consume(1)
        assert time.monotonic() - start < 0.2

        await limiter.consume(1)
        elapsed = time.monotonic() - start
        assert 0.8 <= elapsed < 1.6

    @pytest.mark.asyncio
    async def test_tokens_never_exceed_capacity(self):
        """Test that refill is capped at max_tokens."""
        limiter = RateLimiter(max_tokens=3, refill_rate=100.0)
        await limiter.consume(1)

        with patch("site2md.http.rate_limiter.time.monotonic", return_value=time.monotonic() + 60):
            assert limiter.available_tokens() == 3

    @pytest.mark.asyncio
    async def test_consume_more_than_capacity_raises(self):
        """Test that asking for more tokens than the bucket holds fails fast."""
        limiter = RateLimiter(max_tokens=2, refill_rate=1.0)
        with pytest.raises(ValueError):
            await limiter.consume(3)

    @pytest.mark.asyncio
    async def test_consume_timeout(self):
        """Test that a wait longer than the timeout raises TimeoutError."""
        limiter = RateLimiter(max_tokens=1, refill_rate=0.1)
        await limiter.consume(1)

        with pytest.raises(TimeoutError):
            await limiter.consume(1, timeout=0.5)

    def test_set_refill_rate(self):
        """Test changing the refill rate."""
        limiter = RateLimiter(max_tokens=2, refill_rate=1.0)
        limiter.set_refill_rate(4.0)
        assert limiter.refill_rate == 4.0

        with pytest.raises(ValueError):
            limiter.set_refill_rate(0)


class TestAdaptiveRateLimiter:
    """Tests for AdaptiveRateLimiter."""

    def test_default_capacity(self):
        """Test that capacity defaults to twice the base rate."""
        limiter = AdaptiveRateLimiter(base_rate=2.0)
        assert limiter.available_tokens() == 4
        assert limiter.current_rate == 2.0

    def test_error_and_success_accounting(self):
        """Test that successes decay errors and errors reduce successes."""
        limiter = AdaptiveRateLimiter(base_rate=2.0)
        limiter.record_success()
        limiter.record_success()
        limiter.record_error()

        stats = limiter.get_stats()
        assert stats["success_count"] == 1
        assert stats["error_count"] == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_slows_down_after_errors(self):
        """Test rate reduction once errors reach the threshold."""
        limiter = AdaptiveRateLimiter(base_rate=4.0, max_tokens=10, error_threshold=3)
        for _ in range(4):
            limiter.record_error()

        await limiter.consume()

        # 4 errors, threshold 3: base / (4 - 3 + 1)
        assert limiter.current_rate == pytest.approx(2.0)
        assert limiter.get_stats()["current_rate"] == pytest.approx(2.0)

    @pytest.mark.asyncio
    async def test_recovers_after_successes(self):
        """Test that many successes without recent errors restore the rate."""
        limiter = AdaptiveRateLimiter(base_rate=4.0, max_tokens=10, error_threshold=3)
        for _ in range(4):
            limiter.record_error()
        await limiter.consume()
        slowed = limiter.current_rate

        for _ in range(40):
            limiter.record_success()

        with patch("site2md.http.rate_limiter.time.monotonic", return_value=time.monotonic() + 120):
            limiter._adjust_rate()

        assert limiter.current_rate > slowed
        assert limiter.current_rate == pytest.approx(4.0)

    @pytest.mark.asyncio
    async def test_unchanged_without_signal(self):
        """Test that a few successes leave the rate alone."""
        limiter = AdaptiveRateLimiter(base_rate=3.0)
        limiter.record_success()
        await limiter.consume()
        assert limiter.current_rate == 3.0
