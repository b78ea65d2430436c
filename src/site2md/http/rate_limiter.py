"""Token-bucket rate limiting for outbound requests."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Optional

logger = logging.getLogger(__name__)

# Smallest sleep used while waiting for the bucket to refill
_MIN_WAIT = 0.001


class RateLimiter:
    """
    Token bucket limiter shared by every caller that holds a reference.

    The bucket starts full and refills lazily in whole tokens: a refill adds
    ``floor(elapsed * refill_rate)`` tokens and only moves the refill
    timestamp forward when at least one token was added, so partial credit
    keeps accruing between calls.

    Example:
        limiter = RateLimiter(max_tokens=5, refill_rate=1.0)

        for url in urls:
            await limiter.consume()
            await fetch(url)
    """

    def __init__(self, max_tokens: int, refill_rate: float) -> None:
        """
        Initialize the limiter.

        Args:
            max_tokens: Bucket capacity (burst size)
            refill_rate: Tokens added per second
        """
        if max_tokens < 1:
            raise ValueError("max_tokens must be at least 1")
        if refill_rate <= 0:
            raise ValueError("refill_rate must be positive")

        self._max_tokens = max_tokens
        self._refill_rate = float(refill_rate)
        self._tokens = float(max_tokens)
        self._last_refill = time.monotonic()

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    @property
    def refill_rate(self) -> float:
        return self._refill_rate

    def set_refill_rate(self, refill_rate: float) -> None:
        """Change the refill rate without touching the current token count."""
        if refill_rate <= 0:
            raise ValueError("refill_rate must be positive")
        self._refill()
        self._refill_rate = float(refill_rate)

    def _refill(self) -> None:
        now = time.monotonic()
        tokens_to_add = math.floor((now - self._last_refill) * self._refill_rate)
        if tokens_to_add > 0:
            self._tokens = min(float(self._max_tokens), self._tokens + tokens_to_add)
            self._last_refill = now

    async def consume(self, tokens: int = 1, timeout: Optional[float] = None) -> None:
        """
        Take ``tokens`` from the bucket, waiting for a refill if needed.

        Args:
            tokens: Number of tokens to take
            timeout: Maximum total seconds to wait (None waits indefinitely)

        Raises:
            ValueError: If more tokens are requested than the bucket holds
            TimeoutError: If the wait would exceed ``timeout``
        """
        if tokens > self._max_tokens:
            raise ValueError(f"Cannot consume {tokens} tokens from a bucket of {self._max_tokens}")

        started = time.monotonic()
        while True:
            self._refill()
            if self._tokens >= tokens:
                self._tokens -= tokens
                return

            # Time still owed before the missing tokens are credited
            needed = tokens - self._tokens
            accrued = time.monotonic() - self._last_refill
            wait = max(needed / self._refill_rate - accrued, _MIN_WAIT)

            if timeout is not None and (time.monotonic() - started) + wait > timeout:
                raise TimeoutError(f"Rate limiter wait of {wait:.2f}s exceeds timeout of {timeout:.2f}s")

            logger.debug(f"Rate limited, waiting {wait:.3f}s for {needed:g} token(s)")
            await asyncio.sleep(wait)

    def available_tokens(self) -> int:
        """Return the whole tokens currently available (refills first)."""
        self._refill()
        return int(self._tokens)


class AdaptiveRateLimiter:
    """
    Rate limiter that slows down after errors and recovers after success.

    Callers report outcomes with ``record_success`` and ``record_error``.
    FetchContext uses one as the global bucket when
    ``global_rate_limit.adaptive`` is enabled and reports every request.
    Before each ``consume`` the effective rate is recomputed:

    - error count at or above the threshold: ``base_rate / (errors - threshold + 1)``
    - no error for ``adaptation_window`` seconds and more than 10 successes:
      ``base_rate * min(1, successes / 20)``

    Example:
        limiter = AdaptiveRateLimiter(base_rate=2.0)

        await limiter.consume()
        try:
            await fetch(url)
            limiter.record_success()
        except NetworkError:
            limiter.record_error()
            raise
    """

    def __init__(
        self,
        base_rate: float,
        max_tokens: Optional[int] = None,
        error_threshold: int = 3,
        adaptation_window: float = 60.0,
    ) -> None:
        """
        Initialize the adaptive limiter.

        Args:
            base_rate: Nominal tokens per second
            max_tokens: Bucket capacity (defaults to twice the base rate)
            error_threshold: Error count that triggers slowdown
            adaptation_window: Seconds without errors before recovering
        """
        if max_tokens is None:
            max_tokens = max(1, int(base_rate * 2))

        self._base_rate = float(base_rate)
        self._error_threshold = error_threshold
        self._adaptation_window = adaptation_window
        self._limiter = RateLimiter(max_tokens, base_rate)

        self._error_count = 0.0
        self._success_count = 0
        self._last_error_time: Optional[float] = None

    @property
    def current_rate(self) -> float:
        return self._limiter.refill_rate

    def record_success(self) -> None:
        """Record a successful request; errors decay slowly."""
        self._success_count += 1
        self._error_count = max(0.0, self._error_count - 0.1)

    def record_error(self) -> None:
        """Record a failed request."""
        self._error_count += 1
        self._last_error_time = time.monotonic()
        self._success_count = max(0, self._success_count - 1)

    def _adjust_rate(self) -> None:
        if self._error_count >= self._error_threshold:
            factor = 1 / (self._error_count - self._error_threshold + 1)
            new_rate = self._base_rate * factor
        elif self._success_count > 10 and (
            self._last_error_time is None
            or time.monotonic() - self._last_error_time > self._adaptation_window
        ):
            # Recovery only ever speeds the limiter up
            new_rate = max(self._limiter.refill_rate, self._base_rate * min(1.0, self._success_count / 20))
        else:
            return

        if new_rate != self._limiter.refill_rate:
            logger.info(f"Adjusting request rate from {self._limiter.refill_rate:.2f}/s to {new_rate:.2f}/s")
            self._limiter.set_refill_rate(new_rate)

    async def consume(self, tokens: int = 1, timeout: Optional[float] = None) -> None:
        """Adjust the rate from recent outcomes, then take tokens."""
        self._adjust_rate()
        await self._limiter.consume(tokens, timeout=timeout)

    def available_tokens(self) -> int:
        return self._limiter.available_tokens()

    def get_stats(self) -> dict:
        """Get adaptive rate limiter statistics."""
        return {
            "error_count": self._error_count,
            "success_count": self._success_count,
            "current_rate": self._limiter.refill_rate,
            "available_tokens": self._limiter.available_tokens(),
        }
