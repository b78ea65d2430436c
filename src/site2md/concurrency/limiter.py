"""FIFO concurrency limiting and combined throttling."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable
from typing import Callable, TypeVar

from ..http.rate_limiter import AdaptiveRateLimiter, RateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrencyLimiter:
    """
    Bounds the number of operations running at once.

    Unlike ``asyncio.Semaphore``, admission is strictly first come first
    served: a finishing operation hands its slot directly to the oldest
    waiter, so a newcomer can never overtake a queued caller.

    Example:
        limiter = ConcurrencyLimiter(max_concurrency=5)

        results = await asyncio.gather(
            *(limiter.run(lambda u=url: fetch(u)) for url in urls)
        )
    """

    def __init__(self, max_concurrency: int) -> None:
        """
        Initialize the limiter.

        Args:
            max_concurrency: Maximum operations running at the same time
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._max_concurrency = max_concurrency
        self._active = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    @property
    def active(self) -> int:
        """Number of operations currently running."""
        return self._active

    @property
    def pending(self) -> int:
        """Number of callers waiting for a slot."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def _acquire(self) -> None:
        if self._active < self._max_concurrency and not self.pending:
            self._active += 1
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            # A slot handed over just before cancellation must be passed on
            if waiter.done() and not waiter.cancelled():
                self._release()
            raise
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # Slot transfers to the waiter, active count unchanged
                waiter.set_result(None)
                return
        self._active -= 1

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``fn`` once a slot is free.

        Args:
            fn: Zero-argument coroutine function

        Returns:
            Whatever ``fn`` returns; its exceptions propagate to the caller
        """
        await self._acquire()
        try:
            return await fn()
        finally:
            self._release()

    def clear_queue(self) -> int:
        """
        Cancel every queued caller.

        Each cancelled caller receives ``asyncio.CancelledError`` from ``run``.
        Operations already running are unaffected.

        Returns:
            Number of callers cancelled
        """
        cancelled = 0
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.cancel()
                cancelled += 1
        if cancelled:
            logger.debug(f"Cleared {cancelled} queued operation(s)")
        return cancelled


async def throttled_request(
    fn: Callable[[], Awaitable[T]],
    rate_limiter: RateLimiter | AdaptiveRateLimiter,
    concurrency_limiter: ConcurrencyLimiter,
) -> T:
    """
    Take one rate-limit token, then run ``fn`` under the concurrency limiter.

    Example:
        response = await throttled_request(
            lambda: client.fetch(url),
            rate_limiter=ctx.rate_limiter,
            concurrency_limiter=ctx.concurrency_limiter,
        )
    """
    await rate_limiter.consume(1)
    return await concurrency_limiter.run(fn)
