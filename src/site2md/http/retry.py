"""Retry helpers with exponential backoff for async operations."""

from __future__ import annotations

import asyncio
import functools
import logging
import random
import re
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar, Union

from ..errors import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryCallback = Callable[[BaseException, int], None]
ErrorPattern = Union[str, re.Pattern]


@dataclass(frozen=True)
class RetryOptions:
    """
    Backoff policy for ``retry`` and friends.

    Attributes:
        retries: Retries after the first attempt (total attempts = retries + 1)
        factor: Multiplier applied per attempt
        min_timeout: Delay before the first retry, in seconds
        max_timeout: Upper bound for any single delay, in seconds
        randomize: Scale each delay by a uniform factor in [0.5, 1.5]
        on_retry: Called with (error, attempt_number) before each retry
    """

    retries: int = 3
    factor: float = 2.0
    min_timeout: float = 1.0
    max_timeout: float = 30.0
    randomize: bool = False
    on_retry: Optional[RetryCallback] = None


def compute_delay(attempt: int, options: RetryOptions) -> float:
    """
    Delay in seconds to wait after the failed attempt ``attempt`` (0-based).

    Args:
        attempt: Index of the attempt that just failed
        options: Backoff policy

    Returns:
        ``min(min_timeout * factor ** attempt, max_timeout)``, randomized if requested
    """
    delay = min(options.min_timeout * (options.factor**attempt), options.max_timeout)
    if options.randomize:
        delay *= random.random() + 0.5
    return delay


def _is_retryable(error: BaseException, patterns: Sequence[ErrorPattern]) -> bool:
    message = str(error)
    name = type(error).__name__
    for pattern in patterns:
        if isinstance(pattern, str):
            if pattern in message or pattern == name:
                return True
        elif pattern.search(message) or pattern.search(name):
            return True
    return False


async def _run(
    fn: Callable[[], Awaitable[T]],
    options: RetryOptions,
    patterns: Optional[Sequence[ErrorPattern]] = None,
) -> T:
    for attempt in range(options.retries + 1):
        try:
            return await fn()
        except Exception as e:
            if patterns is not None and not _is_retryable(e, patterns):
                raise
            if attempt == options.retries:
                raise RetryExhaustedError(
                    f"Operation failed after {options.retries} retries: {e}",
                    attempts=attempt + 1,
                    last_error=e,
                ) from e

            if options.on_retry:
                options.on_retry(e, attempt + 1)

            delay = compute_delay(attempt, options)
            logger.debug(
                f"Attempt {attempt + 1}/{options.retries + 1} failed: {e}, retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)

    raise RuntimeError("Retry loop exited without a result")


async def retry(fn: Callable[[], Awaitable[T]], options: Optional[RetryOptions] = None) -> T:
    """
    Run ``fn`` until it succeeds or the retry budget is spent.

    Args:
        fn: Zero-argument coroutine function
        options: Backoff policy (defaults to RetryOptions())

    Returns:
        The first successful result

    Raises:
        RetryExhaustedError: After ``retries + 1`` failed attempts

    Example:
        html = await retry(lambda: client.get(url), RetryOptions(retries=2))
    """
    return await _run(fn, options or RetryOptions())


async def retry_on_error(
    fn: Callable[[], Awaitable[T]],
    options: RetryOptions,
    retryable: Sequence[ErrorPattern],
) -> T:
    """
    Like ``retry`` but only retries errors matching ``retryable``.

    A string matches when it occurs in the error message or equals the
    exception class name. A compiled pattern is searched in both. Errors
    that match nothing propagate unchanged on the spot.
    """
    return await _run(fn, options, patterns=retryable)


def wrap_with_retry(
    fn: Callable[..., Awaitable[T]],
    options: Optional[RetryOptions] = None,
) -> Callable[..., Awaitable[T]]:
    """
    Return a coroutine function that calls ``fn`` under ``retry``.

    Example:
        get = wrap_with_retry(client.get, RetryOptions(retries=3))
        response = await get("https://example.com")
    """
    policy = options or RetryOptions()

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs) -> T:
        return await _run(lambda: fn(*args, **kwargs), policy)

    return wrapper


async def exponential_backoff(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
) -> T:
    """Retry with doubling, randomized delays capped at 30 seconds."""
    return await _run(
        fn,
        RetryOptions(
            retries=max_retries,
            factor=2.0,
            min_timeout=base_delay,
            max_timeout=30.0,
            randomize=True,
        ),
    )
