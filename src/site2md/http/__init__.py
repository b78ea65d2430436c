"""HTTP client, retry and rate limiting for site2md."""

from .client import AsyncHttpClient
from .protocols import ContentFetcher, HttpResponse
from .rate_limiter import AdaptiveRateLimiter, RateLimiter
from .retry import (
    RetryOptions,
    compute_delay,
    exponential_backoff,
    retry,
    retry_on_error,
    wrap_with_retry,
)

__all__ = [
    "AdaptiveRateLimiter",
    "AsyncHttpClient",
    "ContentFetcher",
    "HttpResponse",
    "RateLimiter",
    "RetryOptions",
    "compute_delay",
    "exponential_backoff",
    "retry",
    "retry_on_error",
    "wrap_with_retry",
]
