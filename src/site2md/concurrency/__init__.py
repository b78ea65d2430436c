"""Concurrency management and the browser fetch path for site2md."""

from .limiter import ConcurrencyLimiter, throttled_request
from .stealth_browser import StealthBrowser, StealthBrowserOptions

__all__ = [
    "ConcurrencyLimiter",
    "StealthBrowser",
    "StealthBrowserOptions",
    "throttled_request",
]
