"""Explicit shared state for one fetching session."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Sequence
from types import TracebackType
from typing import Callable, Optional, TypeVar, Union

from ..concurrency.limiter import ConcurrencyLimiter, throttled_request
from ..concurrency.stealth_browser import StealthBrowser, StealthBrowserOptions
from ..http.client import AsyncHttpClient
from ..http.protocols import ContentFetcher
from ..http.rate_limiter import AdaptiveRateLimiter, RateLimiter
from ..models.config import GlobalSettings, Website
from ..models.results import FetchOptions

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Called as factory(options, rate_limiter=...)
BrowserFactory = Callable[..., StealthBrowser]
AnyRateLimiter = Union[RateLimiter, AdaptiveRateLimiter]


class FetchContext:
    """
    Owns the limiters, the HTTP client and the settings snapshot shared by
    every fetch in a session.

    The global token bucket applies to all requests unless the request's
    site has its own ``rate_limit``, in which case that site's bucket is
    used instead. Every request goes through the one ConcurrencyLimiter.
    With ``global_rate_limit.adaptive`` set the global bucket is an
    AdaptiveRateLimiter fed with the outcome of every request it admits.
    Stealth browser sessions share one navigation bucket so pages are
    throttled across sessions, not just within one.

    Example:
        async with FetchContext(settings, websites) as context:
            response = await context.throttle(lambda: context.http_client.fetch(url))
    """

    def __init__(
        self,
        settings: Optional[GlobalSettings] = None,
        websites: Sequence[Website] = (),
        http_client: Optional[ContentFetcher] = None,
        browser_factory: Optional[BrowserFactory] = None,
    ) -> None:
        """
        Args:
            settings: Settings snapshot (defaults when omitted)
            websites: Sites whose ``rate_limit`` overrides get their own bucket
            http_client: Client for the plain path (an AsyncHttpClient is
                created and owned by the context when omitted)
            browser_factory: Creates a StealthBrowser per stealth fetch, called
                with the options and the shared navigation limiter
        """
        self.settings = settings or GlobalSettings()
        self.rate_limiter: Optional[AnyRateLimiter] = None
        if self.settings.enable_global_rate_limit:
            limit = self.settings.global_rate_limit
            if limit.adaptive:
                self.rate_limiter = AdaptiveRateLimiter(limit.requests_per_second, max_tokens=limit.burst_limit)
            else:
                self.rate_limiter = RateLimiter(limit.burst_limit, limit.requests_per_second)
        self.navigation_limiter = RateLimiter(max_tokens=1, refill_rate=1.0)

        self.concurrency_limiter = ConcurrencyLimiter(self.settings.max_concurrent_requests)
        self.site_limiters: dict[str, RateLimiter] = self._build_site_limiters(websites)

        self._owns_client = http_client is None
        self.http_client: ContentFetcher = http_client or AsyncHttpClient(
            user_agent=self.settings.default_user_agent,
            default_timeout=self.settings.default_timeout,
            proxy=self._proxy(),
        )
        self._browser_factory: BrowserFactory = browser_factory or StealthBrowser

    def _proxy(self) -> Optional[str]:
        browser = self.settings.stealth_browser
        return browser.proxy_url if browser.use_proxy else None

    def _build_site_limiters(self, websites: Sequence[Website]) -> dict[str, RateLimiter]:
        limiters = {}
        default = self.settings.global_rate_limit
        for site in websites:
            custom = site.custom_settings
            if custom is None or custom.rate_limit is None:
                continue
            rate = custom.rate_limit.requests_per_second or default.requests_per_second
            burst = custom.rate_limit.burst_limit or default.burst_limit
            limiters[site.name] = RateLimiter(burst, rate)
            logger.debug(f"Rate limit for {site.name}: {rate}/s, burst {burst}")
        return limiters

    async def __aenter__(self) -> FetchContext:
        if self._owns_client and isinstance(self.http_client, AsyncHttpClient):
            await self.http_client.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.concurrency_limiter.clear_queue()
        if self._owns_client and isinstance(self.http_client, AsyncHttpClient):
            await self.http_client.__aexit__(exc_type, exc_val, exc_tb)

    def update_websites(self, websites: Sequence[Website]) -> None:
        """Rebuild the per-site buckets after a configuration change."""
        self.site_limiters = self._build_site_limiters(websites)

    def rate_limiter_for(self, site: Optional[Website] = None) -> Optional[AnyRateLimiter]:
        """The bucket that admits requests for ``site`` (None when unlimited)."""
        if site is not None and site.name in self.site_limiters:
            return self.site_limiters[site.name]
        return self.rate_limiter

    async def throttle(self, fn: Callable[[], Awaitable[T]], site: Optional[Website] = None) -> T:
        """Run ``fn`` after taking a rate-limit token and a concurrency slot."""
        limiter = self.rate_limiter_for(site)
        if limiter is None:
            return await self.concurrency_limiter.run(fn)
        if not isinstance(limiter, AdaptiveRateLimiter):
            return await throttled_request(fn, limiter, self.concurrency_limiter)

        try:
            result = await throttled_request(fn, limiter, self.concurrency_limiter)
        except Exception:
            limiter.record_error()
            raise
        limiter.record_success()
        return result

    def create_browser(self, options: FetchOptions) -> StealthBrowser:
        """Build a StealthBrowser configured from the settings and ``options``."""
        browser = self.settings.stealth_browser
        return self._browser_factory(
            StealthBrowserOptions(
                headless=browser.headless,
                timeout=options.timeout,
                user_agent=options.user_agent or self.settings.default_user_agent,
                proxy=self._proxy(),
                blocked_resource_types=tuple(browser.block_resources),
                browser_type=browser.browser_type,
                navigation_retries=options.retries,
            ),
            rate_limiter=self.navigation_limiter,
        )
