"""Headless browser fetch path with anti-automation countermeasures."""

from __future__ import annotations

import logging
import random
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Route,
    async_playwright,
)

from ..errors import BrowserInitError, NetworkError
from ..http.client import DEFAULT_USER_AGENT
from ..http.protocols import HttpResponse
from ..http.rate_limiter import RateLimiter
from ..http.retry import RetryOptions, retry

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--single-process",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
    "--disable-features=VizDisplayCompositor",
]

EXTRA_HTTP_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

# Installed in every page before any site script runs
STEALTH_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
if (window.chrome && window.chrome.runtime) {
  delete window.chrome.runtime.onConnect;
  delete window.chrome.runtime.onMessage;
}
Object.defineProperty(navigator, 'plugins', {
  get: () => [
    { name: 'Chrome PDF Plugin', description: 'Portable Document Format' },
    { name: 'Chrome PDF Viewer', description: 'Portable Document Format' },
    { name: 'Native Client', description: 'Native Client' },
  ],
});
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
Object.defineProperty(navigator, 'hardwareConcurrency', { get: () => 4 });
Object.defineProperty(navigator, 'deviceMemory', { get: () => 8 });
"""

SCROLL_SCRIPT = "() => window.scrollTo(0, Math.random() * document.body.scrollHeight * 0.3)"

BROWSER_TYPES = ("chromium", "firefox", "webkit")


@dataclass(frozen=True)
class StealthBrowserOptions:
    """
    Settings for a StealthBrowser session.

    Attributes:
        headless: Run without a visible window
        timeout: Default timeout for page operations, in seconds
        user_agent: User-Agent reported by the browser
        proxy: Proxy server URL
        viewport: Window size as (width, height)
        blocked_resource_types: Playwright resource types aborted before download
        enable_stealth: Install the fingerprint-masking init script
        browser_type: One of chromium, firefox, webkit
        settle_delay: Seconds to wait after DOMContentLoaded
        navigation_retries: Retries for a failed navigation
    """

    headless: bool = True
    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    proxy: Optional[str] = None
    viewport: tuple[int, int] = (1920, 1080)
    blocked_resource_types: tuple[str, ...] = field(default=("image", "font", "media"))
    enable_stealth: bool = True
    browser_type: str = "chromium"
    settle_delay: float = 2.0
    navigation_retries: int = 3


class StealthBrowser:
    """
    One headless browser session dressed up as a regular desktop browser.

    Navigation is rate limited (one page per second by default) and retried with
    exponential backoff. Every resource acquired on startup is released
    in reverse order (page, context, browser, driver) on every exit path,
    including a failed startup.

    Example:
        async with StealthBrowser(StealthBrowserOptions(headless=True)) as browser:
            response = await browser.fetch("https://example.com")
            print(response.text)

    Requires the Playwright browsers: playwright install chromium
    """

    def __init__(
        self,
        options: Optional[StealthBrowserOptions] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        """
        Args:
            options: Session settings (defaults when omitted)
            rate_limiter: Bucket admitting navigations; pass a shared one to
                throttle across sessions (one page per second otherwise)
        """
        self._options = options or StealthBrowserOptions()
        if self._options.browser_type not in BROWSER_TYPES:
            raise ValueError(f"Unsupported browser type: {self._options.browser_type}")

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._rate_limiter = rate_limiter or RateLimiter(max_tokens=1, refill_rate=1.0)

    @property
    def options(self) -> StealthBrowserOptions:
        return self._options

    async def __aenter__(self) -> StealthBrowser:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def start(self) -> None:
        """
        Launch the browser, create a context and open a page.

        Raises:
            BrowserInitError: If any startup step fails (resources are released first)
        """
        opts = self._options
        logger.info(f"Starting stealth browser ({opts.browser_type}, headless={opts.headless})")

        try:
            self._playwright = await async_playwright().start()

            launch_options: dict[str, Any] = {"headless": opts.headless, "args": list(LAUNCH_ARGS)}
            if opts.proxy:
                launch_options["proxy"] = {"server": opts.proxy}

            browser_type = getattr(self._playwright, opts.browser_type)
            self._browser = await browser_type.launch(**launch_options)

            width, height = opts.viewport
            self._context = await self._browser.new_context(
                user_agent=opts.user_agent,
                viewport={"width": width, "height": height},
                extra_http_headers=dict(EXTRA_HTTP_HEADERS),
            )
            if opts.enable_stealth:
                await self._context.add_init_script(STEALTH_INIT_SCRIPT)

            self._page = await self._context.new_page()
            if opts.blocked_resource_types:
                await self._page.route("**/*", self._handle_route)
            self._page.set_default_timeout(opts.timeout * 1000)

        except Exception as e:
            logger.error(f"Stealth browser failed to start: {e}")
            await self.close()
            raise BrowserInitError(f"Failed to start {opts.browser_type}: {e}") from e

        logger.info("Stealth browser ready")

    async def _handle_route(self, route: Route) -> None:
        if route.request.resource_type in self._options.blocked_resource_types:
            await route.abort()
        else:
            await route.continue_()

    def _require_page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser not started. Use 'async with' context manager.")
        return self._page

    async def _simulate_human_behavior(self, page: Page) -> None:
        width, height = self._options.viewport
        await page.mouse.move(random.random() * width, random.random() * height, steps=10)
        await page.evaluate(SCROLL_SCRIPT)
        await page.wait_for_timeout(500 + random.random() * 2000)

    async def _navigate_once(self, page: Page, url: str) -> int:
        logger.info(f"Navigating to {url}")
        response = await page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=self._options.timeout * 1000,
        )
        status = response.status if response is not None else 200
        if status >= 400:
            raise NetworkError(url, f"HTTP {status}", status_code=status)

        await page.wait_for_timeout(self._options.settle_delay * 1000)
        await self._simulate_human_behavior(page)
        return status

    async def navigate(self, url: str) -> int:
        """
        Load ``url`` in the page, behaving like a human visitor.

        Args:
            url: Page to open

        Returns:
            HTTP status of the main document (200 when unknown)
        """
        page = self._require_page()
        await self._rate_limiter.consume()

        def log_retry(error: BaseException, attempt: int) -> None:
            retries = self._options.navigation_retries
            logger.warning(f"Navigation to {url} failed ({error}), retry {attempt}/{retries}")

        return await retry(
            lambda: self._navigate_once(page, url),
            RetryOptions(retries=self._options.navigation_retries, min_timeout=1.0, on_retry=log_retry),
        )

    async def fetch(
        self,
        url: str,
        *,
        timeout: Optional[float] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> HttpResponse:
        """
        Navigate to ``url`` and return the rendered document.

        ``timeout`` is accepted for interface compatibility; the session
        timeout from the options applies.
        """
        page = self._require_page()
        if headers and self._context is not None:
            await self._context.set_extra_http_headers({**EXTRA_HTTP_HEADERS, **headers})

        status = await self.navigate(url)
        html = await page.content()

        return HttpResponse(
            status_code=status,
            content=html.encode("utf-8"),
            content_type="text/html; charset=utf-8",
            url=page.url,
            text=html,
        )

    async def get_content(self) -> dict[str, str]:
        """Return the current page title, HTML and URL."""
        page = self._require_page()
        return {
            "title": await page.title(),
            "content": await page.content(),
            "url": page.url,
        }

    async def execute_script(self, script: str) -> Any:
        """Evaluate a JavaScript expression in the page."""
        return await self._require_page().evaluate(script)

    async def screenshot(self, path: Optional[str] = None, full_page: bool = True) -> bytes:
        """Capture the page as PNG bytes, optionally writing it to ``path``."""
        return await self._require_page().screenshot(path=path, full_page=full_page)

    async def close(self) -> None:
        """Release page, context, browser and driver, in that order."""
        if self._page is not None:
            try:
                await self._page.close()
            except Exception as e:
                logger.warning(f"Error closing page: {e}")
            self._page = None

        if self._context is not None:
            try:
                await self._context.close()
            except Exception as e:
                logger.warning(f"Error closing browser context: {e}")
            self._context = None

        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping Playwright: {e}")
            self._playwright = None
            logger.info("Stealth browser closed")
