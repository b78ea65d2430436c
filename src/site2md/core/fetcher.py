"""Main WebsiteFetcher class tying configuration, context and pipeline together."""

from __future__ import annotations

import asyncio
import dataclasses
from types import TracebackType
from typing import Callable, Optional, Union

from ..errors import Site2MdError
from ..http.protocols import ContentFetcher
from ..models.config import SiteConfig, Website
from ..models.events import FetchEvent, FetchStats
from ..models.results import FetchOptions, FetchRequest, FetchResult, SearchResult
from ..pipeline.base import FetchPipeline
from ..pipeline.steps import AnalyzeStep, ConvertStep, ExtractStep, FetchStep, OpenApiStep
from ..search.relevance import RelevanceSearch
from .config_manager import ConfigManager
from .context import BrowserFactory, FetchContext


class WebsiteFetcher:
    """
    Primary API for site2md.

    Fetches single URLs or configured sites and runs relevance searches,
    sharing one FetchContext (rate limiters, concurrency limiter, HTTP
    client) across every call made inside the ``async with`` block.

    Example:
        manager = ConfigManager.from_sources()

        async with WebsiteFetcher(manager, on_event=print) as fetcher:
            result = await fetcher.fetch("https://react.dev")
            print(result.title, result.word_count)

            for item in await fetcher.search("docs"):
                print(item.site.name, item.relevance)

        print(f"Stats: {fetcher.stats.to_dict()}")
    """

    def __init__(
        self,
        config: Optional[Union[ConfigManager, SiteConfig]] = None,
        on_event: Optional[Callable[[FetchEvent], None]] = None,
        http_client: Optional[ContentFetcher] = None,
        browser_factory: Optional[BrowserFactory] = None,
    ):
        """
        Initialize the WebsiteFetcher.

        Args:
            config: ConfigManager or a SiteConfig snapshot (resolved from
                    the usual sources when omitted)
            on_event: Optional callback receiving every FetchEvent
            http_client: Client for the plain fetch path (for testing)
            browser_factory: StealthBrowser factory (for testing)
        """
        if isinstance(config, ConfigManager):
            self.config_manager = config
        else:
            self.config_manager = ConfigManager(config)

        self._on_event = on_event
        self._http_client = http_client
        self._browser_factory = browser_factory
        self._stats = FetchStats()

        # Components (initialized in __aenter__)
        self._context: Optional[FetchContext] = None
        self._pipeline: Optional[FetchPipeline] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def stats(self) -> FetchStats:
        """Get current fetch statistics."""
        return self._stats

    @property
    def context(self) -> Optional[FetchContext]:
        return self._context

    async def __aenter__(self) -> WebsiteFetcher:
        """Enter async context and initialize components."""
        config = self.config_manager.config
        self._context = FetchContext(
            settings=config.settings,
            websites=config.websites,
            http_client=self._http_client,
            browser_factory=self._browser_factory,
        )
        await self._context.__aenter__()

        self._pipeline = FetchPipeline(
            steps=[
                FetchStep(self._context),
                OpenApiStep(),
                ExtractStep(),
                ConvertStep(),
                AnalyzeStep(),
            ]
        )
        self._unsubscribe = self.config_manager.subscribe(self._on_config_change)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context and cleanup resources."""
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

        if self._context:
            await self._context.__aexit__(exc_type, exc_val, exc_tb)
            self._context = None

        self._pipeline = None

    def _on_config_change(self, config: SiteConfig) -> None:
        if self._context is not None:
            self._context.update_websites(config.websites)

    def _emit(self, event: FetchEvent) -> None:
        self._stats.record(event)
        if self._on_event:
            self._on_event(event)

    async def fetch(
        self,
        url: str,
        site: Optional[Website] = None,
        stealth: Optional[bool] = None,
        options: Optional[FetchOptions] = None,
    ) -> FetchResult:
        """
        Fetch one URL and convert it to Markdown.

        Args:
            url: Resource to fetch
            site: Configured site the fetch is made for (its overrides apply)
            stealth: Force or forbid the stealth browser path
            options: Explicit options (bypasses the configuration merge)

        Returns:
            FetchResult for the page or API document

        Raises:
            Site2MdError: Whatever the failing pipeline step raised
        """
        if self._pipeline is None:
            raise RuntimeError("WebsiteFetcher not initialized. Use 'async with' context manager.")

        options = options or self.config_manager.get_effective_options(site)
        if stealth is not None:
            options = dataclasses.replace(options, use_stealth_browser=stealth)

        ctx = await self._pipeline.execute(FetchRequest(url=url, options=options, site=site), emit=self._emit)

        if ctx.error is not None:
            raise ctx.error
        if ctx.result is None:
            raise Site2MdError(f"No result produced for {url}")
        return ctx.result

    async def fetch_website(self, site: Website) -> FetchResult:
        """Fetch a configured site's URL with its overrides applied."""
        return await self.fetch(site.url, site=site)

    async def fetch_site(self, name: str) -> tuple[Website, FetchResult]:
        """
        Fetch a configured site by name.

        Raises:
            Site2MdError: If no enabled site has that name
        """
        site = self.config_manager.get_website(name)
        if site is None:
            raise Site2MdError(f"Unknown website: {name}")
        return site, await self.fetch_website(site)

    async def search(self, query: str) -> list[SearchResult]:
        """Rank the enabled configured sites for ``query``."""
        search = RelevanceSearch(self.fetch_website, emit=self._emit)
        return await search.search(query, self.config_manager.get_websites())


def fetch_blocking(
    url: str,
    on_event: Optional[Callable[[FetchEvent], None]] = None,
    config: Optional[Union[ConfigManager, SiteConfig]] = None,
    stealth: Optional[bool] = None,
) -> FetchResult:
    """
    Blocking fetch with optional event callback.

    This is a convenience wrapper for sync code that can't use async/await.
    For async code, use the WebsiteFetcher class directly.

    WARNING: Do not call from within an existing event loop (e.g., Jupyter,
    asyncio-based frameworks). Use the async WebsiteFetcher API instead.

    Args:
        url: The URL to fetch
        on_event: Optional callback for events (for progress tracking)
        config: Configuration to use (resolved from the usual sources if None)
        stealth: Force or forbid the stealth browser path

    Returns:
        FetchResult for the URL

    Example:
        result = fetch_blocking("https://example.com/openapi.json")
        print(result.summary)
    """
    # Detect if we're already in an async context
    try:
        asyncio.get_running_loop()
        raise RuntimeError("fetch_blocking() called from async context. Use 'async with WebsiteFetcher()' instead.")
    except RuntimeError as e:
        if "no running event loop" not in str(e).lower():
            raise

    async def _run() -> FetchResult:
        async with WebsiteFetcher(config, on_event=on_event) as fetcher:
            return await fetcher.fetch(url, stealth=stealth)

    return asyncio.run(_run())
