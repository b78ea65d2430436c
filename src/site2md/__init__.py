"""
site2md - Fetch web pages and API descriptions and convert them to Markdown.

Usage:
    from site2md import ConfigManager, WebsiteFetcher

    async with WebsiteFetcher(ConfigManager.from_sources()) as fetcher:
        result = await fetcher.fetch("https://react.dev")
        print(result.markdown)
"""

__version__ = "1.0.0"

from .core.config_manager import ConfigManager, load_config
from .core.context import FetchContext
from .core.fetcher import WebsiteFetcher, fetch_blocking
from .errors import (
    BrowserInitError,
    ContentLengthError,
    NetworkError,
    ParseError,
    RetryExhaustedError,
    Site2MdError,
    ValidationError,
)
from .models.config import GlobalSettings, SiteConfig, Website
from .models.events import EventType, FetchEvent, FetchStats
from .models.results import FetchOptions, FetchResult, SearchResult

__all__ = [
    "__version__",
    # Core
    "ConfigManager",
    "FetchContext",
    "WebsiteFetcher",
    "fetch_blocking",
    "load_config",
    # Config
    "GlobalSettings",
    "SiteConfig",
    "Website",
    # Results
    "FetchOptions",
    "FetchResult",
    "SearchResult",
    # Events
    "EventType",
    "FetchEvent",
    "FetchStats",
    # Errors
    "BrowserInitError",
    "ContentLengthError",
    "NetworkError",
    "ParseError",
    "RetryExhaustedError",
    "Site2MdError",
    "ValidationError",
]
