"""site2md configuration, event and result models."""

from .config import (
    ContentProcessingSettings,
    CustomSettings,
    GlobalSettings,
    LoggingSettings,
    RateLimitSettings,
    SiteConfig,
    SiteRateLimit,
    StealthBrowserSettings,
    Website,
)
from .events import EventType, FetchEvent, FetchStats
from .results import (
    ContentAnalysis,
    ExtractedContent,
    FetchOptions,
    FetchRequest,
    FetchResult,
    Link,
    SearchResult,
)

__all__ = [
    # Config
    "ContentProcessingSettings",
    "CustomSettings",
    "GlobalSettings",
    "LoggingSettings",
    "RateLimitSettings",
    "SiteConfig",
    "SiteRateLimit",
    "StealthBrowserSettings",
    "Website",
    # Events
    "EventType",
    "FetchEvent",
    "FetchStats",
    # Results
    "ContentAnalysis",
    "ExtractedContent",
    "FetchOptions",
    "FetchRequest",
    "FetchResult",
    "Link",
    "SearchResult",
]
