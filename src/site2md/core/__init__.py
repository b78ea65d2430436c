"""Orchestration: configuration, shared context and the WebsiteFetcher."""

from .config_manager import DEFAULT_WEBSITES, ConfigManager, load_config
from .context import FetchContext
from .fetcher import WebsiteFetcher, fetch_blocking

__all__ = [
    "DEFAULT_WEBSITES",
    "ConfigManager",
    "FetchContext",
    "WebsiteFetcher",
    "fetch_blocking",
    "load_config",
]
