"""Configuration loading and change notification."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..models.config import GlobalSettings, SiteConfig, Website
from ..models.results import FetchOptions

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "SITE2MD_CONFIG_PATH"
CONFIG_JSON_ENV = "SITE2MD_CONFIG"
DEFAULT_CONFIG_FILES = ("site2md.yaml", "site2md.yml", "config.json")

DEFAULT_WEBSITES = (
    Website(name="tailwind_css", url="https://tailwindcss.com", description="Tailwind CSS Official Website"),
    Website(name="nextjs", url="https://nextjs.org", description="Next.js Official Documentation"),
    Website(name="react", url="https://react.dev", description="React Official Documentation"),
)

ConfigCallback = Callable[[SiteConfig], None]


def _load_file(path: Path) -> Optional[SiteConfig]:
    if not path.is_file():
        logger.warning(f"Configuration file does not exist: {path}")
        return None
    try:
        config = SiteConfig.from_file(path)
    except (OSError, ValueError, PydanticValidationError) as e:
        logger.error(f"Failed to read configuration file {path}: {e}")
        return None
    logger.info(f"Loaded configuration from {path}")
    return config


def load_config(path: Optional[Union[str, Path]] = None, cwd: Optional[Path] = None) -> SiteConfig:
    """
    Resolve the configuration from the first source that yields a valid one.

    Order: explicit ``path``, the file named by ``SITE2MD_CONFIG_PATH``,
    inline JSON in ``SITE2MD_CONFIG``, ``site2md.yaml``/``config.json`` in
    the working directory, then the built-in default sites. Invalid sources
    are logged and skipped.

    Args:
        path: Explicit configuration file
        cwd: Directory used for relative paths and default files

    Returns:
        Validated SiteConfig
    """
    base = cwd or Path.cwd()

    candidates: list[Path] = []
    if path:
        candidates.append(Path(path))
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        candidates.append(Path(env_path))

    for candidate in candidates:
        if not candidate.is_absolute():
            candidate = base / candidate
        config = _load_file(candidate)
        if config is not None:
            return config

    inline = os.environ.get(CONFIG_JSON_ENV)
    if inline:
        try:
            config = SiteConfig.from_json(inline)
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Invalid configuration in {CONFIG_JSON_ENV}: {e}")
        else:
            logger.info(f"Loaded configuration from {CONFIG_JSON_ENV}")
            return config

    for name in DEFAULT_CONFIG_FILES:
        candidate = base / name
        if candidate.is_file():
            config = _load_file(candidate)
            if config is not None:
                return config

    logger.info("Using built-in default configuration")
    return SiteConfig(websites=[site.model_copy() for site in DEFAULT_WEBSITES])


class ConfigManager:
    """
    Read-only access to the site configuration with change notification.

    Consumers read a snapshot per operation. ``reload()`` swaps the
    snapshot and notifies subscribers; a failing subscriber is logged and
    does not affect the others.

    Example:
        manager = ConfigManager.from_sources()
        unsubscribe = manager.subscribe(lambda config: print(len(config.websites)))
        manager.reload()
        unsubscribe()
    """

    def __init__(self, config: Optional[SiteConfig] = None, path: Optional[Union[str, Path]] = None):
        """
        Args:
            config: Initial configuration (loaded from ``path`` when omitted)
            path: Configuration file consulted by ``reload()``
        """
        self._path = path
        self._config = config if config is not None else load_config(path)
        self._subscribers: list[ConfigCallback] = []

    @classmethod
    def from_sources(cls, path: Optional[Union[str, Path]] = None) -> ConfigManager:
        """Create a manager from the resolved configuration sources."""
        return cls(load_config(path), path=path)

    @property
    def config(self) -> SiteConfig:
        return self._config

    def get_websites(self) -> list[Website]:
        """Enabled sites in configuration order."""
        return [site for site in self._config.websites if site.enabled]

    def get_website(self, name: str) -> Optional[Website]:
        """Look up an enabled site by name."""
        for site in self.get_websites():
            if site.name == name:
                return site
        return None

    def get_global_settings(self) -> GlobalSettings:
        return self._config.settings

    def get_effective_options(self, site: Optional[Union[Website, str]] = None) -> FetchOptions:
        """
        Global settings merged with a site's overrides.

        Args:
            site: Website or site name (unknown names use the global settings)
        """
        if isinstance(site, str):
            site = self.get_website(site)
        return self._config.settings.fetch_options(site)

    def subscribe(self, callback: ConfigCallback) -> Callable[[], None]:
        """
        Register a callback invoked with the new config on every reload.

        Returns:
            A function that removes the callback (safe to call twice)
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def reload(self, config: Optional[SiteConfig] = None) -> SiteConfig:
        """
        Replace the snapshot and notify subscribers.

        Args:
            config: New configuration (re-resolved from the sources when omitted)
        """
        self._config = config if config is not None else load_config(self._path)
        logger.info(f"Configuration reloaded: {len(self._config.websites)} websites")
        for callback in list(self._subscribers):
            try:
                callback(self._config)
            except Exception as e:
                logger.error(f"Configuration change callback failed: {e}")
        return self._config
