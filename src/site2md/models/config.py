"""Pydantic configuration models for site2md."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal, Optional
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field, field_validator

from ..http.client import DEFAULT_USER_AGENT
from .results import FetchOptions


class SiteRateLimit(BaseModel):
    """Per-site rate limit override (unset fields inherit the global limit)."""

    requests_per_second: Optional[float] = Field(None, ge=0.1, le=100, description="Sustained request rate")
    burst_limit: Optional[int] = Field(None, ge=1, le=1000, description="Token bucket capacity")

    model_config = {"extra": "forbid"}


class RateLimitSettings(BaseModel):
    """Global token bucket settings."""

    requests_per_second: float = Field(2.0, ge=0.1, le=100, description="Sustained request rate")
    burst_limit: int = Field(10, ge=1, le=1000, description="Token bucket capacity")
    adaptive: bool = Field(False, description="Slow down after errors and recover after successes")

    model_config = {"extra": "forbid"}


class CustomSettings(BaseModel):
    """Per-site overrides of the global settings."""

    timeout: Optional[float] = Field(None, ge=1, le=120, description="Request timeout in seconds")
    retries: Optional[int] = Field(None, ge=0, le=10, description="Retries after the first attempt")
    use_stealth_browser: Optional[bool] = Field(None, description="Fetch through the headless browser")
    extract_main_content: Optional[bool] = Field(None, description="Select the main content region")
    remove_ads: Optional[bool] = Field(None, description="Strip ad-like elements")
    preserve_images: Optional[bool] = Field(None, description="Keep images in the output")
    preserve_links: Optional[bool] = Field(None, description="Keep links in the output")
    custom_user_agent: Optional[str] = Field(None, description="User-Agent for this site")
    custom_headers: dict[str, str] = Field(default_factory=dict, description="Extra request headers")
    rate_limit: Optional[SiteRateLimit] = Field(None, description="Dedicated rate limit for this site")

    model_config = {"extra": "forbid"}


class Website(BaseModel):
    """
    A configured site that can be fetched by name and searched.

    Example:
        Website(name="react", url="https://react.dev", description="React docs")
    """

    name: str = Field(..., min_length=1, description="Unique site name")
    url: str = Field(..., description="Site URL (http or https)")
    description: Optional[str] = Field(None, description="Human-readable description, used by search")
    enabled: bool = Field(True, description="Disabled sites are ignored")
    custom_settings: Optional[CustomSettings] = Field(None, description="Overrides of the global settings")

    model_config = {"extra": "forbid"}

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid website URL: {value}")
        return value


class StealthBrowserSettings(BaseModel):
    """Headless browser fetch settings."""

    enabled: bool = Field(False, description="Use the headless browser by default")
    headless: bool = Field(True, description="Run the browser without a window")
    block_resources: list[str] = Field(
        default_factory=lambda: ["image", "font", "media"],
        description="Resource types aborted before download",
    )
    browser_type: Literal["chromium", "firefox", "webkit"] = Field("chromium", description="Browser engine")
    use_proxy: bool = Field(False, description="Route browser traffic through proxy_url")
    proxy_url: Optional[str] = Field(None, description="Proxy server URL")

    model_config = {"extra": "forbid"}


class ContentProcessingSettings(BaseModel):
    """Extraction and conversion defaults."""

    remove_ads: bool = Field(True, description="Strip ad-like elements")
    remove_navigation: bool = Field(True, description="Strip navigation regions")
    remove_footer: bool = Field(True, description="Strip footers")
    remove_sidebar: bool = Field(True, description="Strip sidebars")
    extract_main_content: bool = Field(True, description="Select the main content region")
    preserve_images: bool = Field(False, description="Keep images in the output")
    preserve_links: bool = Field(True, description="Keep links in the output")
    min_text_length: int = Field(100, ge=0, description="Shorter Markdown is rejected")
    max_text_length: Optional[int] = Field(None, ge=1, description="Longer Markdown is truncated")
    generate_summary: bool = Field(True, description="Compute a short summary")

    model_config = {"extra": "forbid"}


class LoggingSettings(BaseModel):
    """Logging output settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field("INFO", description="Logging level")
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}


class GlobalSettings(BaseModel):
    """Settings applied to every fetch unless a site overrides them."""

    default_timeout: float = Field(30.0, ge=1, le=120, description="Request timeout in seconds")
    default_retries: int = Field(3, ge=0, le=10, description="Retries after the first attempt")
    default_user_agent: str = Field(DEFAULT_USER_AGENT, description="User-Agent header")
    max_concurrent_requests: int = Field(5, ge=1, le=50, description="Fetches running at once")
    enable_global_rate_limit: bool = Field(True, description="Apply the global token bucket")
    global_rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    stealth_browser: StealthBrowserSettings = Field(default_factory=StealthBrowserSettings)
    content_processing: ContentProcessingSettings = Field(default_factory=ContentProcessingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = {"extra": "forbid"}

    def fetch_options(self, site: Optional[Website] = None) -> FetchOptions:
        """
        Merge these settings with a site's overrides.

        Args:
            site: Site whose ``custom_settings`` take precedence

        Returns:
            Effective FetchOptions
        """
        content = self.content_processing
        custom = site.custom_settings if site and site.custom_settings else CustomSettings()

        def pick(override, default):
            return default if override is None else override

        return FetchOptions(
            timeout=pick(custom.timeout, self.default_timeout),
            retries=pick(custom.retries, self.default_retries),
            user_agent=custom.custom_user_agent or self.default_user_agent,
            headers=dict(custom.custom_headers),
            use_stealth_browser=pick(custom.use_stealth_browser, self.stealth_browser.enabled),
            extract_main_content=pick(custom.extract_main_content, content.extract_main_content),
            remove_ads=pick(custom.remove_ads, content.remove_ads),
            remove_navigation=content.remove_navigation,
            remove_footer=content.remove_footer,
            remove_sidebar=content.remove_sidebar,
            preserve_images=pick(custom.preserve_images, content.preserve_images),
            preserve_links=pick(custom.preserve_links, content.preserve_links),
            min_text_length=content.min_text_length,
            max_text_length=content.max_text_length,
            generate_summary=content.generate_summary,
        )


class SiteConfig(BaseModel):
    """
    Root configuration model for site2md.

    YAML format:
        websites:
          - name: react
            url: https://react.dev
            description: React documentation
            custom_settings:
              timeout: 20
        settings:
          max_concurrent_requests: 3
          content_processing:
            min_text_length: 50
    """

    websites: list[Website] = Field(default_factory=list, description="Configured sites, in order")
    settings: GlobalSettings = Field(default_factory=GlobalSettings)

    model_config = {"extra": "forbid"}

    @field_validator("websites")
    @classmethod
    def _unique_names(cls, websites: list[Website]) -> list[Website]:
        seen: set[str] = set()
        for site in websites:
            if site.name in seen:
                raise ValueError(f"Duplicate website name: {site.name}")
            seen.add(site.name)
        return websites

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        return yaml.dump(
            self.model_dump(mode="json", exclude_none=True),
            default_flow_style=False,
            sort_keys=False,
        )

    @classmethod
    def from_yaml(cls, yaml_str: str) -> SiteConfig:
        """Load config from YAML string."""
        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, json_str: str) -> SiteConfig:
        """Load config from JSON string."""
        return cls.model_validate(json.loads(json_str))

    @classmethod
    def from_file(cls, path: Path) -> SiteConfig:
        """Load config from a .json, .yaml or .yml file."""
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            return cls.from_json(text)
        return cls.from_yaml(text)
