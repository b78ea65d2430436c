"""Request and result records passed between pipeline stages."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, NamedTuple, Optional

if TYPE_CHECKING:
    from ..openapi.processor import OpenApiDocument
    from .config import Website


class Link(NamedTuple):
    """A hyperlink found in a page (absolute URL)."""

    text: str
    url: str


@dataclass(frozen=True)
class FetchOptions:
    """
    Effective per-request settings after merging global and site settings.

    Timeouts are in seconds.
    """

    timeout: float = 30.0
    retries: int = 3
    user_agent: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    use_stealth_browser: bool = False
    extract_main_content: bool = True
    remove_ads: bool = True
    remove_navigation: bool = True
    remove_footer: bool = True
    remove_sidebar: bool = True
    preserve_images: bool = False
    preserve_links: bool = True
    min_text_length: int = 100
    max_text_length: Optional[int] = None
    generate_summary: bool = True

    def request_headers(self) -> dict[str, str]:
        """Headers to send with the request (User-Agent included when set)."""
        headers = dict(self.headers)
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        return headers


@dataclass(frozen=True)
class FetchRequest:
    """One fetch of one URL, optionally on behalf of a configured site."""

    url: str
    options: FetchOptions = field(default_factory=FetchOptions)
    site: Optional[Website] = None


@dataclass(frozen=True)
class ExtractedContent:
    """
    Output of the content extractor.

    Attributes:
        title: Best title found (``"Untitled"`` if none)
        html: HTML of the selected main-content region
        images: Absolute image URLs (empty unless images are preserved)
        links: Links with visible text (empty unless links are preserved)
        metadata: Open Graph, Twitter Card and standard meta values
        text: Plain text of the main-content region
    """

    title: str
    html: str
    images: tuple[str, ...] = ()
    links: tuple[Link, ...] = ()
    metadata: Mapping[str, str] = field(default_factory=dict)
    text: str = ""


@dataclass(frozen=True)
class ContentAnalysis:
    """Text statistics computed from converted Markdown."""

    word_count: int
    reading_time_minutes: int
    language: str
    summary: str = ""


@dataclass(frozen=True)
class FetchResult:
    """
    Final record of one successful fetch.

    For API description documents ``openapi`` is set, ``markdown`` holds the
    formatted summary block and ``raw_content`` the one-line summary.
    """

    url: str
    title: str
    raw_content: str
    markdown: str
    word_count: int = 0
    reading_time_minutes: int = 0
    language: str = "en"
    summary: str = ""
    extracted_images: tuple[str, ...] = ()
    extracted_links: tuple[Link, ...] = ()
    metadata: Mapping[str, str] = field(default_factory=dict)
    openapi: Optional[OpenApiDocument] = None

    @property
    def is_openapi(self) -> bool:
        return self.openapi is not None


@dataclass(frozen=True)
class SearchResult:
    """A site that matched a relevance query, with its fetched content."""

    site: Website
    relevance: float
    result: FetchResult
