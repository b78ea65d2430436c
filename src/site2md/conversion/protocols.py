"""Protocol definitions for content conversion."""

from typing import Optional, Protocol, Union

from ..models.results import ExtractedContent, FetchOptions


class ContentExtractor(Protocol):
    """
    Protocol for extracting main content from HTML.

    Implementations should extract the main article content while removing
    navigation, footers, sidebars, ads and other page chrome.
    """

    def extract(
        self,
        html: Union[bytes, str],
        url: str,
        options: Optional[FetchOptions] = None,
    ) -> ExtractedContent:
        """
        Extract main content from HTML.

        Args:
            html: Raw HTML
            url: Source URL (for relative link resolution)
            options: Removal and preservation switches

        Returns:
            ExtractedContent with the main-content HTML and page metadata
        """
        ...


class MarkdownConverter(Protocol):
    """
    Protocol for converting HTML to Markdown.

    Implementations convert cleaned HTML to Markdown format.
    """

    def convert(self, html: str, url: str, options: Optional[FetchOptions] = None) -> str:
        """
        Convert HTML to Markdown.

        Args:
            html: HTML content string
            url: Source URL (for resolving relative links)
            options: Conversion switches and length limits

        Returns:
            Markdown string
        """
        ...
