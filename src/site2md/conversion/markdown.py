"""HTML to Markdown conversion and result document rendering."""

from __future__ import annotations

import logging
import re
import textwrap
from collections.abc import Sequence
from typing import TYPE_CHECKING, Optional
from urllib.parse import urljoin

import html2text
from bs4 import BeautifulSoup

from ..errors import ContentLengthError
from ..models.results import FetchOptions, FetchResult, SearchResult

if TYPE_CHECKING:
    from ..models.config import Website

logger = logging.getLogger(__name__)

_CODE_BLOCK_RE = re.compile(r"\[code\]\n?(.*?)\n?\[/code\]", re.DOTALL)
_BULLET_RE = re.compile(r"^[ \t]*[*+-][ \t]+")
_NUMBERED_RE = re.compile(r"^[ \t]*(\d+)\.[ \t]+")
_LINK_RE = re.compile(r"(?<!!)\[([^\]]*)\]\(([^)]*)\)")
_FENCE = "```"


class _ExtendedHTML2Text(html2text.HTML2Text):
    """html2text with Markdown renderings for a few extra inline and list tags."""

    def __init__(self, baseurl: str = "") -> None:
        super().__init__(baseurl=baseurl)
        self._abbr_titles: list[Optional[str]] = []

    def handle_tag(self, tag, attrs, start):
        if tag == "u":
            self.o("<u>" if start else "</u>")
        elif tag in ("del", "s", "strike"):
            self.o("~~")
        elif tag == "mark":
            self.o("==")
        elif tag == "kbd" and not self.pre:
            self.o("`")
        elif tag == "abbr":
            if start:
                self._abbr_titles.append(attrs.get("title"))
            else:
                title = self._abbr_titles.pop() if self._abbr_titles else None
                if title:
                    self.o(f" ({title})")
        elif tag == "dt":
            if start:
                self.pbr()
                self.o("**")
            else:
                self.o("**")
                self.pbr()
        elif tag == "dd":
            if start:
                self.o(": ")
            else:
                self.pbr()
        elif tag == "hr" and start:
            self.p()
            self.o("---")
            self.p()
        else:
            super().handle_tag(tag, attrs, start)


def _fence_code_blocks(markdown: str) -> str:
    def replace(match: re.Match[str]) -> str:
        body = textwrap.dedent(match.group(1)).strip("\n")
        return f"{_FENCE}\n{body}\n{_FENCE}"

    return _CODE_BLOCK_RE.sub(replace, markdown)


def _normalize_link(match: re.Match[str]) -> str:
    text, url = match.group(1), match.group(2)
    if not text.strip():
        return url
    return f"[{text.strip()}]({url})"


class HtmlToMarkdown:
    """
    Converts HTML content to clean Markdown.

    Uses html2text with ATX headings, ``-`` bullets, ``*``/``**``
    emphasis, inline links and no line wrapping, plus renderings for
    ``del``/``s``, ``u``, ``mark``, ``kbd``, ``abbr`` and definition lists.
    Code blocks become fenced blocks.

    Example:
        converter = HtmlToMarkdown()
        markdown = converter.convert(html_string, "https://example.com/page")
    """

    def __init__(self, body_width: int = 0, unicode_snob: bool = True):
        """
        Initialize the Markdown converter.

        Args:
            body_width: Max line width (0 = no wrapping)
            unicode_snob: Use Unicode chars where possible
        """
        self._body_width = body_width
        self._unicode_snob = unicode_snob

    def _build_converter(self, url: str, options: FetchOptions) -> _ExtendedHTML2Text:
        converter = _ExtendedHTML2Text(baseurl=url)
        converter.body_width = self._body_width
        converter.unicode_snob = self._unicode_snob

        # Markdown flavor
        converter.ul_item_mark = "-"
        converter.emphasis_mark = "*"
        converter.strong_mark = "**"
        converter.mark_code = True

        # Links
        converter.inline_links = True
        converter.wrap_links = False
        converter.protect_links = False
        converter.ignore_links = not options.preserve_links

        # Content handling
        converter.ignore_images = not options.preserve_images
        converter.escape_snob = False
        converter.default_image_alt = ""
        converter.single_line_break = False
        return converter

    def _clean_output(self, markdown: str) -> str:
        """Normalize list markers and link text outside fenced code."""
        lines = []
        in_fence = False
        for line in markdown.split("\n"):
            if line.lstrip().startswith(_FENCE):
                in_fence = not in_fence
            elif not in_fence:
                line = _BULLET_RE.sub("- ", line)
                line = _NUMBERED_RE.sub(r"\1. ", line)
                line = _LINK_RE.sub(_normalize_link, line)
            lines.append(line.rstrip())

        markdown = "\n".join(lines)
        markdown = re.sub(r"\n{3,}", "\n\n", markdown)
        return markdown.strip()

    def _fix_relative_links(self, markdown: str, base_url: str) -> str:
        """Ensure all links are absolute."""

        def replace_link(match: re.Match[str]) -> str:
            text = match.group(1)
            url = match.group(2)

            if url.startswith(("#", "http://", "https://", "mailto:", "tel:")):
                result: str = match.group(0)
                return result

            return f"[{text}]({urljoin(base_url, url)})"

        return re.sub(r"\[([^\]]+)\]\(([^)\s]+)\)", replace_link, markdown)

    def to_markdown(self, html: str, url: str, options: Optional[FetchOptions] = None) -> str:
        """
        Convert HTML to Markdown without applying length limits.

        Falls back to the document's plain text if html2text fails.
        """
        options = options or FetchOptions()
        try:
            markdown = self._build_converter(url, options).handle(html)
            markdown = _fence_code_blocks(markdown)
            markdown = self._clean_output(markdown)
            return self._fix_relative_links(markdown, url)

        except Exception as e:
            logger.error(f"Failed to convert HTML to Markdown: {e}")
            soup = BeautifulSoup(html, "html.parser")
            text: str = soup.get_text(separator="\n")
            return re.sub(r"\n{3,}", "\n\n", text).strip()

    def convert(self, html: str, url: str, options: Optional[FetchOptions] = None) -> str:
        """
        Convert HTML to Markdown and enforce the configured length limits.

        Args:
            html: HTML content string
            url: Source URL for resolving relative links
            options: Conversion switches and length limits

        Returns:
            Markdown string, truncated with ``...`` past ``max_text_length``

        Raises:
            ContentLengthError: If the Markdown is shorter than ``min_text_length``
        """
        options = options or FetchOptions()
        markdown = self.to_markdown(html, url, options)

        if options.min_text_length and len(markdown) < options.min_text_length:
            raise ContentLengthError(len(markdown), options.min_text_length)

        if options.max_text_length and len(markdown) > options.max_text_length:
            logger.debug(f"Truncating Markdown for {url} to {options.max_text_length} characters")
            markdown = markdown[: options.max_text_length] + "..."

        return markdown


class ResultDocumentBuilder:
    """
    Renders fetch results as Markdown documents for the caller.

    Example:
        builder = ResultDocumentBuilder()
        print(builder.build(result, site=website))
    """

    def __init__(self, include_metrics: bool = False):
        """
        Args:
            include_metrics: Add reading time, word count, language and summary lines
        """
        self._include_metrics = include_metrics

    def _site_line(self, site: Website) -> str:
        if site.description:
            return f"**Website**: {site.name} - {site.description}"
        return f"**Website**: {site.name}"

    def _metric_lines(self, result: FetchResult) -> list[str]:
        if result.is_openapi:
            return [f"**Summary**: {result.summary}"] if result.summary else []
        lines = [
            f"**Reading time**: {result.reading_time_minutes} min",
            f"**Word count**: {result.word_count}",
            f"**Language**: {result.language}",
        ]
        if result.summary:
            lines.append(f"**Summary**: {result.summary}")
        return lines

    def build(self, result: FetchResult, site: Optional[Website] = None) -> str:
        """Render one result: title, attribution, optional metrics, rule, body."""
        header = [f"**Source**: {site.url if site else result.url}"]
        if site is not None:
            header.append(self._site_line(site))
        if self._include_metrics:
            header.extend(self._metric_lines(result))

        return f"# {result.title}\n\n" + "\n".join(header) + f"\n\n---\n\n{result.markdown}"

    def build_search(self, results: Sequence[SearchResult]) -> str:
        """Render ranked search results as one combined document."""
        sections = [
            f"## {item.result.title}\n\n"
            f"**Source**: {item.site.url}\n"
            f"{self._site_line(item.site)}\n\n"
            f"---\n\n"
            f"{item.result.markdown}\n\n"
            for item in results
        ]
        return (
            "# Relevant Website Search Results\n\n"
            f"Found {len(results)} relevant websites:\n\n" + "\n".join(sections)
        ).rstrip() + "\n"

    def build_site_list(self, sites: Sequence[Website]) -> str:
        """Render the configured sites as a bullet list."""
        lines = []
        for site in sites:
            line = f"- **{site.name}**: {site.url}"
            if site.description:
                line += f" - {site.description}"
            lines.append(line)
        return "# Configured Websites\n\n" + "\n".join(lines) + "\n"
