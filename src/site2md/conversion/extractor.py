"""Main content extraction from HTML pages."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment, Tag

from ..models.results import ExtractedContent, FetchOptions, Link

logger = logging.getLogger(__name__)

# Tried in order; the first with more than MIN_CONTENT_LENGTH characters wins
CONTENT_SELECTORS = [
    "main",
    '[role="main"]',
    ".main",
    ".content",
    ".post-content",
    ".article-content",
    ".entry-content",
    ".post-body",
    ".article-body",
    "article",
    ".article",
    ".post",
    ".blog-post",
]

TITLE_SELECTORS = [
    "h1",
    ".title",
    ".post-title",
    ".article-title",
    ".entry-title",
    'meta[property="og:title"]',
    "title",
]

NAVIGATION_SELECTORS = ["nav", '[role="navigation"]', ".nav", ".navbar", ".navigation", ".menu"]
FOOTER_SELECTORS = ["footer", ".footer", ".site-footer", '[role="contentinfo"]']
SIDEBAR_SELECTORS = ["aside", ".sidebar", ".side-bar", '[role="complementary"]']
HIDDEN_SELECTORS = ["[hidden]", ".hidden"]
AD_SELECTORS = [".google-ad", ".adsystem", ".adsbygoogle"]

# Matched anywhere inside a class or id value
AD_SUBSTRINGS = ("advertisement", "sponsor", "banner", "popup", "modal", "overlay", "promo", "newsletter")
# Matched only as a whole token ("ad-slot", "top_ads"), never inside words like "header"
AD_TOKENS = frozenset({"ad", "ads"})
AD_IFRAME_SOURCES = ("ads", "doubleclick")

STRIP_TAGS = ["script", "style", "noscript"]
MEDIA_TAGS = frozenset({"img", "video", "audio", "iframe", "embed", "object", "picture", "svg"})
# Never pruned for being empty
KEEP_EMPTY_TAGS = MEDIA_TAGS | {"br", "hr", "source", "track", "wbr", "input", "td", "th"}
NOISE_TAGS = ["script", "style", "nav", "aside", "footer"]
PROTECTED_TAGS = frozenset({"html", "head", "body"})

MIN_CONTENT_LENGTH = 100
STANDARD_META_NAMES = ["description", "keywords", "author", "publisher"]


@dataclass(frozen=True)
class NodeProfile:
    """
    Measurements of one candidate element used to score content density.

    Attributes:
        tag: Element name
        text_length: Length of the element's stripped text
        paragraph_count: Number of descendant <p> elements
        anchor_text_length: Length of the text inside descendant links
        noise_count: Descendant script/style/nav/aside/footer elements
    """

    tag: str
    text_length: int
    paragraph_count: int
    anchor_text_length: int
    noise_count: int

    @classmethod
    def from_element(cls, element: Tag) -> NodeProfile:
        anchor_text = "".join(a.get_text() for a in element.find_all("a")).strip()
        return cls(
            tag=element.name,
            text_length=len(element.get_text().strip()),
            paragraph_count=len(element.find_all("p")),
            anchor_text_length=len(anchor_text),
            noise_count=len(element.find_all(NOISE_TAGS)),
        )

    @property
    def link_density(self) -> float:
        if self.text_length == 0:
            return 0.0
        return self.anchor_text_length / self.text_length

    def score(self) -> float:
        """Higher for long, paragraph-rich text with few links and no page chrome."""
        return (
            self.text_length * 0.3
            + self.paragraph_count * 10
            - self.link_density * self.text_length * 0.2
            - self.noise_count * 50
        )


def _is_ad_value(value: str) -> bool:
    value = value.lower()
    if any(pattern in value for pattern in AD_SUBSTRINGS):
        return True
    return any(token in AD_TOKENS for token in re.split(r"[\s_\-]+", value))


def _is_ad_element(tag: Tag) -> bool:
    if tag.name in PROTECTED_TAGS:
        return False
    if tag.name == "iframe":
        src = str(tag.get("src", "")).lower()
        if any(marker in src for marker in AD_IFRAME_SOURCES):
            return True
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    values = list(classes)
    element_id = tag.get("id")
    if element_id:
        values.append(str(element_id))
    return any(_is_ad_value(value) for value in values)


def _is_hidden_by_style(tag: Tag) -> bool:
    style = str(tag.get("style", "")).replace(" ", "").lower()
    return "display:none" in style


class MainContentExtractor:
    """
    Extracts the readable part of an HTML document.

    Removes page chrome (ads, navigation, footers, sidebars, hidden and
    empty elements), then selects the main content region with a list of
    well-known selectors, falling back to a text-density score over every
    div, article and section.

    Example:
        extractor = MainContentExtractor()
        content = extractor.extract(html_bytes, "https://example.com/page")
        print(content.title, len(content.html))
    """

    def __init__(
        self,
        content_selectors: Optional[list[str]] = None,
        min_content_length: int = MIN_CONTENT_LENGTH,
    ):
        """
        Initialize the content extractor.

        Args:
            content_selectors: CSS selectors for main content (overrides defaults)
            min_content_length: Text length a selector match must exceed
        """
        self._content_selectors = content_selectors or CONTENT_SELECTORS
        self._min_content_length = min_content_length

    def _detect_encoding(self, html: bytes) -> str:
        """Detect character encoding from a meta charset declaration."""
        head = html[:2048].decode("latin-1", errors="ignore")
        charset_match = re.search(r'charset=["\']?([^"\'\s>/;]+)', head, re.IGNORECASE)
        if charset_match:
            return charset_match.group(1).strip()
        return "utf-8"

    def _parse_html(self, html: Union[bytes, str]) -> BeautifulSoup:
        if isinstance(html, bytes):
            encoding = self._detect_encoding(html)
            try:
                html = html.decode(encoding, errors="replace")
            except LookupError:
                html = html.decode("utf-8", errors="replace")
        return BeautifulSoup(html, "html.parser")

    def _decompose_all(self, elements: list[Tag]) -> int:
        removed = 0
        for element in elements:
            # Skip elements already destroyed along with an ancestor
            if element.decomposed:
                continue
            element.decompose()
            removed += 1
        return removed

    def _remove_selectors(self, soup: BeautifulSoup, selectors: list[str]) -> int:
        return self._decompose_all(soup.select(", ".join(selectors)))

    def _remove_empty(self, soup: BeautifulSoup) -> None:
        body = soup.find("body")
        root = body if isinstance(body, Tag) else soup
        for element in reversed(root.find_all(True)):
            if element.decomposed or element.name in KEEP_EMPTY_TAGS:
                continue
            if element.get_text(strip=True):
                continue
            if element.find(list(MEDIA_TAGS)):
                continue
            element.decompose()

    def clean(self, soup: BeautifulSoup, options: FetchOptions) -> None:
        """Strip scripts, comments, page chrome and empty elements in place."""
        for tag in soup.find_all(STRIP_TAGS):
            tag.decompose()
        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

        if options.remove_ads:
            removed = self._decompose_all(soup.find_all(_is_ad_element))
            removed += self._remove_selectors(soup, AD_SELECTORS)
            logger.debug(f"Removed {removed} ad element(s)")
        if options.remove_navigation:
            self._remove_selectors(soup, NAVIGATION_SELECTORS)
        if options.remove_footer:
            self._remove_selectors(soup, FOOTER_SELECTORS)
        if options.remove_sidebar:
            self._remove_selectors(soup, SIDEBAR_SELECTORS)

        self._decompose_all(soup.find_all(_is_hidden_by_style))
        self._remove_selectors(soup, HIDDEN_SELECTORS)
        self._remove_empty(soup)

    def _resolve_links(self, soup: BeautifulSoup, base_url: str) -> None:
        """Convert relative URLs to absolute URLs."""
        for tag in soup.find_all("a", href=True):
            href = tag["href"]
            if href.startswith("#"):
                continue
            if not href.startswith(("http://", "https://", "//", "mailto:", "tel:", "javascript:")):
                tag["href"] = urljoin(base_url, href)

        for tag in soup.find_all(src=True):
            src = tag["src"]
            if not src.startswith(("http://", "https://", "//", "data:")):
                tag["src"] = urljoin(base_url, src)

    def extract_title(self, soup: BeautifulSoup) -> str:
        """Return the first non-empty title candidate, or ``"Untitled"``."""
        for selector in TITLE_SELECTORS:
            element = soup.select_one(selector)
            if element is None:
                continue
            title = " ".join(element.get_text().split()) or str(element.get("content", "")).strip()
            if title:
                return title
        return "Untitled"

    def _heuristic_content(self, soup: BeautifulSoup) -> Optional[Tag]:
        best: Optional[Tag] = None
        max_score = 0.0
        for element in soup.find_all(["div", "article", "section"]):
            score = NodeProfile.from_element(element).score()
            if score > max_score:
                max_score = score
                best = element
        return best

    def find_main_content(self, soup: BeautifulSoup) -> Optional[Tag]:
        """Select the main content element, or None to fall back to the body."""
        for selector in self._content_selectors:
            element = soup.select_one(selector)
            if element is not None and len(element.get_text().strip()) > self._min_content_length:
                return element
        return self._heuristic_content(soup)

    def extract_images(self, soup: BeautifulSoup, base_url: str) -> tuple[str, ...]:
        return tuple(urljoin(base_url, img["src"]) for img in soup.find_all("img", src=True) if img["src"])

    def extract_links(self, soup: BeautifulSoup, base_url: str) -> tuple[Link, ...]:
        links = []
        for anchor in soup.find_all("a", href=True):
            text = anchor.get_text().strip()
            href = anchor["href"]
            if not text or not href or href.startswith("javascript:"):
                continue
            links.append(Link(text=text, url=urljoin(base_url, href)))
        return tuple(links)

    def extract_metadata(self, soup: BeautifulSoup, url: str) -> dict[str, str]:
        """Collect Open Graph, Twitter Card and standard meta values."""
        metadata = {
            "url": url,
            "extracted_at": datetime.now(timezone.utc).isoformat(),
        }

        for meta in soup.find_all("meta", attrs={"property": re.compile(r"^og:")}):
            content = meta.get("content")
            key = meta["property"][len("og:") :]
            if key and content:
                metadata[key] = content

        for meta in soup.find_all("meta", attrs={"name": re.compile(r"^twitter:")}):
            content = meta.get("content")
            key = meta["name"][len("twitter:") :]
            if key and content:
                metadata[f"twitter_{key}"] = content

        for name in STANDARD_META_NAMES:
            meta = soup.find("meta", attrs={"name": name})
            if meta is not None and meta.get("content"):
                metadata[name] = meta["content"]

        return metadata

    def extract(
        self,
        html: Union[bytes, str],
        url: str,
        options: Optional[FetchOptions] = None,
    ) -> ExtractedContent:
        """
        Extract main content from HTML.

        Args:
            html: Raw HTML (bytes or text)
            url: Source URL for resolving relative links
            options: Removal and preservation switches (defaults to FetchOptions())

        Returns:
            ExtractedContent with title, main-content HTML, images, links and metadata
        """
        options = options or FetchOptions()
        soup = self._parse_html(html)

        self.clean(soup, options)
        self._resolve_links(soup, url)

        title = self.extract_title(soup)
        metadata = self.extract_metadata(soup, url)
        images = self.extract_images(soup, url) if options.preserve_images else ()
        links = self.extract_links(soup, url) if options.preserve_links else ()

        main: Optional[Tag] = None
        if options.extract_main_content:
            main = self.find_main_content(soup)
            if main is None:
                logger.debug(f"No main content region found for {url}, using body")

        if main is None:
            body = soup.find("body")
            main = body if isinstance(body, Tag) else None

        if main is None:
            main_html = str(soup)
            text = soup.get_text(" ", strip=True)
        else:
            main_html = main.decode_contents()
            text = main.get_text(" ", strip=True)

        return ExtractedContent(
            title=title,
            html=main_html,
            images=images,
            links=links,
            metadata=metadata,
            text=text,
        )
