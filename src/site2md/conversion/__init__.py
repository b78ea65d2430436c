"""Content conversion for site2md (extraction, HTML to Markdown, result documents)."""

from .extractor import MainContentExtractor, NodeProfile
from .markdown import HtmlToMarkdown, ResultDocumentBuilder
from .protocols import ContentExtractor, MarkdownConverter

__all__ = [
    # Protocols
    "ContentExtractor",
    "MarkdownConverter",
    # Implementations
    "MainContentExtractor",
    "NodeProfile",
    "HtmlToMarkdown",
    "ResultDocumentBuilder",
]
