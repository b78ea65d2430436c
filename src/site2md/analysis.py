"""Text statistics for converted content: word count, reading time, summary, language."""

from __future__ import annotations

import math
import re
from typing import Optional

from .models.results import ContentAnalysis

# CJK Unified Ideographs
_CJK_RE = re.compile(r"[\u4e00-\u9fff]")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?。！？]")

WORDS_PER_MINUTE = 225
SUMMARY_MAX_LENGTH = 200
MIN_SENTENCE_LENGTH = 10
CJK_LANGUAGE_RATIO = 0.3


def count_words(text: str) -> int:
    """Count CJK ideographs individually plus whitespace-separated tokens of the rest."""
    cjk_chars = len(_CJK_RE.findall(text))
    other_words = len(_CJK_RE.sub("", text).split())
    return cjk_chars + other_words


def reading_time(word_count: int) -> int:
    """Minutes to read ``word_count`` words at 225 words per minute, rounded up."""
    if word_count <= 0:
        return 0
    return math.ceil(word_count / WORDS_PER_MINUTE)


def generate_summary(text: str, max_length: int = SUMMARY_MAX_LENGTH) -> str:
    """
    Build a short extractive summary from the leading sentences.

    Sentences shorter than 11 characters are ignored. Sentences are added
    while the summary stays within ``max_length``; each is terminated with
    ``。`` when it contains CJK text and ``.`` otherwise. If even the first
    sentence is too long it is truncated and ``...`` appended.

    Args:
        text: Source text (usually Markdown)
        max_length: Maximum summary length

    Returns:
        Summary text, empty if no sentence qualifies
    """
    sentences = [
        part.strip() for part in _SENTENCE_SPLIT_RE.split(text) if len(part.strip()) > MIN_SENTENCE_LENGTH
    ]
    if not sentences:
        return ""

    summary = ""
    for sentence in sentences:
        is_cjk = bool(_CJK_RE.search(sentence))
        piece = sentence + ("。" if is_cjk else ".")
        separator = " " if summary and not is_cjk else ""
        if len(summary) + len(separator) + len(piece) > max_length:
            break
        summary += separator + piece

    return summary or sentences[0][:max_length] + "..."


def detect_language(text: str) -> str:
    """Return ``"zh"`` when CJK ideographs exceed 30% of non-whitespace characters, else ``"en"``."""
    total = len(re.sub(r"\s", "", text))
    if total == 0:
        return "en"
    if len(_CJK_RE.findall(text)) / total > CJK_LANGUAGE_RATIO:
        return "zh"
    return "en"


def analyze(
    text: str,
    with_summary: bool = True,
    language: Optional[str] = None,
) -> ContentAnalysis:
    """
    Compute all text statistics for ``text``.

    Args:
        text: Converted Markdown
        with_summary: Whether to generate a summary
        language: Known language code (skips detection)
    """
    words = count_words(text)
    return ContentAnalysis(
        word_count=words,
        reading_time_minutes=reading_time(words),
        language=language or detect_language(text),
        summary=generate_summary(text) if with_summary else "",
    )
