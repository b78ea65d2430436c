"""Relevance search over configured sites."""

from .relevance import RelevanceSearch, content_score, score_site

__all__ = ["RelevanceSearch", "content_score", "score_site"]
