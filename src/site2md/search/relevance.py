"""Keyword relevance search across configured sites."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Sequence
from typing import Callable, Optional

from ..models.config import Website
from ..models.events import EventType, FetchEvent
from ..models.results import FetchResult, SearchResult

logger = logging.getLogger(__name__)

# Description match is counted twice, once per weight
DESCRIPTION_WEIGHT = 0.3
DESCRIPTION_EXTRA_WEIGHT = 0.2
URL_WEIGHT = 0.1
CONTENT_WEIGHT = 0.4

SiteFetch = Callable[[Website], Awaitable[FetchResult]]


def score_site(site: Website, query: str) -> float:
    """
    Pre-fetch relevance of ``site`` for ``query`` (case-insensitive).

    Returns:
        Score in [0, 0.6]
    """
    needle = query.lower()
    description = (site.description or "").lower()

    score = 0.0
    if needle in description:
        score += DESCRIPTION_WEIGHT
        score += DESCRIPTION_EXTRA_WEIGHT
    if needle in site.url.lower():
        score += URL_WEIGHT
    return score


def content_score(result: FetchResult, query: str) -> float:
    """Extra relevance when the fetched Markdown mentions ``query``."""
    return CONTENT_WEIGHT if query.lower() in result.markdown.lower() else 0.0


class RelevanceSearch:
    """
    Ranks configured sites for a free-text query.

    Sites with a positive pre-fetch score are fetched concurrently; a site
    whose fetch fails is logged and left out. Results are sorted by
    descending relevance, ties keeping configuration order.

    Example:
        search = RelevanceSearch(fetcher.fetch_website)
        for item in await search.search("hooks", manager.get_websites()):
            print(item.site.name, item.relevance)
    """

    def __init__(self, fetch: SiteFetch, emit: Optional[Callable[[FetchEvent], None]] = None):
        """
        Args:
            fetch: Fetches one site and returns its result
            emit: Optional callback for search events
        """
        self._fetch = fetch
        self._emit = emit

    def _emit_event(self, event: FetchEvent) -> None:
        if self._emit:
            self._emit(event)

    async def _evaluate(self, site: Website, query: str, base_score: float) -> Optional[SearchResult]:
        try:
            result = await self._fetch(site)
        except Exception as e:
            logger.error(f"Failed to fetch website {site.name}: {e}")
            return None

        relevance = base_score + content_score(result, query)
        self._emit_event(
            FetchEvent(type=EventType.SITE_SCORED, url=site.url, site=site.name, relevance=relevance)
        )
        if relevance <= 0:
            return None
        return SearchResult(site=site, relevance=relevance, result=result)

    async def search(self, query: str, websites: Sequence[Website]) -> list[SearchResult]:
        """
        Score, fetch and rank ``websites`` for ``query``.

        Args:
            query: Free-text query
            websites: Candidate sites in configuration order (disabled ones are ignored)

        Returns:
            Ranked results, best first
        """
        self._emit_event(FetchEvent(type=EventType.SEARCH_STARTED, message=query))

        candidates = []
        for site in websites:
            if not site.enabled:
                continue
            score = score_site(site, query)
            if score > 0:
                candidates.append((site, score))
            else:
                logger.debug(f"Skipping {site.name}: no match for {query!r}")

        logger.info(f"Searching {len(candidates)} relevant website(s) for {query!r}")
        evaluated = await asyncio.gather(*(self._evaluate(site, query, score) for site, score in candidates))

        results = [item for item in evaluated if item is not None]
        results.sort(key=lambda item: item.relevance, reverse=True)

        self._emit_event(
            FetchEvent(
                type=EventType.SEARCH_COMPLETED,
                message=f"Found {len(results)} relevant websites",
            )
        )
        return results
