"""Tests for relevance search across configured sites."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from site2md.models.config import Website
from site2md.models.events import EventType
from site2md.models.results import FetchResult
from site2md.search.relevance import RelevanceSearch, content_score, score_site

DOCS_SITE = Website(name="framework", url="https://framework.dev", description="Modern docs framework")
URL_SITE = Website(name="example", url="https://docs.example.com")
OTHER_SITE = Website(name="blog", url="https://blog.dev", description="Personal blog")


def make_result(url: str, markdown: str) -> FetchResult:
    return FetchResult(url=url, title="Page", raw_content=markdown, markdown=markdown)


class TestScoring:
    """Tests for score_site and content_score."""

    def test_description_counts_both_weights(self):
        assert score_site(DOCS_SITE, "DOCS") == pytest.approx(0.5)

    def test_url_match(self):
        assert score_site(URL_SITE, "docs") == pytest.approx(0.1)

    def test_no_match(self):
        assert score_site(OTHER_SITE, "docs") == 0.0

    def test_content_score(self):
        assert content_score(make_result("u", "Read the Docs"), "docs") == pytest.approx(0.4)
        assert content_score(make_result("u", "Nothing here"), "docs") == 0.0


class TestRelevanceSearch:
    """Tests for RelevanceSearch.search."""

    @pytest.mark.asyncio
    async def test_ranks_and_skips_unmatched_sites(self):
        """Test scoring, skipped sites and descending order."""

        async def fetch(site):
            if site is DOCS_SITE:
                return make_result(site.url, "Welcome to the docs")
            return make_result(site.url, "Welcome")

        fetch_mock = AsyncMock(side_effect=fetch)
        results = await RelevanceSearch(fetch_mock).search("docs", [URL_SITE, OTHER_SITE, DOCS_SITE])

        assert [r.site.name for r in results] == ["framework", "example"]
        assert results[0].relevance == pytest.approx(0.9)
        assert results[1].relevance == pytest.approx(0.1)
        assert fetch_mock.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_site_is_left_out(self):
        """Test that a fetch failure does not fail the search."""

        async def fetch(site):
            if site is URL_SITE:
                raise ConnectionError("refused")
            return make_result(site.url, "docs")

        results = await RelevanceSearch(fetch).search("docs", [DOCS_SITE, URL_SITE])

        assert [r.site.name for r in results] == ["framework"]

    @pytest.mark.asyncio
    async def test_disabled_sites_ignored(self):
        disabled = Website(name="off", url="https://docs.off.dev", description="docs", enabled=False)
        fetch = AsyncMock()

        assert await RelevanceSearch(fetch).search("docs", [disabled]) == []
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ties_keep_configuration_order(self):
        first = Website(name="first", url="https://docs.one.dev")
        second = Website(name="second", url="https://docs.two.dev")
        fetch = AsyncMock(side_effect=lambda site: make_result(site.url, "none"))

        results = await RelevanceSearch(fetch).search("docs", [first, second])

        assert [r.site.name for r in results] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_emits_events(self):
        """Test search lifecycle events."""
        emit = MagicMock()
        fetch = AsyncMock(return_value=make_result(DOCS_SITE.url, "docs"))

        await RelevanceSearch(fetch, emit=emit).search("docs", [DOCS_SITE])

        types = [call.args[0].type for call in emit.call_args_list]
        assert types == [EventType.SEARCH_STARTED, EventType.SITE_SCORED, EventType.SEARCH_COMPLETED]
        scored = emit.call_args_list[1].args[0]
        assert scored.site == "framework"
        assert scored.relevance == pytest.approx(0.9)
