"""Tests for the fetch pipeline and its steps."""

import json
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from site2md.core.context import FetchContext
from site2md.http.protocols import HttpResponse
from site2md.models.events import EventType, FetchEvent, FetchStats
from site2md.models.results import ExtractedContent, FetchOptions, FetchRequest
from site2md.pipeline import FetchPipeline, PageContext
from site2md.pipeline.steps import AnalyzeStep, ConvertStep, ExtractStep, FetchStep, OpenApiStep

ARTICLE_HTML = """
<html><head><title>Event Loops</title></head>
<body>
  <nav><a href="/">Home</a></nav>
  <main>
    <h1>Event Loops</h1>
    <p>An event loop runs callbacks and coroutines one at a time on a single thread.</p>
    <p>Long running work should be moved to executors so the loop stays responsive.</p>
  </main>
</body></html>
"""

OPENAPI_JSON = json.dumps(
    {
        "openapi": "3.0.0",
        "info": {"title": "Todo API", "version": "2.0"},
        "paths": {"/todos": {"get": {"summary": "List todos", "responses": {"200": {"description": "OK"}}}}},
    }
)


class RecordingStep:
    """Step that records its calls and optionally fails."""

    def __init__(self, name: str, error: Optional[Exception] = None):
        self.name = name
        self.error = error
        self.calls = 0

    async def execute(self, ctx, emit=None):
        self.calls += 1
        if self.error:
            raise self.error
        return ctx


def html_context(url: str = "https://example.com/loops", options: Optional[FetchOptions] = None) -> PageContext:
    ctx = PageContext(url=url, options=options or FetchOptions())
    ctx.text = ARTICLE_HTML
    ctx.content = ARTICLE_HTML.encode()
    ctx.content_type = "text/html; charset=utf-8"
    ctx.final_url = url
    return ctx


class TestFetchPipeline:
    """Tests for FetchPipeline."""

    @pytest.mark.asyncio
    async def test_runs_steps_in_order(self):
        first, second = RecordingStep("first"), RecordingStep("second")
        pipeline = FetchPipeline(steps=[first]).add_step(second)

        ctx = await pipeline.execute(FetchRequest(url="https://example.com"))

        assert ctx.error is None
        assert first.calls == 1
        assert second.calls == 1

    @pytest.mark.asyncio
    async def test_failure_stops_pipeline_and_emits_once(self):
        """Test that a failing step is recorded and later steps are skipped."""
        error = ValueError("broken")
        failing, later = RecordingStep("extract", error), RecordingStep("convert")
        emit = MagicMock()

        ctx = await FetchPipeline(steps=[failing, later]).execute(FetchRequest(url="https://example.com"), emit=emit)

        assert ctx.error is error
        assert ctx.should_skip
        assert later.calls == 0
        emit.assert_called_once()
        event = emit.call_args.args[0]
        assert event.type == EventType.FETCH_FAILED
        assert event.error == "extract: broken"
        assert event.is_error

    @pytest.mark.asyncio
    async def test_full_step_chain(self):
        """Test the standard fetch, openapi, extract, convert, analyze chain."""
        client = MagicMock()
        client.fetch = AsyncMock(
            return_value=HttpResponse(
                status_code=200,
                content=ARTICLE_HTML.encode(),
                content_type="text/html; charset=utf-8",
                url="https://example.com/loops",
                text=ARTICLE_HTML,
            )
        )
        context = FetchContext(http_client=client)
        pipeline = FetchPipeline(
            steps=[
                FetchStep(context),
                OpenApiStep(),
                ExtractStep(),
                ConvertStep(),
                AnalyzeStep(),
            ]
        )

        ctx = await pipeline.execute(FetchRequest(url="https://example.com/loops"))

        assert [step.name for step in pipeline.steps] == ["fetch", "openapi", "extract", "convert", "analyze"]
        assert ctx.error is None
        assert ctx.result.title == "Event Loops"


class TestHtmlSteps:
    """Tests for the extract, convert and analyze steps."""

    @pytest.mark.asyncio
    async def test_html_path_builds_result(self):
        ctx = html_context()
        emit = MagicMock()

        for step in (OpenApiStep(), ExtractStep(), ConvertStep(), AnalyzeStep()):
            ctx = await step.execute(ctx, emit)

        result = ctx.result
        assert result is not None
        assert not result.is_openapi
        assert result.title == "Event Loops"
        assert result.markdown.startswith("# Event Loops")
        assert "Home" not in result.markdown
        assert result.raw_content.startswith("Event Loops An event loop")
        assert result.word_count > 20
        assert result.reading_time_minutes == 1
        assert result.language == "en"
        assert result.summary

        types = [call.args[0].type for call in emit.call_args_list]
        assert types == [EventType.CONTENT_EXTRACTED, EventType.PAGE_CONVERTED, EventType.PAGE_ANALYZED]

    @pytest.mark.asyncio
    async def test_summary_can_be_disabled(self):
        ctx = html_context(options=FetchOptions(generate_summary=False))
        for step in (ExtractStep(), ConvertStep(), AnalyzeStep()):
            ctx = await step.execute(ctx)

        assert ctx.result.summary == ""

    @pytest.mark.asyncio
    async def test_raw_content_is_capped(self):
        ctx = html_context()
        ctx = await ExtractStep().execute(ctx)
        ctx.extracted = ExtractedContent(title="Long", html=ctx.extracted.html, text="x" * 5000)
        ctx = await ConvertStep().execute(ctx)
        ctx = await AnalyzeStep().execute(ctx)

        assert len(ctx.result.raw_content) == 1000

    @pytest.mark.asyncio
    async def test_extract_requires_content(self):
        with pytest.raises(ValueError):
            await ExtractStep().execute(PageContext(url="https://example.com"))

    @pytest.mark.asyncio
    async def test_convert_requires_extraction(self):
        with pytest.raises(ValueError):
            await ConvertStep().execute(PageContext(url="https://example.com"))


class TestOpenApiStep:
    """Tests for OpenApiStep."""

    @pytest.mark.asyncio
    async def test_api_document_short_circuits_html_steps(self):
        """Test that an API document produces a result the HTML steps leave alone."""
        ctx = PageContext(url="https://api.example.com/openapi.json")
        ctx.text = OPENAPI_JSON
        ctx.content_type = "application/json"
        emit = MagicMock()

        for step in (OpenApiStep(), ExtractStep(), ConvertStep(), AnalyzeStep()):
            ctx = await step.execute(ctx, emit)

        result = ctx.result
        assert result.is_openapi
        assert result.title == "Todo API"
        assert result.raw_content == "Todo API (2.0) - OpenAPI 3.0.0 specification with 1 endpoints"
        assert result.summary == result.raw_content
        assert "Total of **1** endpoints:" in result.markdown
        assert result.word_count > 0
        assert ctx.extracted is None
        assert [call.args[0].type for call in emit.call_args_list] == [EventType.OPENAPI_DETECTED]

    @pytest.mark.asyncio
    async def test_html_is_not_an_api_document(self):
        ctx = await OpenApiStep().execute(html_context())
        assert not ctx.is_api_document
        assert ctx.result is None


class TestFetchStats:
    """Tests for FetchStats."""

    def test_record_counts_events(self):
        stats = FetchStats()
        for event in (
            FetchEvent(type=EventType.FETCH_STARTED),
            FetchEvent(type=EventType.FETCH_COMPLETED, bytes_downloaded=120),
            FetchEvent(type=EventType.PAGE_ANALYZED),
            FetchEvent(type=EventType.FETCH_COMPLETED, bytes_downloaded=80),
            FetchEvent(type=EventType.OPENAPI_DETECTED),
            FetchEvent(type=EventType.FETCH_FAILED, error="fetch: HTTP 500"),
        ):
            stats.record(event)

        assert stats.pages_fetched == 2
        assert stats.api_documents == 1
        assert stats.pages_failed == 1
        assert stats.bytes_downloaded == 200
        assert stats.to_dict()["success_rate"] == 66.7

    def test_empty_success_rate(self):
        assert FetchStats().success_rate == 0.0
