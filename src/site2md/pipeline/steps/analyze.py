"""Pipeline step that computes text statistics and builds the result."""

from typing import Optional

from ...analysis import analyze
from ...models.events import EventType, FetchEvent
from ...models.results import FetchResult
from ..base import EventEmitter, PageContext

# Characters of plain text kept on FetchResult.raw_content
RAW_CONTENT_LIMIT = 1000


class AnalyzeStep:
    """Pipeline step that analyzes the Markdown and sets ``ctx.result``."""

    name = "analyze"

    async def execute(
        self,
        ctx: PageContext,
        emit: Optional[EventEmitter] = None,
    ) -> PageContext:
        if ctx.is_api_document:
            return ctx

        if ctx.markdown is None or ctx.extracted is None:
            raise ValueError("No Markdown to analyze")

        analysis = analyze(ctx.markdown, with_summary=ctx.options.generate_summary)
        extracted = ctx.extracted

        ctx.analysis = analysis
        ctx.result = FetchResult(
            url=ctx.url,
            title=extracted.title,
            raw_content=extracted.text[:RAW_CONTENT_LIMIT],
            markdown=ctx.markdown,
            word_count=analysis.word_count,
            reading_time_minutes=analysis.reading_time_minutes,
            language=analysis.language,
            summary=analysis.summary,
            extracted_images=extracted.images,
            extracted_links=extracted.links,
            metadata=dict(extracted.metadata),
        )

        if emit:
            emit(
                FetchEvent(
                    type=EventType.PAGE_ANALYZED,
                    url=ctx.url,
                    message=f"{analysis.word_count} words, {analysis.reading_time_minutes} min read",
                )
            )
        return ctx
