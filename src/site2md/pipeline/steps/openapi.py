"""Pipeline step for API description documents."""

import logging
from typing import Optional

from ...analysis import count_words, reading_time
from ...models.events import EventType, FetchEvent
from ...models.results import FetchResult
from ...openapi.detection import looks_like_api_document
from ...openapi.processor import OpenApiProcessor
from ..base import EventEmitter, PageContext

logger = logging.getLogger(__name__)


class OpenApiStep:
    """
    Pipeline step that recognizes and processes OpenAPI/Swagger documents.

    When the fetched resource is JSON, YAML or an API description, the
    document is parsed, validated and formatted, and ``ctx.result`` is set.
    The HTML steps leave such contexts alone.

    Example:
        step = OpenApiStep()
        ctx = await step.execute(ctx)
        if ctx.is_api_document:
            print(ctx.openapi.summary)
    """

    name = "openapi"

    def __init__(self, processor: Optional[OpenApiProcessor] = None):
        """
        Args:
            processor: API document processor (uses default if None)
        """
        self._processor = processor or OpenApiProcessor()

    async def execute(
        self,
        ctx: PageContext,
        emit: Optional[EventEmitter] = None,
    ) -> PageContext:
        text = ctx.text or ""
        url = ctx.final_url or ctx.url
        if not looks_like_api_document(url, ctx.content_type, text):
            return ctx

        logger.info(f"Detected API description document: {url}")
        document = self._processor.process(text)
        words = count_words(document.formatted)

        ctx.openapi = document
        ctx.markdown = document.formatted
        ctx.result = FetchResult(
            url=ctx.url,
            title=document.title,
            raw_content=document.summary,
            markdown=document.formatted,
            word_count=words,
            reading_time_minutes=reading_time(words),
            summary=document.summary,
            openapi=document,
        )

        if emit:
            emit(
                FetchEvent(
                    type=EventType.OPENAPI_DETECTED,
                    url=ctx.url,
                    content_type=ctx.content_type,
                    message=document.summary,
                )
            )
        return ctx
