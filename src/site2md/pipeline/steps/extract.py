"""Pipeline step for main-content extraction."""

import logging
from typing import Optional

from ...conversion.extractor import MainContentExtractor
from ...conversion.protocols import ContentExtractor
from ...models.events import EventType, FetchEvent
from ..base import EventEmitter, PageContext

logger = logging.getLogger(__name__)


class ExtractStep:
    """Pipeline step that cleans HTML and selects the main content region."""

    name = "extract"

    def __init__(self, extractor: Optional[ContentExtractor] = None):
        self._extractor = extractor or MainContentExtractor()

    async def execute(
        self,
        ctx: PageContext,
        emit: Optional[EventEmitter] = None,
    ) -> PageContext:
        if ctx.is_api_document:
            return ctx

        html = ctx.text if ctx.text is not None else ctx.content
        if html is None:
            raise ValueError("No HTML content to extract")

        extracted = self._extractor.extract(html, ctx.final_url or ctx.url, ctx.options)
        ctx.extracted = extracted
        logger.debug(f"Extracted '{extracted.title}' from {ctx.url}: {len(extracted.html)} characters of HTML")

        if emit:
            emit(
                FetchEvent(
                    type=EventType.CONTENT_EXTRACTED,
                    url=ctx.url,
                    message=f"Extracted {extracted.title}",
                )
            )
        return ctx
