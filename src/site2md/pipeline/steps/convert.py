"""Pipeline step for HTML to Markdown conversion."""

import logging
from typing import Optional

from ...conversion.markdown import HtmlToMarkdown
from ...conversion.protocols import MarkdownConverter
from ...models.events import EventType, FetchEvent
from ..base import EventEmitter, PageContext

logger = logging.getLogger(__name__)


class ConvertStep:
    """
    Pipeline step that converts the extracted HTML to Markdown.

    Reads from ctx.extracted, writes to ctx.markdown. Length limits from
    ctx.options are enforced by the converter.

    Example:
        step = ConvertStep()
        ctx = await step.execute(ctx, emit=callback)
        # ctx.markdown now contains the converted content
    """

    name = "convert"

    def __init__(self, converter: Optional[MarkdownConverter] = None):
        """
        Initialize the convert step.

        Args:
            converter: Markdown converter (uses default if None)
        """
        self._converter = converter or HtmlToMarkdown()

    async def execute(
        self,
        ctx: PageContext,
        emit: Optional[EventEmitter] = None,
    ) -> PageContext:
        """
        Convert extracted HTML to Markdown.

        Raises:
            ValueError: If no content was extracted
            ContentLengthError: If the Markdown is below the minimum length
        """
        if ctx.is_api_document:
            return ctx

        if ctx.extracted is None:
            raise ValueError("No extracted content to convert")

        markdown = self._converter.convert(ctx.extracted.html, ctx.final_url or ctx.url, ctx.options)
        ctx.markdown = markdown

        if emit:
            emit(
                FetchEvent(
                    type=EventType.PAGE_CONVERTED,
                    url=ctx.url,
                    message=f"Converted to {len(markdown)} characters of Markdown",
                )
            )

        logger.debug(f"Converted {ctx.url} to {len(markdown)} characters of Markdown")
        return ctx
