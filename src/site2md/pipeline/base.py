"""Base classes for the fetch pipeline architecture."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional, Protocol, runtime_checkable

from ..models.events import EventType, FetchEvent
from ..models.results import (
    ContentAnalysis,
    ExtractedContent,
    FetchOptions,
    FetchRequest,
    FetchResult,
)

if TYPE_CHECKING:
    from ..models.config import Website
    from ..openapi.processor import OpenApiDocument

# Type alias for event emitter function
EventEmitter = Callable[[FetchEvent], None]


@dataclass
class PageContext:
    """
    Context object passed through pipeline steps.

    Contains all state for processing a single URL, accumulated as it
    moves through the pipeline.

    Attributes:
        url: The URL being fetched
        options: Effective fetch options
        site: Configured site the fetch is made for, if any
        content: Raw response body
        text: Decoded response body
        openapi: Set when the resource is an API description document
        extracted: Main content and page metadata (HTML path)
        markdown: Converted Markdown (HTML path)
        analysis: Text statistics (HTML path)
        result: Final record, set by the last step
        should_skip: If True, remaining steps will be skipped
        error: Exception raised by the failing step
    """

    url: str
    options: FetchOptions = field(default_factory=FetchOptions)
    site: Optional[Website] = None

    # Content (accumulated through pipeline)
    content: Optional[bytes] = None
    text: Optional[str] = None
    openapi: Optional[OpenApiDocument] = None
    extracted: Optional[ExtractedContent] = None
    markdown: Optional[str] = None
    analysis: Optional[ContentAnalysis] = None
    result: Optional[FetchResult] = None

    # Status
    should_skip: bool = False
    error: Optional[BaseException] = None

    # Additional data from fetch
    final_url: Optional[str] = None
    status_code: Optional[int] = None
    content_type: Optional[str] = None
    bytes_downloaded: int = 0

    @classmethod
    def from_request(cls, request: FetchRequest) -> PageContext:
        return cls(url=request.url, options=request.options, site=request.site)

    @property
    def is_api_document(self) -> bool:
        return self.openapi is not None


@runtime_checkable
class FetchStep(Protocol):
    """
    Protocol for pipeline steps.

    Each step receives a PageContext, processes it, and returns
    the (possibly modified) context.

    Error Handling Contract:
    - Steps that do not apply to a context return it unchanged
    - For failures: raise an exception
    - The pipeline will catch exceptions and set ctx.error

    Example implementation:
        class UppercaseStep:
            name = "uppercase"

            async def execute(
                self,
                ctx: PageContext,
                emit: Optional[EventEmitter] = None
            ) -> PageContext:
                if ctx.markdown:
                    ctx.markdown = ctx.markdown.upper()
                return ctx
    """

    name: str

    async def execute(
        self,
        ctx: PageContext,
        emit: Optional[EventEmitter] = None,
    ) -> PageContext:
        """
        Execute this pipeline step.

        Args:
            ctx: The page context with accumulated state
            emit: Optional callback to emit events

        Returns:
            The (possibly modified) page context
        """
        ...


@dataclass
class FetchPipeline:
    """
    Pipeline for processing a single URL through multiple steps.

    Steps are executed in order. If a step raises an exception, the
    exception is captured in ctx.error and processing stops.

    Example:
        pipeline = FetchPipeline(steps=[
            FetchStep(context),
            OpenApiStep(),
            ExtractStep(),
            ConvertStep(),
            AnalyzeStep(),
        ])

        ctx = await pipeline.execute(FetchRequest(url), emit=log_event)
        if ctx.error:
            logger.error(f"Failed: {ctx.error}")
        else:
            print(ctx.result.markdown)
    """

    steps: list[FetchStep]

    async def execute(
        self,
        request: FetchRequest,
        emit: Optional[EventEmitter] = None,
    ) -> PageContext:
        """
        Execute the pipeline for a request.

        Args:
            request: URL, options and site to process
            emit: Optional callback for emitting events

        Returns:
            PageContext with final state (check error for status)
        """
        ctx = PageContext.from_request(request)

        for step in self.steps:
            if ctx.should_skip:
                break

            try:
                ctx = await step.execute(ctx, emit)
            except Exception as e:
                ctx.error = e
                ctx.should_skip = True

                # Emit failure event
                if emit:
                    emit(
                        FetchEvent(
                            type=EventType.FETCH_FAILED,
                            url=request.url,
                            site=request.site.name if request.site else None,
                            error=f"{step.name}: {e}",
                        )
                    )
                break

        return ctx

    def add_step(self, step: FetchStep) -> FetchPipeline:
        """
        Add a step to the pipeline (fluent API).

        Args:
            step: The step to add

        Returns:
            Self for chaining
        """
        self.steps.append(step)
        return self
