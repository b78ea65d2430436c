"""FetchStep - network fetching pipeline step."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from ...http.protocols import HttpResponse
from ...http.retry import RetryOptions, retry
from ...models.events import EventType, FetchEvent
from ..base import EventEmitter, PageContext

if TYPE_CHECKING:
    from ...core.context import FetchContext

logger = logging.getLogger(__name__)


class FetchStep:
    """
    Pipeline step that fetches the resource over plain HTTP or through a
    stealth browser session.

    The request first takes a token from the applicable rate limiter, then
    a concurrency slot, and runs with retries inside that slot. The plain
    path is retried here; the browser path retries its own navigation.

    Populates:
        ctx.content: Raw response body
        ctx.text: Decoded response body
        ctx.final_url: URL after redirects
        ctx.status_code: HTTP status code
        ctx.content_type: Content-Type header value
        ctx.bytes_downloaded: Size of downloaded content

    Raises:
        NetworkError: When a single attempt is not retried
        RetryExhaustedError: When every attempt failed
        BrowserInitError: When the browser session cannot start

    Example:
        step = FetchStep(context)
        ctx = await step.execute(PageContext(url="https://example.com"))
        print(ctx.text)
    """

    name = "fetch"

    def __init__(self, context: FetchContext) -> None:
        """
        Initialize the fetch step.

        Args:
            context: Session state holding the client and limiters
        """
        self._context = context

    async def _fetch_plain(self, ctx: PageContext, emit: Optional[EventEmitter]) -> HttpResponse:
        options = ctx.options

        def on_retry(error: BaseException, attempt: int) -> None:
            logger.warning(f"Fetch of {ctx.url} failed ({error}), retry {attempt}/{options.retries}")
            if emit:
                emit(
                    FetchEvent(
                        type=EventType.FETCH_RETRYING,
                        url=ctx.url,
                        error=str(error),
                        retry_attempt=attempt,
                    )
                )

        return await retry(
            lambda: self._context.http_client.fetch(
                ctx.url,
                timeout=options.timeout,
                headers=options.request_headers(),
            ),
            RetryOptions(retries=options.retries, on_retry=on_retry),
        )

    async def _fetch_stealth(self, ctx: PageContext) -> HttpResponse:
        async with self._context.create_browser(ctx.options) as browser:
            return await browser.fetch(ctx.url, headers=ctx.options.headers)

    async def execute(
        self,
        ctx: PageContext,
        emit: Optional[EventEmitter] = None,
    ) -> PageContext:
        """
        Execute the fetch step.

        Args:
            ctx: Page context with URL to fetch
            emit: Optional callback to emit events

        Returns:
            PageContext with content, text and content_type populated
        """
        url = ctx.url
        stealth = ctx.options.use_stealth_browser
        site = ctx.site.name if ctx.site else None

        if emit:
            emit(
                FetchEvent(
                    type=EventType.FETCH_STARTED,
                    url=url,
                    site=site,
                    message=f"Fetching {url}" + (" with stealth browser" if stealth else ""),
                )
            )

        logger.info(f"Fetching {url}")
        try:
            if stealth:
                response = await self._context.throttle(lambda: self._fetch_stealth(ctx), site=ctx.site)
            else:
                response = await self._context.throttle(lambda: self._fetch_plain(ctx, emit), site=ctx.site)
        except Exception as e:
            logger.error(f"Fetch error for {url}: {e}")
            # Re-raise to let pipeline handle it
            raise

        ctx.content = response.content
        ctx.text = response.text
        ctx.final_url = response.url or url
        ctx.status_code = response.status_code
        ctx.content_type = response.content_type
        ctx.bytes_downloaded = len(response.content)

        logger.debug(f"Fetched {url}: {len(response.content)} bytes")

        if emit:
            emit(
                FetchEvent(
                    type=EventType.FETCH_COMPLETED,
                    url=url,
                    site=site,
                    status_code=response.status_code,
                    bytes_downloaded=len(response.content),
                    content_type=response.content_type,
                    message=f"Fetched {len(response.content)} bytes",
                )
            )

        return ctx
