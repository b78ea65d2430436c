"""Protocol definitions for the fetch layer."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Optional, Protocol


@dataclass(frozen=True)
class HttpResponse:
    """
    Immutable response returned by either fetch path.

    Attributes:
        status_code: HTTP status code (200, 404, etc.)
        content: Raw response content as bytes
        content_type: Content-Type header value
        headers: All response headers
        url: Final URL after any redirects
        text: Decoded body
    """

    status_code: int
    content: bytes
    content_type: str
    url: str
    text: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)


class ContentFetcher(Protocol):
    """
    Protocol shared by the plain HTTP client and the stealth browser.

    Implementations perform exactly one attempt; retry, rate limiting and
    concurrency bounding are applied by the caller.
    """

    async def fetch(
        self,
        url: str,
        *,
        timeout: Optional[float] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> HttpResponse:
        """
        Fetch a resource.

        Args:
            url: The URL to fetch
            timeout: Request timeout in seconds
            headers: Optional additional headers

        Returns:
            HttpResponse with status, decoded text and content type

        Raises:
            NetworkError on timeouts, connection failures and bad status codes
        """
        ...
