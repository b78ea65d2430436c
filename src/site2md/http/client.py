"""Async HTTP client for the plain fetch path."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Optional

import aiohttp
from charset_normalizer import from_bytes as detect_encoding

from ..errors import NetworkError
from .protocols import HttpResponse

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "application/json,application/yaml,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


class AsyncHttpClient:
    """
    Single-attempt async HTTP client.

    Sends browser-like headers, follows a bounded number of redirects and
    treats any status at or above ``success_status_limit`` as a failure.
    Retry and rate limiting live outside the client so that the same
    policies wrap the browser path too.

    Example:
        async with AsyncHttpClient() as client:
            response = await client.fetch("https://example.com")
            print(response.text)
    """

    MAX_CONTENT_SIZE = 50 * 1024 * 1024  # 50 MB
    MAX_REDIRECTS = 5

    def __init__(
        self,
        user_agent: Optional[str] = None,
        default_timeout: float = 30.0,
        max_content_size: int = MAX_CONTENT_SIZE,
        max_redirects: int = MAX_REDIRECTS,
        success_status_limit: int = 400,
        proxy: Optional[str] = None,
    ) -> None:
        """
        Initialize the HTTP client.

        Args:
            user_agent: Default User-Agent string
            default_timeout: Request timeout in seconds when none is given
            max_content_size: Maximum response size in bytes
            max_redirects: Maximum redirects followed per request
            success_status_limit: Statuses below this value count as success
            proxy: Proxy URL (http:// or https://)
        """
        self._user_agent = user_agent or DEFAULT_USER_AGENT
        self._default_timeout = default_timeout
        self._max_content_size = max_content_size
        self._max_redirects = max_redirects
        self._success_status_limit = success_status_limit
        self._proxy = proxy
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> AsyncHttpClient:
        """Enter async context and create session."""
        connector = aiohttp.TCPConnector(
            limit=100,
            limit_per_host=10,
            ttl_dns_cache=300,
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            headers={"User-Agent": self._user_agent, **DEFAULT_HEADERS},
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context and close session."""
        if self._session:
            await self._session.close()
            self._session = None

    def _decode_content(self, content: bytes, content_type: str) -> str:
        """
        Decode content with intelligent encoding detection.

        Fallback chain:
        1. Content-Type header charset
        2. charset-normalizer detection
        3. UTF-8 with replacement
        """
        encoding = None
        if content_type:
            for part in content_type.split(";"):
                part = part.strip()
                if part.lower().startswith("charset="):
                    encoding = part.split("=", 1)[1].strip().strip("\"'")
                    break

        if encoding:
            try:
                return content.decode(encoding)
            except (UnicodeDecodeError, LookupError):
                logger.debug(f"Failed to decode with declared encoding: {encoding}")

        best_match = detect_encoding(content).best()
        if best_match is not None:
            logger.debug(f"Detected encoding: {best_match.encoding}")
            return str(best_match)

        return content.decode("utf-8", errors="replace")

    async def fetch(
        self,
        url: str,
        *,
        timeout: Optional[float] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> HttpResponse:
        """
        Perform one HTTP GET request.

        Args:
            url: The URL to fetch
            timeout: Request timeout in seconds (uses default if None)
            headers: Headers merged over the defaults

        Returns:
            HttpResponse with decoded text

        Raises:
            NetworkError: On timeouts, connection errors, bad status or oversize content
        """
        if self._session is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        timeout_val = timeout or self._default_timeout

        try:
            async with self._session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=timeout_val),
                headers=dict(headers) if headers else None,
                proxy=self._proxy,
                allow_redirects=True,
                max_redirects=self._max_redirects,
            ) as response:
                if response.status >= self._success_status_limit:
                    raise NetworkError(
                        url,
                        f"HTTP {response.status} {response.reason or ''}".strip(),
                        status_code=response.status,
                    )

                content_length = response.headers.get("Content-Length")
                if content_length and content_length.isdigit() and int(content_length) > self._max_content_size:
                    raise NetworkError(url, f"Content too large: {content_length} bytes", response.status)

                content = b""
                async for chunk in response.content.iter_chunked(8192):
                    content += chunk
                    if len(content) > self._max_content_size:
                        raise NetworkError(
                            url,
                            f"Content size limit exceeded: >{self._max_content_size} bytes",
                            response.status,
                        )

                content_type = response.headers.get("Content-Type", "")
                logger.debug(f"Fetched {url}: {len(content)} bytes ({content_type or 'no content type'})")

                return HttpResponse(
                    status_code=response.status,
                    content=content,
                    content_type=content_type,
                    url=str(response.url),
                    text=self._decode_content(content, content_type),
                    headers=dict(response.headers),
                )

        except asyncio.TimeoutError as e:
            raise NetworkError(url, f"Request timed out after {timeout_val:.0f}s") from e
        except aiohttp.ClientResponseError as e:
            raise NetworkError(url, e.message or str(e), status_code=e.status) from e
        except aiohttp.ClientError as e:
            raise NetworkError(url, str(e) or type(e).__name__) from e
