"""
HTTP Client Module - Media fetching for outbound messages

Media given by URL is downloaded before it is handed to the transport. This
module provides the pooled httpx client factory and the fetcher built on it.

Pattern: Factory pattern for creating configured HTTP clients
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from wa_gateway.core.exceptions import MediaFetchError
from wa_gateway.observability.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Default Configuration Constants
# =============================================================================

DEFAULT_TIMEOUT_SECONDS: float = 30.0
DEFAULT_MAX_CONNECTIONS: int = 50
DEFAULT_MAX_KEEPALIVE: int = 10
DEFAULT_RETRY_COUNT: int = 2
"""Connection-level retries only; a response is never re-requested."""

DEFAULT_MAX_BYTES: int = 50 * 1024 * 1024


# =============================================================================
# HTTP Client Factory
# =============================================================================


def create_http_client(
    timeout_seconds: Optional[float] = None,
    max_connections: Optional[int] = None,
    max_keepalive: Optional[int] = None,
    retries: Optional[int] = None,
    headers: Optional[dict[str, str]] = None,
) -> httpx.AsyncClient:
    """
    Create a configured HTTP client with connection pooling and timeouts.

    Args:
        timeout_seconds: Request timeout in seconds (default: 30.0)
        max_connections: Maximum connections in pool (default: 50)
        max_keepalive: Maximum keepalive connections (default: 10)
        retries: Connection retries (default: 2)
        headers: Additional headers to include in all requests

    Returns:
        httpx.AsyncClient: Configured async HTTP client that follows redirects
    """
    timeout = timeout_seconds if timeout_seconds is not None else DEFAULT_TIMEOUT_SECONDS
    max_conn = max_connections if max_connections is not None else DEFAULT_MAX_CONNECTIONS
    max_keep = max_keepalive if max_keepalive is not None else DEFAULT_MAX_KEEPALIVE
    retry_count = retries if retries is not None else DEFAULT_RETRY_COUNT

    limits = httpx.Limits(
        max_connections=max_conn,
        max_keepalive_connections=max_keep,
    )

    default_headers = {
        "User-Agent": "wa-session-gateway/1.0",
        "Accept": "*/*",
    }
    if headers:
        default_headers.update(headers)

    transport = httpx.AsyncHTTPTransport(retries=retry_count, limits=limits)

    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        headers=default_headers,
        transport=transport,
        follow_redirects=True,
    )


# =============================================================================
# Media Fetcher
# =============================================================================


class MediaFetcher(ABC):
    """Downloads media referenced by URL."""

    @abstractmethod
    async def fetch(self, url: str) -> bytes:
        """
        Download the body at url.

        Raises:
            MediaFetchError: On network errors, non-2xx responses or
                oversized bodies
        """
        ...

    async def aclose(self) -> None:
        """Release pooled connections."""


class HttpMediaFetcher(MediaFetcher):
    """
    httpx-based media fetcher with a size cap.

    The body is streamed and the download aborted as soon as it exceeds
    max_bytes.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_bytes: int = DEFAULT_MAX_BYTES,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._client = client
        self._timeout_seconds = timeout_seconds
        self._max_bytes = max_bytes

    def _get_client(self) -> httpx.AsyncClient:
        """The pooled client, created on first download."""
        if self._client is None:
            self._client = create_http_client(timeout_seconds=self._timeout_seconds)
        return self._client

    async def fetch(self, url: str) -> bytes:
        try:
            async with self._get_client().stream("GET", url) as response:
                if response.status_code >= 400:
                    raise MediaFetchError(
                        f"Media download failed with HTTP {response.status_code}: {url}",
                        url=url,
                        status_code=response.status_code,
                    )
                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > self._max_bytes:
                    raise MediaFetchError(f"Media too large ({declared} bytes): {url}", url=url)

                chunks: list[bytes] = []
                size = 0
                async for chunk in response.aiter_bytes():
                    size += len(chunk)
                    if size > self._max_bytes:
                        raise MediaFetchError(
                            f"Media exceeds {self._max_bytes} bytes: {url}", url=url
                        )
                    chunks.append(chunk)
        except httpx.HTTPError as e:
            logger.warning("media download failed", url=url, error=str(e))
            raise MediaFetchError(f"Media download failed: {e}", url=url) from e

        logger.debug("media downloaded", url=url, size=size)
        return b"".join(chunks)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
