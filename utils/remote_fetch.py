"""Download remote media over HTTP(S) with a bounded timeout."""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

import httpx

from utils.gemini_validators import MediaSizeExceededError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "gemini-media-mcp-server"


class RemoteFetchError(Exception):
    """Raised when a remote media download fails (status, timeout, transport)."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {message}")


@dataclass(frozen=True)
class FetchedMedia:
    """Downloaded payload plus the server-declared content type."""

    url: str
    data: bytes
    content_type: Optional[str]

    @property
    def size_bytes(self) -> int:
        return len(self.data)


def is_http_url(candidate: str) -> bool:
    """True for absolute http/https URLs with a host."""
    if not isinstance(candidate, str):
        return False
    try:
        parsed = urlsplit(candidate.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class RemoteFetcher:
    """Single-GET downloader.

    Each fetch opens its own ``httpx.AsyncClient`` so concurrent fetches share
    nothing. ``transport`` lets tests substitute ``httpx.MockTransport``.
    """

    def __init__(
        self,
        timeout: float = 60.0,
        max_bytes: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._timeout = timeout
        self._max_bytes = max_bytes
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            follow_redirects=True,
            headers={"User-Agent": DEFAULT_USER_AGENT},
            transport=self._transport,
        )

    def _check_size(self, url: str, size_bytes: int) -> None:
        if self._max_bytes is not None and size_bytes > self._max_bytes:
            raise MediaSizeExceededError(url, size_bytes, self._max_bytes)

    async def fetch(self, url: str) -> FetchedMedia:
        """Download ``url``.

        Raises:
            RemoteFetchError: Non-2xx status, timeout or transport failure
            MediaSizeExceededError: Body larger than ``max_bytes``
        """
        logger.info(f"Fetching media from URL: {url}")
        try:
            async with self._client() as client:
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise RemoteFetchError(url, f"HTTP status {response.status_code}", response.status_code)

                    declared_length = response.headers.get("content-length")
                    if declared_length and declared_length.isdigit():
                        self._check_size(url, int(declared_length))

                    chunks = bytearray()
                    async for chunk in response.aiter_bytes():
                        chunks.extend(chunk)
                        self._check_size(url, len(chunks))

                    content_type = response.headers.get("content-type")
        except httpx.TimeoutException as e:
            raise RemoteFetchError(url, f"timed out after {self._timeout:.0f}s") from e
        except httpx.HTTPError as e:
            raise RemoteFetchError(url, str(e) or type(e).__name__) from e

        logger.debug(f"Fetched {len(chunks)} bytes from {url} (content-type: {content_type})")
        return FetchedMedia(url=url, data=bytes(chunks), content_type=content_type)
