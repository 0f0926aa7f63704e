"""Tests for the remote media fetcher (httpx.MockTransport, no network)."""

import httpx
import pytest

from tests.media_helpers import PNG_BYTES, routes_transport
from utils.gemini_validators import MediaSizeExceededError
from utils.remote_fetch import RemoteFetcher, RemoteFetchError, is_http_url


@pytest.mark.parametrize(
    "candidate,expected",
    [
        ("https://example.com/a.png", True),
        ("http://example.com", True),
        ("  https://example.com/a.png  ", True),
        ("ftp://example.com/a.png", False),
        ("data:image/png;base64,AAAA", False),
        ("/tmp/a.png", False),
        ("https://", False),
    ],
)
def test_is_http_url(candidate, expected):
    assert is_http_url(candidate) is expected


async def test_fetch_returns_body_and_content_type():
    transport = routes_transport(
        {"https://x/img.png": httpx.Response(200, content=PNG_BYTES, headers={"Content-Type": "image/png"})}
    )
    fetched = await RemoteFetcher(transport=transport).fetch("https://x/img.png")

    assert fetched.data == PNG_BYTES
    assert fetched.content_type == "image/png"
    assert fetched.size_bytes == len(PNG_BYTES)


async def test_non_success_status_raises():
    transport = routes_transport({"https://x/missing.png": httpx.Response(404)})

    with pytest.raises(RemoteFetchError) as exc_info:
        await RemoteFetcher(transport=transport).fetch("https://x/missing.png")

    assert exc_info.value.status_code == 404
    assert "HTTP status 404" in str(exc_info.value)


async def test_transport_error_raises_fetch_error():
    with pytest.raises(RemoteFetchError) as exc_info:
        await RemoteFetcher(transport=routes_transport({})).fetch("https://x/bad")

    assert "Failed to fetch https://x/bad" in str(exc_info.value)


async def test_timeout_raises_fetch_error():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(RemoteFetchError) as exc_info:
        await RemoteFetcher(timeout=5, transport=httpx.MockTransport(handler)).fetch("https://x/slow.mp4")

    assert "timed out after 5s" in str(exc_info.value)


async def test_body_larger_than_cap_raises_size_error():
    transport = routes_transport({"https://x/huge.mp4": httpx.Response(200, content=b"\x00" * 2048)})

    with pytest.raises(MediaSizeExceededError):
        await RemoteFetcher(max_bytes=1024, transport=transport).fetch("https://x/huge.mp4")


async def test_redirects_are_followed():
    transport = routes_transport(
        {
            "https://x/old.png": httpx.Response(302, headers={"Location": "https://x/new.png"}),
            "https://x/new.png": httpx.Response(200, content=PNG_BYTES, headers={"Content-Type": "image/png"}),
        }
    )
    fetched = await RemoteFetcher(transport=transport).fetch("https://x/old.png")
    assert fetched.data == PNG_BYTES
