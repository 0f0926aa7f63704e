"""Tests for turning media sources into request parts."""

import base64
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from providers.media_parts import MediaPartBuilder, SourceSkipped, decode_inline_payload, is_youtube_url
from providers.shared import (
    FileReferencePart,
    InlineDataPart,
    InlineSource,
    LocalSource,
    MediaKind,
    StreamingReferenceSource,
    UrlSource,
)
from tests.media_helpers import PNG_BYTES, make_options, routes_transport
from utils.gemini_validators import MediaSizeExceededError
from utils.remote_fetch import RemoteFetcher

STAGED_PART = FileReferencePart(uri="https://generativelanguage.googleapis.com/v1beta/files/x", mime_type="video/mp4")


def make_builder(options=None, routes=None, stager=None):
    fetcher = RemoteFetcher(transport=routes_transport(routes or {}))
    if stager is None:
        stager = MagicMock()
        stager.stage = AsyncMock(return_value=STAGED_PART)
    return MediaPartBuilder(options or make_options(), fetcher=fetcher, stager=stager), stager


class TestHelpers:
    def test_youtube_hosts(self):
        assert is_youtube_url("https://www.youtube.com/watch?v=abc")
        assert is_youtube_url("https://youtu.be/abc")
        assert not is_youtube_url("https://vimeo.com/123")
        assert not is_youtube_url("youtube.com/watch?v=abc")

    def test_decode_data_uri(self):
        payload = base64.b64encode(PNG_BYTES).decode()
        data, embedded = decode_inline_payload(f"data:image/png;base64,{payload}")
        assert data == PNG_BYTES
        assert embedded == "image/png"

    def test_decode_raw_base64(self):
        data, embedded = decode_inline_payload(base64.b64encode(b"hello").decode())
        assert data == b"hello"
        assert embedded is None

    @pytest.mark.parametrize(
        "payload",
        ["data:image/png;base64", "data:image/png,plain-text", "!!!not base64!!!", ""],
    )
    def test_decode_rejects_malformed_payloads(self, payload):
        with pytest.raises(SourceSkipped):
            decode_inline_payload(payload)


class TestStreamingReference:
    async def test_youtube_reference_touches_no_io(self, monkeypatch):
        fetcher = MagicMock()
        fetcher.fetch = AsyncMock()
        stager = MagicMock()
        stager.stage = AsyncMock()
        builder = MediaPartBuilder(make_options(), fetcher=fetcher, stager=stager)

        def fail_read(*_args, **_kwargs):
            raise AssertionError("local reader must not be used")

        monkeypatch.setattr("providers.media_parts.resolve_local_path", fail_read)

        part = await builder.build(StreamingReferenceSource(uri="https://youtu.be/abc"), 0)

        assert part == FileReferencePart(uri="https://youtu.be/abc", mime_type="video/*")
        fetcher.fetch.assert_not_awaited()
        stager.stage.assert_not_awaited()

    async def test_youtube_video_url_is_passed_by_reference(self):
        builder, stager = make_builder()
        part = await builder.build(UrlSource(kind=MediaKind.VIDEO, uri="https://www.youtube.com/watch?v=abc"), 0)
        assert isinstance(part, FileReferencePart)
        stager.stage.assert_not_awaited()


class TestUrlSources:
    async def test_small_download_is_inlined(self):
        builder, _ = make_builder(
            routes={"https://x/img.png": httpx.Response(200, content=PNG_BYTES, headers={"Content-Type": "image/png"})}
        )
        part = await builder.build(UrlSource(kind=MediaKind.IMAGE, uri="https://x/img.png"), 0)
        assert part == InlineDataPart(data=PNG_BYTES, mime_type="image/png")

    async def test_large_download_is_staged_and_temp_file_removed(self):
        staged_paths = []

        async def stage(path: Path, mime_type: str):
            assert path.exists()
            assert path.read_bytes() == b"\x00" * 64
            staged_paths.append(path)
            return STAGED_PART

        stager = MagicMock()
        stager.stage = AsyncMock(side_effect=stage)
        builder, _ = make_builder(
            options=make_options(inline_size_limit_bytes=32),
            routes={"https://x/clip.mp4": httpx.Response(200, content=b"\x00" * 64)},
            stager=stager,
        )

        part = await builder.build(UrlSource(kind=MediaKind.VIDEO, uri="https://x/clip.mp4"), 0)

        assert part == STAGED_PART
        assert stager.stage.await_args.args[1] == "video/mp4"
        assert staged_paths and not staged_paths[0].exists()

    async def test_fetch_failure_is_skipped(self, caplog):
        builder, _ = make_builder()
        with caplog.at_level("WARNING"):
            part = await builder.build(UrlSource(kind=MediaKind.IMAGE, uri="https://x/bad"), 1)
        assert part is None
        assert "index 1" in caplog.text

    async def test_wrong_category_content_type_is_skipped(self):
        builder, _ = make_builder(
            routes={"https://x/page": httpx.Response(200, content=b"<html>", headers={"Content-Type": "text/html"})}
        )
        assert await builder.build(UrlSource(kind=MediaKind.IMAGE, uri="https://x/page"), 0) is None

    async def test_non_http_url_is_skipped(self):
        builder, _ = make_builder()
        assert await builder.build(UrlSource(kind=MediaKind.IMAGE, uri="ftp://x/a.png"), 0) is None

    async def test_download_above_max_size_is_fatal(self):
        builder, _ = make_builder(
            options=make_options(inline_size_limit_bytes=8, max_media_size_bytes=16),
            routes={"https://x/clip.mp4": httpx.Response(200, content=b"\x00" * 32)},
        )
        with pytest.raises(MediaSizeExceededError):
            await builder.build(UrlSource(kind=MediaKind.VIDEO, uri="https://x/clip.mp4"), 0)


class TestLocalSources:
    async def test_local_file_is_staged_by_default(self, tmp_path):
        video = tmp_path / "clip.mov"
        video.write_bytes(b"\x00" * 10)
        builder, stager = make_builder()

        part = await builder.build(LocalSource(kind=MediaKind.VIDEO, path=str(video)), 0)

        assert part == STAGED_PART
        stager.stage.assert_awaited_once_with(video, "video/quicktime")

    async def test_local_file_is_inlined_when_uploads_disabled(self, tmp_path):
        image = tmp_path / "cat.png"
        image.write_bytes(PNG_BYTES)
        builder, stager = make_builder(options=make_options(upload_local_files=False))

        part = await builder.build(LocalSource(kind=MediaKind.IMAGE, path=str(image)), 0)

        assert part == InlineDataPart(data=PNG_BYTES, mime_type="image/png")
        stager.stage.assert_not_awaited()

    async def test_oversized_local_file_without_uploads_is_fatal(self, tmp_path):
        image = tmp_path / "huge.png"
        image.write_bytes(b"\x00" * 100)
        builder, _ = make_builder(options=make_options(upload_local_files=False, inline_size_limit_bytes=50))

        with pytest.raises(MediaSizeExceededError) as exc_info:
            await builder.build(LocalSource(kind=MediaKind.IMAGE, path=str(image)), 0)

        assert "GEMINI_UPLOAD_LOCAL_FILES" in str(exc_info.value)

    async def test_local_file_above_max_size_is_fatal(self, tmp_path):
        video = tmp_path / "huge.mp4"
        video.write_bytes(b"\x00" * 100)
        builder, stager = make_builder(options=make_options(max_media_size_bytes=50))

        with pytest.raises(MediaSizeExceededError):
            await builder.build(LocalSource(kind=MediaKind.VIDEO, path=str(video)), 0)
        stager.stage.assert_not_awaited()

    async def test_missing_file_is_skipped(self, tmp_path):
        builder, _ = make_builder()
        assert await builder.build(LocalSource(kind=MediaKind.IMAGE, path=str(tmp_path / "nope.png")), 0) is None

    async def test_declared_mime_of_other_category_is_dropped(self, tmp_path):
        clip = tmp_path / "clip.mp4"
        clip.write_bytes(b"\x00")
        builder, stager = make_builder()

        part = await builder.build(
            LocalSource(kind=MediaKind.IMAGE, path=str(clip), declared_mime_type="video/mp4"),
            0,
        )

        assert part is None
        stager.stage.assert_not_awaited()

    async def test_unsupported_video_extension_is_skipped(self, tmp_path):
        clip = tmp_path / "clip.mkv"
        clip.write_bytes(b"\x00")
        builder, _ = make_builder()
        assert await builder.build(LocalSource(kind=MediaKind.VIDEO, path=str(clip)), 0) is None

    async def test_staging_failure_propagates(self, tmp_path):
        from providers.gemini_files import FileStagingError

        clip = tmp_path / "clip.mp4"
        clip.write_bytes(b"\x00")
        stager = MagicMock()
        stager.stage = AsyncMock(side_effect=FileStagingError("processing failed"))
        builder, _ = make_builder(stager=stager)

        with pytest.raises(FileStagingError):
            await builder.build(LocalSource(kind=MediaKind.VIDEO, path=str(clip)), 0)


class TestInlineSources:
    async def test_data_uri_source(self):
        payload = base64.b64encode(PNG_BYTES).decode()
        builder, _ = make_builder()
        part = await builder.build(InlineSource(kind=MediaKind.IMAGE, data=f"data:image/png;base64,{payload}"), 0)
        assert part == InlineDataPart(data=PNG_BYTES, mime_type="image/png")

    async def test_raw_base64_without_type_uses_wildcard(self):
        builder, _ = make_builder()
        part = await builder.build(InlineSource(kind=MediaKind.IMAGE, data=base64.b64encode(PNG_BYTES).decode()), 0)
        assert part.mime_type == "image/*"

    async def test_malformed_inline_payload_is_skipped(self):
        builder, _ = make_builder()
        assert await builder.build(InlineSource(kind=MediaKind.IMAGE, data="data:image/png;base64,@@@"), 0) is None

    async def test_oversized_inline_payload_is_fatal(self):
        payload = base64.b64encode(b"\x00" * 100).decode()
        builder, _ = make_builder(options=make_options(inline_size_limit_bytes=50))

        with pytest.raises(MediaSizeExceededError):
            await builder.build(InlineSource(kind=MediaKind.IMAGE, data=f"data:image/png;base64,{payload}"), 0)


class TestRequestParts:
    def test_inline_part_wire_shape(self):
        part = InlineDataPart(data=b"hello", mime_type="image/png")
        assert part.to_dict() == {"inlineData": {"data": "aGVsbG8=", "mimeType": "image/png"}}
        assert part.to_genai().inline_data.data == b"hello"

    def test_file_reference_wire_shape(self):
        part = FileReferencePart(uri="https://youtu.be/abc", mime_type="video/*")
        assert part.to_dict() == {"fileData": {"fileUri": "https://youtu.be/abc", "mimeType": "video/*"}}
        assert part.to_genai().file_data.file_uri == "https://youtu.be/abc"
