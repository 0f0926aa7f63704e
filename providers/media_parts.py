"""Turn media source descriptions into Gemini request parts.

Each source is handled independently:

- Streaming references (YouTube) become file references without any I/O.
- URLs are downloaded, typed, and either inlined or staged via the Files API.
- Local files are resolved, typed, and staged (or read and inlined when
  ``upload_local_files`` is off).
- Inline payloads are decoded and typed.

A source that cannot be used is skipped: ``build`` logs the reason and
returns None. Size-limit violations and Files API failures are raised so
that the whole request fails.
"""

import asyncio
import base64
import binascii
import logging
import mimetypes
import os
import tempfile
from pathlib import Path
from typing import Optional, assert_never
from urllib.parse import urlsplit

from config import ServerOptions
from utils.gemini_validators import calculate_base64_size, resolve_media_mime, validate_media_size
from utils.path_resolution import resolve_local_path
from utils.remote_fetch import RemoteFetcher, RemoteFetchError, is_http_url

from .gemini_files import GeminiFileStager
from .shared import (
    FileReferencePart,
    InlineDataPart,
    InlineSource,
    LocalSource,
    MediaKind,
    MediaSource,
    RequestPart,
    StreamingReferenceSource,
    UrlSource,
    describe_source,
)

logger = logging.getLogger(__name__)

STREAMING_REFERENCE_HOSTS = {
    "youtube.com",
    "www.youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "youtu.be",
}


class SourceSkipped(Exception):
    """A source cannot be used; the request continues without it."""


def is_youtube_url(candidate: str) -> bool:
    if not is_http_url(candidate):
        return False
    host = (urlsplit(candidate.strip()).hostname or "").lower()
    return host in STREAMING_REFERENCE_HOSTS


def decode_inline_payload(value: str) -> tuple[bytes, Optional[str]]:
    """Decode raw base64 or a ``data:<mime>;base64,<payload>`` URI.

    Returns:
        (decoded bytes, MIME type embedded in the data URI or None)

    Raises:
        SourceSkipped: The payload is malformed or empty
    """
    text = value.strip() if isinstance(value, str) else ""
    embedded_type = None

    if text[:5].lower() == "data:":
        header, separator, payload = text.partition(",")
        if not separator:
            raise SourceSkipped("malformed data URI (missing ',' separator)")
        segments = [segment.strip() for segment in header[5:].split(";")]
        embedded_type = segments[0] or None
        if "base64" not in (segment.lower() for segment in segments[1:]):
            raise SourceSkipped("data URI is not base64 encoded")
        text = payload

    try:
        decoded = base64.b64decode("".join(text.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise SourceSkipped(f"payload is not valid base64 ({e})") from e

    if not decoded:
        raise SourceSkipped("payload is empty")
    return decoded, embedded_type


def _write_temp_file(data: bytes, suffix: str) -> Path:
    handle, name = tempfile.mkstemp(prefix="gemini-media-", suffix=suffix)
    with os.fdopen(handle, "wb") as temp_file:
        temp_file.write(data)
    return Path(name)


class MediaPartBuilder:
    """Builds one request part per media source (see module docstring)."""

    def __init__(self, options: ServerOptions, *, fetcher: RemoteFetcher, stager: GeminiFileStager):
        self._options = options
        self._fetcher = fetcher
        self._stager = stager

    async def build(self, source: MediaSource, index: int) -> Optional[RequestPart]:
        """Return the request part for ``source``, or None if it was skipped."""
        try:
            if isinstance(source, StreamingReferenceSource):
                return self._from_streaming_reference(source)
            if isinstance(source, UrlSource):
                return await self._from_url(source)
            if isinstance(source, LocalSource):
                return await self._from_local_path(source)
            if isinstance(source, InlineSource):
                return self._from_inline(source)
            assert_never(source)
        except SourceSkipped as e:
            logger.warning(f"Skipping {source.kind.value} source at index {index} ({describe_source(source)}): {e}")
            return None

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------

    def _from_streaming_reference(self, source: StreamingReferenceSource) -> RequestPart:
        if not is_http_url(source.uri):
            raise SourceSkipped("not a valid http(s) URL")
        logger.info(f"Referencing streaming video by URL: {source.uri}")
        return FileReferencePart(uri=source.uri.strip(), mime_type=source.kind.mime_fallback)

    async def _from_url(self, source: UrlSource) -> RequestPart:
        if not is_http_url(source.uri):
            raise SourceSkipped("not a valid http(s) URL")

        if source.kind is MediaKind.VIDEO and is_youtube_url(source.uri):
            return self._from_streaming_reference(StreamingReferenceSource(uri=source.uri))

        try:
            fetched = await self._fetcher.fetch(source.uri)
        except RemoteFetchError as e:
            raise SourceSkipped(str(e)) from e

        resolution = resolve_media_mime(source.kind, content_type=fetched.content_type, location=source.uri)
        if not resolution.ok:
            raise SourceSkipped(resolution.error)

        size_mb = fetched.size_bytes / (1024 * 1024)
        logger.info(f"Downloaded {source.kind.value}: {size_mb:.2f} MB ({resolution.mime_type})")
        return await self._inline_or_stage(fetched.data, resolution.mime_type, name=source.uri)

    async def _from_local_path(self, source: LocalSource) -> RequestPart:
        path = resolve_local_path(
            source.path,
            search_roots=self._options.media_roots,
            allowed_roots=self._options.allowed_roots,
        )
        if path is None:
            raise SourceSkipped("local file is missing, unreadable or not permitted")

        resolution = resolve_media_mime(source.kind, declared=source.declared_mime_type, location=str(path))
        if not resolution.ok:
            raise SourceSkipped(resolution.error)

        try:
            size_bytes = path.stat().st_size
        except OSError as e:
            raise SourceSkipped(f"cannot stat {path}: {e}") from e

        validate_media_size(size_bytes, self._options.max_media_size_bytes, path.name)

        if self._options.upload_local_files:
            return await self._stager.stage(path, resolution.mime_type)

        validate_media_size(
            size_bytes,
            self._options.inline_size_limit_bytes,
            path.name,
            hint="Set GEMINI_UPLOAD_LOCAL_FILES=true to send large local files through the Files API.",
        )
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise SourceSkipped(f"cannot read {path}: {e}") from e

        logger.info(f"Read local {source.kind.value} {path.name} ({resolution.mime_type}) for inline upload")
        return InlineDataPart(data=data, mime_type=resolution.mime_type)

    def _from_inline(self, source: InlineSource) -> RequestPart:
        data, embedded_type = decode_inline_payload(source.data)

        resolution = resolve_media_mime(
            source.kind,
            declared=source.declared_mime_type,
            data_uri_type=embedded_type,
        )
        if not resolution.ok:
            raise SourceSkipped(resolution.error)

        validate_media_size(len(data), self._options.inline_size_limit_bytes, f"inline {source.kind.value}")
        return InlineDataPart(data=data, mime_type=resolution.mime_type)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _inline_or_stage(self, data: bytes, mime_type: str, name: str) -> RequestPart:
        validate_media_size(len(data), self._options.max_media_size_bytes, name)

        if len(data) <= self._options.inline_size_limit_bytes:
            logger.debug(f"Inlining {name} ({len(data)} bytes, {calculate_base64_size(len(data))} bytes as base64)")
            return InlineDataPart(data=data, mime_type=mime_type)

        logger.info(f"{name} exceeds the inline limit; staging it through the Files API")
        suffix = mimetypes.guess_extension(mime_type) or ""
        temp_path = await asyncio.to_thread(_write_temp_file, data, suffix)
        try:
            return await self._stager.stage(temp_path, mime_type)
        finally:
            await asyncio.to_thread(temp_path.unlink, missing_ok=True)
