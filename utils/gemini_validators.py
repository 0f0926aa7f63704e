"""Gemini API media type and size validation utilities.

This module decides which MIME type a media item is sent with and whether
the Gemini API accepts it, and enforces the byte limits applied before a
request is assembled.

Official Documentation:
- Image Understanding: https://ai.google.dev/gemini-api/docs/vision
- Video Understanding: https://ai.google.dev/gemini-api/docs/video-understanding
- Files API: https://ai.google.dev/gemini-api/docs/files
"""

import logging
import mimetypes
from typing import NamedTuple, Optional
from urllib.parse import urlsplit

from providers.shared import MediaKind

logger = logging.getLogger(__name__)

# ==============================================================================
# Gemini API Limits (Official Documentation)
# ==============================================================================

# Inline data size limit
# Reference: Gemini API total request size limit (includes prompt + all files)
INLINE_DATA_HARD_LIMIT_MB = 20.0

# Files API per-file limit
# Reference: https://ai.google.dev/gemini-api/docs/files
FILES_API_MAX_FILE_MB = 2048

# ==============================================================================
# MIME Canonicalization & Whitelist
# ==============================================================================

SYNONYM_MIME_MAP: dict[str, str] = {
    # Image
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    # Video
    "application/mp4": "video/mp4",
    "video/mov": "video/quicktime",
    "video/avi": "video/x-msvideo",
    "video/mpg": "video/mpeg",
    "video/wmv": "video/x-ms-wmv",
    "video/x-m4v": "video/mp4",
}

# Reference: https://ai.google.dev/gemini-api/docs/video-understanding#supported-formats
ALLOWED_VIDEO_MIMES = {
    "video/mp4",
    "video/mpeg",
    "video/quicktime",
    "video/x-msvideo",
    "video/x-flv",
    "video/webm",
    "video/x-ms-wmv",
    "video/3gpp",
}

IMAGE_EXTENSION_TO_MIME: dict[str, str] = {
    ".apng": "image/apng",
    ".avif": "image/avif",
    ".gif": "image/gif",
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".jpeg": "image/jpeg",
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
}

VIDEO_EXTENSION_TO_MIME: dict[str, str] = {
    ".3gp": "video/3gpp",
    ".3gpp": "video/3gpp",
    ".avi": "video/x-msvideo",
    ".flv": "video/x-flv",
    ".m4v": "video/mp4",
    ".mov": "video/quicktime",
    ".mp4": "video/mp4",
    ".mpeg": "video/mpeg",
    ".mpg": "video/mpeg",
    ".webm": "video/webm",
    ".wmv": "video/x-ms-wmv",
}

# Servers often send these for any binary body; they say nothing about the media.
UNINFORMATIVE_CONTENT_TYPES = {"application/octet-stream", "binary/octet-stream"}


def canonicalize_mime(mime_type: Optional[str]) -> str:
    """Canonicalize MIME type to standard form (parameters stripped)."""
    if not mime_type:
        return ""
    mt = mime_type.split(";", 1)[0].strip().lower()
    return SYNONYM_MIME_MAP.get(mt, mt)


def calculate_base64_size(raw_bytes: int) -> int:
    """Calculate exact Base64 encoded size for raw bytes.

    Base64 encoding converts 3 bytes to 4 characters, padding with '=' if needed.
    Formula: 4 * ceil(raw_bytes / 3) = 4 * ((raw_bytes + 2) // 3)
    """
    if raw_bytes <= 0:
        return 0
    return 4 * ((raw_bytes + 2) // 3)


def megabytes_to_bytes(size_mb: float) -> int:
    return int(size_mb * 1024 * 1024)


# ==============================================================================
# MIME Resolution
# ==============================================================================


class MimeResolution(NamedTuple):
    """Outcome of resolving a media item's MIME type.

    ``error`` is set when the type cannot be sent as the requested kind; the
    caller is expected to skip the item and log the reason.
    """

    mime_type: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _extension_of(location: str) -> str:
    """Lower-cased extension of a local path or of a URL's path segment."""
    path = location
    if "://" in location:
        try:
            path = urlsplit(location).path
        except ValueError:
            path = location
    # Drop query fragments left on malformed URLs
    path = path.split("?", 1)[0].split("#", 1)[0]
    name = path.rsplit("/", 1)[-1].rsplit("\\", 1)[-1]
    dot = name.rfind(".")
    if dot <= 0:
        return ""
    return name[dot:].lower()


def guess_mime_from_location(location: Optional[str], kind: MediaKind) -> Optional[str]:
    """Extension-based lookup against the fixed tables, then ``mimetypes``."""
    if not location:
        return None

    extension = _extension_of(location)
    if not extension:
        return None

    table = IMAGE_EXTENSION_TO_MIME if kind is MediaKind.IMAGE else VIDEO_EXTENSION_TO_MIME
    if extension in table:
        return table[extension]

    guessed, _ = mimetypes.guess_type(f"file{extension}")
    return guessed


def resolve_media_mime(
    kind: MediaKind,
    *,
    declared: Optional[str] = None,
    data_uri_type: Optional[str] = None,
    content_type: Optional[str] = None,
    location: Optional[str] = None,
) -> MimeResolution:
    """Pick the MIME type a media item is sent with and check it against ``kind``.

    Priority order:
    1. Explicit caller-declared type
    2. Type embedded in a ``data:`` URI prefix
    3. Server-declared ``Content-Type`` from a completed fetch
    4. Extension of the local path or URL path
    5. Category wildcard (``image/*`` or ``video/*``)

    Args:
        kind: Expected media category
        declared: Caller-supplied MIME hint
        data_uri_type: Type parsed from a ``data:`` URI
        content_type: ``Content-Type`` header value
        location: Local path or URL used for the extension lookup

    Returns:
        MimeResolution with the canonical type, and an error reason when the
        type does not belong to ``kind`` or is not accepted by Gemini.
    """
    server_type = canonicalize_mime(content_type)
    if server_type in UNINFORMATIVE_CONTENT_TYPES:
        server_type = ""

    candidates = (
        canonicalize_mime(declared),
        canonicalize_mime(data_uri_type),
        server_type,
        canonicalize_mime(guess_mime_from_location(location, kind)),
    )
    mime_type = next((candidate for candidate in candidates if candidate), kind.mime_fallback)

    return MimeResolution(mime_type, validate_media_mime(mime_type, kind))


def validate_media_mime(mime_type: str, kind: MediaKind) -> Optional[str]:
    """Return the reason a canonical MIME type is unusable for ``kind``, or None."""
    if not mime_type.startswith(kind.mime_prefix):
        return f"content type '{mime_type}' is not {kind.value} content"

    if kind is MediaKind.VIDEO and mime_type not in ALLOWED_VIDEO_MIMES:
        supported = ", ".join(sorted(ALLOWED_VIDEO_MIMES))
        return f"unsupported video type '{mime_type}' (supported: {supported})"

    return None


# ==============================================================================
# Size Validation
# ==============================================================================


class GeminiValidationError(ValueError):
    """Raised when a media item violates Gemini API limits."""

    pass


class MediaSizeExceededError(GeminiValidationError):
    """Raised when a media item is larger than a configured limit.

    Oversized media is never dropped silently: the whole request fails so the
    caller learns that the item they asked about was not analysed.
    """

    def __init__(self, name: str, size_bytes: int, limit_bytes: int, hint: str = ""):
        self.name = name
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes
        size_mb = size_bytes / (1024**2)
        limit_mb = limit_bytes / (1024**2)
        message = f"Media '{name}' is {size_mb:.2f} MB which exceeds the maximum allowed size of {limit_mb:.2f} MB."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)


def validate_media_size(size_bytes: int, limit_bytes: int, name: str = "media", hint: str = "") -> None:
    """Validate a payload size against a byte limit.

    Args:
        size_bytes: Payload size in bytes
        limit_bytes: Maximum allowed size in bytes
        name: Media identifier for error messages
        hint: Optional remediation appended to the message

    Raises:
        GeminiValidationError: If the size is negative
        MediaSizeExceededError: If the size exceeds ``limit_bytes``
    """
    if size_bytes < 0:
        raise GeminiValidationError(f"Media '{name}' has invalid size: {size_bytes} bytes.")

    if size_bytes > limit_bytes:
        raise MediaSizeExceededError(name, size_bytes, limit_bytes, hint)

    logger.debug(f"Media '{name}' size {size_bytes} bytes within limit {limit_bytes} bytes")
