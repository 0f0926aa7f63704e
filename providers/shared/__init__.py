"""Shared data types used by the Gemini media pipeline."""

from .media_kind import MediaKind
from .media_source import (
    InlineSource,
    LocalSource,
    MediaSource,
    StreamingReferenceSource,
    UrlSource,
    describe_source,
)
from .request_part import FileReferencePart, InlineDataPart, RequestPart

__all__ = [
    "FileReferencePart",
    "InlineDataPart",
    "InlineSource",
    "LocalSource",
    "MediaKind",
    "MediaSource",
    "RequestPart",
    "StreamingReferenceSource",
    "UrlSource",
    "describe_source",
]
