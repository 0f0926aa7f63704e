"""Caller-supplied media source descriptions.

A media source is one of four immutable variants. The union is closed:
``MediaPartBuilder.build`` dispatches over every member and ends in
``assert_never`` so a new variant shows up as a type-checking failure.
"""

from dataclasses import dataclass
from typing import Optional, Union

from .media_kind import MediaKind

__all__ = [
    "InlineSource",
    "LocalSource",
    "MediaSource",
    "StreamingReferenceSource",
    "UrlSource",
    "describe_source",
]


@dataclass(frozen=True)
class UrlSource:
    """Media reachable over http(s); downloaded before being sent."""

    kind: MediaKind
    uri: str


@dataclass(frozen=True)
class LocalSource:
    """Media on the local filesystem, resolved through the path resolver."""

    kind: MediaKind
    path: str
    declared_mime_type: Optional[str] = None


@dataclass(frozen=True)
class InlineSource:
    """Base64 payload supplied inline, either raw or as a ``data:`` URI."""

    kind: MediaKind
    data: str
    declared_mime_type: Optional[str] = None


@dataclass(frozen=True)
class StreamingReferenceSource:
    """Video-sharing URL (e.g. YouTube) the service fetches itself."""

    uri: str
    kind: MediaKind = MediaKind.VIDEO


MediaSource = Union[UrlSource, LocalSource, InlineSource, StreamingReferenceSource]


def describe_source(source: MediaSource) -> str:
    """Short identifier for log lines (never includes inline payloads)."""
    if isinstance(source, InlineSource):
        return f"inline {source.kind.value} ({len(source.data)} chars)"
    if isinstance(source, LocalSource):
        return source.path
    return source.uri
