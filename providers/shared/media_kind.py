"""Enumeration describing which media category a source belongs to."""

from enum import Enum

__all__ = ["MediaKind"]


class MediaKind(Enum):
    """Media categories accepted by the analysis tools."""

    IMAGE = "image"
    VIDEO = "video"

    @property
    def mime_prefix(self) -> str:
        return f"{self.value}/"

    @property
    def mime_fallback(self) -> str:
        return f"{self.value}/*"
