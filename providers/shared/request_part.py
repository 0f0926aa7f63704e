"""Request fragments produced from resolved media sources."""

import base64
from dataclasses import dataclass
from typing import Any, Union

from google.genai import types

__all__ = ["FileReferencePart", "InlineDataPart", "RequestPart"]


@dataclass(frozen=True)
class InlineDataPart:
    """Raw bytes carried inside the request.

    Requests are sent through ``to_genai``; ``to_dict`` renders the REST wire
    shape (``inlineData`` with base64 data) for inspection.
    """

    data: bytes
    mime_type: str

    def to_genai(self) -> types.Part:
        return types.Part.from_bytes(data=self.data, mime_type=self.mime_type)

    def to_dict(self) -> dict[str, Any]:
        encoded = base64.b64encode(self.data).decode("ascii")
        return {"inlineData": {"data": encoded, "mimeType": self.mime_type}}


@dataclass(frozen=True)
class FileReferencePart:
    """URI the service resolves on its side (staged upload or remote link).

    ``to_dict`` renders the REST ``fileData`` shape; requests use ``to_genai``.
    """

    uri: str
    mime_type: str

    def to_genai(self) -> types.Part:
        return types.Part.from_uri(file_uri=self.uri, mime_type=self.mime_type)

    def to_dict(self) -> dict[str, Any]:
        return {"fileData": {"fileUri": self.uri, "mimeType": self.mime_type}}


RequestPart = Union[InlineDataPart, FileReferencePart]
