"""
Base class for the media analysis tools.

Every tool follows the same flow:

1. Validate raw MCP arguments against the tool's pydantic request model
2. Obtain the shared ``GeminiMediaAnalyzer`` (built lazily on first use)
3. Run the analysis and wrap the text in a ``ToolOutput`` JSON document

Failures never escape ``execute``: they are mapped to a ``ToolOutput`` with
``status="error"`` and a stable JSON-RPC error code. Tracebacks go to the
log, never to the client.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST, TextContent, Tool, ToolAnnotations
from pydantic import ValidationError

from providers.configuration import MissingCredentialsError
from providers.gemini_media import GeminiMediaAnalyzer
from utils.gemini_validators import GeminiValidationError

from .models import MediaRequest, ToolOutput

logger = logging.getLogger(__name__)

AnalyzerFactory = Callable[[], GeminiMediaAnalyzer]


def format_validation_error(error: ValidationError) -> str:
    """Flatten pydantic errors into one readable line per field."""
    messages = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail.get("loc", ())) or "arguments"
        message = detail.get("msg", "invalid value").removeprefix("Value error, ")
        messages.append(f"{location}: {message}")
    return "; ".join(messages)


def classify_error(error: BaseException) -> tuple[int, str]:
    """Map an exception to (JSON-RPC error code, client-facing message)."""
    if isinstance(error, ValidationError):
        return INVALID_PARAMS, format_validation_error(error)
    if isinstance(error, GeminiValidationError):
        return INVALID_PARAMS, str(error)
    if isinstance(error, MissingCredentialsError):
        return INVALID_REQUEST, str(error)
    return INTERNAL_ERROR, str(error) or type(error).__name__


class BaseMediaTool(ABC):
    """Shared plumbing for the five media tools."""

    name: str = ""
    title: str = ""
    description: str = ""
    request_model: type[MediaRequest] = MediaRequest

    def __init__(self, get_analyzer: AnalyzerFactory):
        self._get_analyzer = get_analyzer

    def get_input_schema(self) -> dict[str, Any]:
        schema = self.request_model.model_json_schema()
        schema.pop("title", None)
        return schema

    def to_mcp_tool(self) -> Tool:
        return Tool(
            name=self.name,
            title=self.title,
            description=self.description,
            inputSchema=self.get_input_schema(),
            annotations=ToolAnnotations(title=self.title, readOnlyHint=True, idempotentHint=True),
        )

    @abstractmethod
    async def analyze(self, analyzer: GeminiMediaAnalyzer, request: MediaRequest) -> str:
        """Run the analysis for an already validated request."""

    async def execute(self, arguments: dict[str, Any]) -> list[TextContent]:
        try:
            request = self.request_model.model_validate(arguments or {})
            analyzer = self._get_analyzer()
            text = await self.analyze(analyzer, request)
        except Exception as e:
            return [TextContent(type="text", text=self._error_output(e).model_dump_json())]

        output = ToolOutput(
            status="success",
            content=text,
            content_type="text",
            metadata={"tool_name": self.name, "model_used": analyzer.model_name},
        )
        return [TextContent(type="text", text=output.model_dump_json())]

    def _error_output(self, error: Exception) -> ToolOutput:
        error_code, message = classify_error(error)
        if error_code == INTERNAL_ERROR:
            logger.exception(f"Error in {self.name} tool execution")
        else:
            logger.warning(f"{self.name} rejected request: {message}")

        return ToolOutput(
            status="error",
            content=f"Tool execution error ({self.name}): {message}",
            content_type="text",
            error_code=error_code,
            metadata={"tool_name": self.name, "error_type": type(error).__name__},
        )
