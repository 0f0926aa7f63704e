"""
Tool implementations for the Gemini Media MCP Server
"""

from .base import AnalyzerFactory, BaseMediaTool
from .image import AnalyzeImageFromPathTool, AnalyzeImageTool
from .models import ToolOutput
from .video import AnalyzeVideoFromPathTool, AnalyzeVideoTool, AnalyzeYouTubeVideoTool

TOOL_CLASSES: tuple[type[BaseMediaTool], ...] = (
    AnalyzeImageTool,
    AnalyzeImageFromPathTool,
    AnalyzeVideoTool,
    AnalyzeVideoFromPathTool,
    AnalyzeYouTubeVideoTool,
)


def build_tools(get_analyzer: AnalyzerFactory, disabled: frozenset[str] = frozenset()) -> dict[str, BaseMediaTool]:
    """Instantiate every enabled tool, keyed by name, in registration order."""
    return {cls.name: cls(get_analyzer) for cls in TOOL_CLASSES if cls.name not in disabled}


__all__ = [
    "AnalyzerFactory",
    "AnalyzeImageFromPathTool",
    "AnalyzeImageTool",
    "AnalyzeVideoFromPathTool",
    "AnalyzeVideoTool",
    "AnalyzeYouTubeVideoTool",
    "BaseMediaTool",
    "TOOL_CLASSES",
    "ToolOutput",
    "build_tools",
]
