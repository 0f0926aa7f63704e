"""Image analysis tools."""

from providers.gemini_media import GeminiMediaAnalyzer

from .base import BaseMediaTool
from .models import AnalyzeImageFromPathRequest, AnalyzeImageRequest


class AnalyzeImageTool(BaseMediaTool):
    name = "analyze_image"
    title = "Analyze Image (URL)"
    description = (
        "Analyzes images available via URLs using Gemini API. "
        "Accepts http(s) URLs and base64 data URIs; several images are analyzed together in one request."
    )
    request_model = AnalyzeImageRequest

    async def analyze(self, analyzer: GeminiMediaAnalyzer, request: AnalyzeImageRequest) -> str:
        return await analyzer.analyze_image_urls(request.image_urls, request.prompt)


class AnalyzeImageFromPathTool(BaseMediaTool):
    name = "analyze_image_from_path"
    title = "Analyze Image (Local Path)"
    description = (
        "Analyzes images stored on the server's filesystem using Gemini API. "
        "Files that cannot be found or read are skipped."
    )
    request_model = AnalyzeImageFromPathRequest

    async def analyze(self, analyzer: GeminiMediaAnalyzer, request: AnalyzeImageFromPathRequest) -> str:
        return await analyzer.analyze_image_paths(request.image_paths, request.prompt)
