"""Video analysis tools."""

from providers.gemini_media import GeminiMediaAnalyzer

from .base import BaseMediaTool
from .models import AnalyzeVideoFromPathRequest, AnalyzeVideoRequest, AnalyzeYouTubeVideoRequest


class AnalyzeVideoTool(BaseMediaTool):
    name = "analyze_video"
    title = "Analyze Video (URL)"
    description = (
        "Analyzes videos accessible via URLs using Gemini API. "
        "Large downloads are uploaded through the Gemini Files API before analysis."
    )
    request_model = AnalyzeVideoRequest

    async def analyze(self, analyzer: GeminiMediaAnalyzer, request: AnalyzeVideoRequest) -> str:
        return await analyzer.analyze_video_urls(request.video_urls, request.prompt)


class AnalyzeVideoFromPathTool(BaseMediaTool):
    name = "analyze_video_from_path"
    title = "Analyze Video (Local Path)"
    description = "Analyzes videos stored on the server's filesystem using Gemini API."
    request_model = AnalyzeVideoFromPathRequest

    async def analyze(self, analyzer: GeminiMediaAnalyzer, request: AnalyzeVideoFromPathRequest) -> str:
        return await analyzer.analyze_video_paths(request.video_paths, request.prompt)


class AnalyzeYouTubeVideoTool(BaseMediaTool):
    name = "analyze_youtube_video"
    title = "Analyze YouTube Video"
    description = "Analyzes a video directly from a YouTube URL using Gemini API."
    request_model = AnalyzeYouTubeVideoRequest

    async def analyze(self, analyzer: GeminiMediaAnalyzer, request: AnalyzeYouTubeVideoRequest) -> str:
        return await analyzer.analyze_youtube_video(request.youtube_url, request.prompt)
