"""
Data models for tool requests and responses
"""

from typing import Any, Literal, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, field_validator


class ToolOutput(BaseModel):
    """Standardized output format for all tools"""

    status: Literal["success", "error"] = "success"
    content: Optional[str] = Field(None, description="The main content/response from the tool")
    content_type: Literal["text", "markdown", "json"] = "text"
    error_code: Optional[int] = Field(None, description="JSON-RPC error code when status is 'error'")
    metadata: Optional[dict[str, Any]] = Field(default_factory=dict)


def _is_http_url(value: str) -> bool:
    parsed = urlsplit(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _clean_entries(values: list[str]) -> list[str]:
    cleaned = [value.strip() for value in values]
    if any(not value for value in cleaned):
        raise ValueError("Entries must not be blank.")
    return cleaned


class MediaRequest(BaseModel):
    """Fields shared by every media analysis tool."""

    prompt: Optional[str] = Field(
        None,
        description="Instructions for the analysis. A detailed general description is produced when omitted.",
    )

    @field_validator("prompt")
    @classmethod
    def _strip_prompt(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class AnalyzeImageRequest(MediaRequest):
    image_urls: list[str] = Field(
        ...,
        min_length=1,
        description="Image URLs (http/https) or base64 data URIs (data:image/...;base64,...).",
    )

    @field_validator("image_urls")
    @classmethod
    def _validate_image_urls(cls, values: list[str]) -> list[str]:
        cleaned = _clean_entries(values)
        for value in cleaned:
            if value[:11].lower() == "data:image/":
                continue
            if not _is_http_url(value):
                raise ValueError(f"Provide valid image URLs to analyze: {value[:80]}")
        return cleaned


class AnalyzeImageFromPathRequest(MediaRequest):
    image_paths: list[str] = Field(
        ...,
        min_length=1,
        description=(
            "Local image paths. Absolute paths, ~, $VAR/%VAR% references and file:// URIs are accepted; "
            "relative paths are looked up in the working directory and configured media roots."
        ),
    )

    @field_validator("image_paths")
    @classmethod
    def _validate_image_paths(cls, values: list[str]) -> list[str]:
        return _clean_entries(values)


class AnalyzeVideoRequest(MediaRequest):
    video_urls: list[str] = Field(
        ...,
        min_length=1,
        description="Video URLs (http/https). YouTube links are passed to Gemini by reference.",
    )

    @field_validator("video_urls")
    @classmethod
    def _validate_video_urls(cls, values: list[str]) -> list[str]:
        cleaned = _clean_entries(values)
        for value in cleaned:
            if not _is_http_url(value):
                raise ValueError(f"Provide valid video URLs to analyze: {value[:80]}")
        return cleaned


class AnalyzeVideoFromPathRequest(MediaRequest):
    video_paths: list[str] = Field(
        ...,
        min_length=1,
        description="Local video paths, resolved the same way as image paths.",
    )

    @field_validator("video_paths")
    @classmethod
    def _validate_video_paths(cls, values: list[str]) -> list[str]:
        return _clean_entries(values)


class AnalyzeYouTubeVideoRequest(MediaRequest):
    youtube_url: str = Field(..., description="YouTube video URL.")

    @field_validator("youtube_url")
    @classmethod
    def _validate_youtube_url(cls, value: str) -> str:
        value = value.strip()
        if not _is_http_url(value):
            raise ValueError("A valid YouTube URL is required.")
        return value
