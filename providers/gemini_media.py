"""Gemini media analysis built on the official Google SDK."""

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, Optional

from google.genai import types

from config import ServerOptions
from utils.remote_fetch import RemoteFetcher

from .gemini_files import GeminiFileStager, SleepFunc
from .media_parts import MediaPartBuilder, is_youtube_url
from .shared import (
    InlineSource,
    LocalSource,
    MediaKind,
    MediaSource,
    RequestPart,
    StreamingReferenceSource,
    UrlSource,
    describe_source,
)

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_PROMPT = "Analyze the image content in detail and provide an explanation."
DEFAULT_VIDEO_PROMPT = "Analyze the video content in detail and provide an explanation."

NORMAL_FINISH_REASONS = {"STOP", "MAX_TOKENS"}
SAFETY_FINISH_REASONS = {"SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII", "IMAGE_SAFETY"}


class MediaAnalysisError(RuntimeError):
    """Raised when an analysis request cannot produce text."""


def _enum_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    try:
        return value.name
    except AttributeError:
        return str(value)


def _candidate_text(candidate: Any) -> str:
    content = getattr(candidate, "content", None)
    parts = getattr(content, "parts", None) or []
    texts = []
    for part in parts:
        text = getattr(part, "text", None)
        # Thought summaries are not part of the answer
        if isinstance(text, str) and not getattr(part, "thought", False):
            texts.append(text)
    return "".join(texts)


def _blocked_safety_rating(candidate: Any) -> Optional[str]:
    for rating in getattr(candidate, "safety_ratings", None) or []:
        if getattr(rating, "blocked", False):
            category_name = _enum_name(getattr(rating, "category", None)) or "UNKNOWN"
            probability_name = _enum_name(getattr(rating, "probability", None)) or "UNKNOWN"
            return f"Category: {category_name}, Probability: {probability_name}"
    return None


def _prompt_block_reason(response: Any) -> Optional[str]:
    prompt_feedback = getattr(response, "prompt_feedback", None)
    if not prompt_feedback:
        return None
    return _enum_name(getattr(prompt_feedback, "block_reason", None))


def _response_text(response: Any) -> Optional[str]:
    try:
        text = response.text
    except (AttributeError, ValueError):
        return None
    return text if isinstance(text, str) else None


def extract_response_text(response: Any, kind: MediaKind = MediaKind.IMAGE) -> str:
    """Pull the analysis text out of a ``generate_content`` response.

    Priority order:
    1. Non-empty top-level ``response.text``
    2. Text parts of the first candidate, after checking why generation stopped

    A safety block, or an abnormal finish with no text, is an error. An
    abnormal finish that still produced text is only logged: video requests
    often end that way while still returning usable output.

    Raises:
        MediaAnalysisError: If no usable text is available
    """
    candidates = getattr(response, "candidates", None) or []
    first_candidate = candidates[0] if candidates else None
    finish_reason = _enum_name(getattr(first_candidate, "finish_reason", None))
    incomplete_hint = (
        "Output might be incomplete or missing if video processing failed."
        if kind is MediaKind.VIDEO
        else "Output may be incomplete."
    )

    text = _response_text(response)
    if text and text.strip():
        if finish_reason and finish_reason not in NORMAL_FINISH_REASONS:
            logger.warning(f"Gemini API finished with reason: {finish_reason}. {incomplete_hint}")
        return text

    block_reason = _prompt_block_reason(response)
    if block_reason:
        raise MediaAnalysisError(f"Gemini API blocked the prompt: {block_reason}")

    if first_candidate is None:
        raise MediaAnalysisError("Gemini API returned no candidates.")

    safety_details = _blocked_safety_rating(first_candidate)
    if finish_reason in SAFETY_FINISH_REASONS or safety_details:
        details = safety_details or f"finish reason: {finish_reason}"
        raise MediaAnalysisError(f"Gemini API blocked the response for safety reasons ({details}).")

    candidate_text = _candidate_text(first_candidate)
    if finish_reason and finish_reason not in NORMAL_FINISH_REASONS:
        if not candidate_text.strip():
            raise MediaAnalysisError(f"Gemini API stopped ({finish_reason}) and returned no text.")
        logger.warning(f"Gemini API finished with reason: {finish_reason}. {incomplete_hint}")

    if not candidate_text.strip():
        raise MediaAnalysisError("Gemini API returned no text content.")

    return candidate_text


def build_contents(prompt: str, parts: Sequence[RequestPart]) -> list[types.Content]:
    """Single user turn: the prompt first, then every media part."""
    return [
        types.Content(
            role="user",
            parts=[types.Part.from_text(text=prompt), *(part.to_genai() for part in parts)],
        )
    ]


class GeminiMediaAnalyzer:
    """Analyze images and videos with one Gemini request per call.

    Sources are resolved concurrently; sources that cannot be used are
    dropped with a log line, and the surviving parts are sent together with
    the prompt. No state is kept between calls.

    Args:
        client: ``google.genai.Client``
        options: Process configuration (model name, limits, polling)
        fetcher: Remote downloader, defaults to one built from ``options``
        stager: Files API stager, defaults to one built from ``options``
        sleep: Awaitable sleep used by the default stager
    """

    def __init__(
        self,
        client,
        options: ServerOptions,
        *,
        fetcher: Optional[RemoteFetcher] = None,
        stager: Optional[GeminiFileStager] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self._client = client
        self._options = options

        if fetcher is None:
            fetcher = RemoteFetcher(
                timeout=options.fetch_timeout_seconds,
                max_bytes=options.max_media_size_bytes,
            )
        if stager is None:
            stager = GeminiFileStager(
                client,
                poll_interval=options.poll_interval_seconds,
                max_attempts=options.poll_max_attempts,
                sleep=sleep,
            )
        self._builder = MediaPartBuilder(options, fetcher=fetcher, stager=stager)

    @property
    def model_name(self) -> str:
        return self._options.model_name

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def analyze_images(self, sources: Sequence[MediaSource], prompt: Optional[str] = None) -> str:
        return await self._analyze(MediaKind.IMAGE, sources, prompt)

    async def analyze_videos(self, sources: Sequence[MediaSource], prompt: Optional[str] = None) -> str:
        return await self._analyze(MediaKind.VIDEO, sources, prompt)

    async def analyze_image_urls(self, image_urls: Sequence[str], prompt: Optional[str] = None) -> str:
        """URLs may also be ``data:image/...`` URIs, which are sent inline."""
        if not image_urls:
            raise MediaAnalysisError("No image URLs provided.")
        sources: list[MediaSource] = [
            InlineSource(kind=MediaKind.IMAGE, data=url)
            if url.strip()[:5].lower() == "data:"
            else UrlSource(kind=MediaKind.IMAGE, uri=url)
            for url in image_urls
        ]
        return await self.analyze_images(sources, prompt)

    async def analyze_image_paths(self, image_paths: Sequence[str], prompt: Optional[str] = None) -> str:
        if not image_paths:
            raise MediaAnalysisError("No image paths provided.")
        return await self.analyze_images([LocalSource(kind=MediaKind.IMAGE, path=path) for path in image_paths], prompt)

    async def analyze_video_urls(self, video_urls: Sequence[str], prompt: Optional[str] = None) -> str:
        if not video_urls:
            raise MediaAnalysisError("No video URLs provided.")
        sources: list[MediaSource] = [
            StreamingReferenceSource(uri=url) if is_youtube_url(url) else UrlSource(kind=MediaKind.VIDEO, uri=url)
            for url in video_urls
        ]
        return await self.analyze_videos(sources, prompt)

    async def analyze_video_paths(self, video_paths: Sequence[str], prompt: Optional[str] = None) -> str:
        if not video_paths:
            raise MediaAnalysisError("No video paths provided.")
        return await self.analyze_videos([LocalSource(kind=MediaKind.VIDEO, path=path) for path in video_paths], prompt)

    async def analyze_youtube_video(self, youtube_url: str, prompt: Optional[str] = None) -> str:
        if not youtube_url or not youtube_url.strip():
            raise MediaAnalysisError("YouTube URL is required.")
        return await self.analyze_videos([StreamingReferenceSource(uri=youtube_url.strip())], prompt)

    # ------------------------------------------------------------------
    # Request execution
    # ------------------------------------------------------------------

    async def _analyze(self, kind: MediaKind, sources: Sequence[MediaSource], prompt: Optional[str]) -> str:
        if not sources:
            raise MediaAnalysisError(f"No {kind.value} sources provided.")

        if not prompt or not prompt.strip():
            prompt = DEFAULT_IMAGE_PROMPT if kind is MediaKind.IMAGE else DEFAULT_VIDEO_PROMPT

        parts = await self._build_parts(kind, sources)
        if not parts:
            raise MediaAnalysisError(f"No valid {kind.value}s could be processed.")

        logger.info(f"Sending {len(parts)} {kind.value}(s) to {self.model_name} with prompt: {prompt!r}")
        contents = build_contents(prompt, parts)

        try:
            response = await self._client.aio.models.generate_content(model=self.model_name, contents=contents)
        except Exception as exc:
            raise MediaAnalysisError(f"Gemini API {kind.value} analysis error for model {self.model_name}: {exc}") from exc

        return extract_response_text(response, kind)

    async def _build_parts(self, kind: MediaKind, sources: Sequence[MediaSource]) -> list[RequestPart]:
        """Resolve every source concurrently and collect the usable parts.

        All tasks settle before anything is raised, so one failing source
        never cancels its siblings. The first request-fatal error (size limit,
        staging failure) is re-raised afterwards.
        """
        tasks = []
        for index, source in enumerate(sources):
            if source.kind is not kind:
                logger.warning(
                    f"Skipping {source.kind.value} source at index {index} ({describe_source(source)}): "
                    f"expected {kind.value} content"
                )
                continue
            tasks.append(self._builder.build(source, index))

        results = await asyncio.gather(*tasks, return_exceptions=True)

        for result in results:
            if isinstance(result, BaseException):
                raise result

        return [result for result in results if result is not None]
