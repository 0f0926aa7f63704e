"""
Configuration and constants for the Gemini Media MCP Server.

Process-wide settings are read from the environment exactly once, at startup,
into an immutable ``ServerOptions`` value. Components receive that value
explicitly; nothing below the server reads the environment at call time.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from utils.gemini_validators import FILES_API_MAX_FILE_MB, INLINE_DATA_HARD_LIMIT_MB, megabytes_to_bytes

logger = logging.getLogger(__name__)

SERVER_NAME = "gemini-media-mcp-server"
SERVER_VERSION = "1.2.0"
SERVER_DESCRIPTION = "Analyze images and videos with Gemini API."

DEFAULT_MODEL_NAME = "gemini-flash-lite-latest"

KNOWN_TOOL_NAMES: tuple[str, ...] = (
    "analyze_image",
    "analyze_image_from_path",
    "analyze_video",
    "analyze_video_from_path",
    "analyze_youtube_video",
)

# Media handling defaults
DEFAULT_INLINE_LIMIT_MB = INLINE_DATA_HARD_LIMIT_MB
DEFAULT_MAX_MEDIA_MB = float(FILES_API_MAX_FILE_MB)
DEFAULT_FETCH_TIMEOUT_SECONDS = 60.0

# Files API polling
DEFAULT_POLL_INTERVAL_SECONDS = 2.0
MAX_POLL_INTERVAL_SECONDS = 60.0
DEFAULT_POLL_MAX_ATTEMPTS = 60

# Environment variable names, first match wins
MODEL_ENV_VARS = ("GEMINI_MODEL", "GEMINI_MODEL_NAME", "MCP_GEMINI_MODEL", "GOOGLE_GEMINI_MODEL")
DISABLED_TOOLS_ENV_VARS = ("DISABLED_TOOLS", "MCP_DISABLED_TOOLS", "MCP_DISABLED_TOOL", "GEMINI_DISABLED_TOOLS")
MEDIA_ROOTS_ENV_VARS = ("GEMINI_MEDIA_ROOTS", "MCP_MEDIA_ROOTS")


@dataclass(frozen=True)
class ServerOptions:
    """Immutable process configuration consumed by the media pipeline.

    ``allowed_roots`` empty means every local path is readable. That is the
    deliberate default: the server runs on behalf of a trusted local operator.
    Set ``GEMINI_ALLOWED_PATHS`` to confine local reads.
    """

    model_name: str = DEFAULT_MODEL_NAME
    disabled_tools: frozenset[str] = frozenset()
    inline_size_limit_bytes: int = megabytes_to_bytes(DEFAULT_INLINE_LIMIT_MB)
    max_media_size_bytes: int = megabytes_to_bytes(DEFAULT_MAX_MEDIA_MB)
    upload_local_files: bool = True
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    poll_max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS
    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    media_roots: tuple[Path, ...] = field(default_factory=tuple)
    allowed_roots: tuple[Path, ...] = field(default_factory=tuple)


def _first_value(env: Mapping[str, str], names: tuple[str, ...]) -> Optional[str]:
    for name in names:
        value = env.get(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def parse_list(value: Optional[str]) -> list[str]:
    """Parse a JSON array or a ``,``/``;``/newline separated list."""
    if not value:
        return []

    trimmed = value.strip()
    if not trimmed:
        return []

    if trimmed.startswith("["):
        try:
            parsed = json.loads(trimmed)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse list value as JSON. Falling back to delimiter parsing. {e}")

    segments = trimmed.replace(";", ",").replace("\n", ",").split(",")
    return [segment.strip() for segment in segments if segment.strip()]


def parse_disabled_tools(raw: Optional[str]) -> frozenset[str]:
    disabled = set()
    for entry in parse_list(raw):
        normalized = entry.lower()
        if normalized in KNOWN_TOOL_NAMES:
            disabled.add(normalized)
        else:
            logger.warning(f"Ignoring unknown tool name in disabled tools configuration: {entry}")
    return frozenset(disabled)


def _parse_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid %s value '%s'; using default %s.", name, raw, default)
        return default


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid %s value '%s'; using default %s.", name, raw, default)
        return default


def _parse_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _parse_paths(raw: Optional[str]) -> tuple[Path, ...]:
    return tuple(Path(entry).expanduser() for entry in parse_list(raw))


def load_server_options(env: Mapping[str, str]) -> ServerOptions:
    """Build ``ServerOptions`` from an environment mapping.

    Malformed values are logged and replaced by their defaults; loading never
    fails.
    """
    model_name = _first_value(env, MODEL_ENV_VARS) or DEFAULT_MODEL_NAME

    inline_limit_mb = _parse_float(env, "GEMINI_INLINE_LIMIT_MB", DEFAULT_INLINE_LIMIT_MB)
    if inline_limit_mb <= 0:
        logger.warning("GEMINI_INLINE_LIMIT_MB must be positive; using default %s.", DEFAULT_INLINE_LIMIT_MB)
        inline_limit_mb = DEFAULT_INLINE_LIMIT_MB

    max_media_mb = _parse_float(env, "GEMINI_MAX_MEDIA_MB", DEFAULT_MAX_MEDIA_MB)
    if max_media_mb <= 0:
        logger.warning("GEMINI_MAX_MEDIA_MB must be positive; using default %s.", DEFAULT_MAX_MEDIA_MB)
        max_media_mb = DEFAULT_MAX_MEDIA_MB

    poll_interval = _parse_float(env, "GEMINI_FILE_POLL_INTERVAL", DEFAULT_POLL_INTERVAL_SECONDS)
    poll_interval = min(max(poll_interval, 0.0), MAX_POLL_INTERVAL_SECONDS)

    poll_max_attempts = _parse_int(env, "GEMINI_FILE_POLL_MAX_ATTEMPTS", DEFAULT_POLL_MAX_ATTEMPTS)
    if poll_max_attempts < 1:
        logger.warning("GEMINI_FILE_POLL_MAX_ATTEMPTS must be at least 1; using 1.")
        poll_max_attempts = 1

    fetch_timeout = _parse_float(env, "GEMINI_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT_SECONDS)
    if fetch_timeout <= 0:
        fetch_timeout = DEFAULT_FETCH_TIMEOUT_SECONDS

    return ServerOptions(
        model_name=model_name,
        disabled_tools=parse_disabled_tools(_first_value(env, DISABLED_TOOLS_ENV_VARS)),
        inline_size_limit_bytes=megabytes_to_bytes(inline_limit_mb),
        max_media_size_bytes=megabytes_to_bytes(max_media_mb),
        upload_local_files=_parse_bool(env, "GEMINI_UPLOAD_LOCAL_FILES", True),
        poll_interval_seconds=poll_interval,
        poll_max_attempts=poll_max_attempts,
        fetch_timeout_seconds=fetch_timeout,
        media_roots=_parse_paths(_first_value(env, MEDIA_ROOTS_ENV_VARS)),
        allowed_roots=_parse_paths(env.get("GEMINI_ALLOWED_PATHS")),
    )
