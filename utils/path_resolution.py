"""Local media path resolution.

Turns a user-supplied path (quoted, ``~``-prefixed, containing environment
references, or a ``file://`` URI) into an absolute path to an existing
regular file. Every failure is logged and reported as ``None``; nothing here
raises on malformed input.

Relative paths are tried against, in order:
1. The current working directory
2. The configured media roots (``GEMINI_MEDIA_ROOTS``)
3. The server install directory

Security gate: when an allow-list is configured the resolved path must sit
inside one of its roots. With no allow-list every path is readable; the
server trusts its local operator.
"""

import logging
import os
import re
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlsplit
from urllib.request import url2pathname

logger = logging.getLogger(__name__)

INSTALL_ROOT = Path(__file__).resolve().parent.parent

_POSIX_VAR_PATTERN = re.compile(r"\$(\w+)|\$\{([^}]+)\}")
_WINDOWS_VAR_PATTERN = re.compile(r"%([^%]+)%")
_FILE_URI_PATTERN = re.compile(r"^file://", re.IGNORECASE)


def strip_quotes(value: str) -> str:
    candidate = value.strip()
    if len(candidate) >= 2 and candidate[0] == candidate[-1] and candidate[0] in {'"', "'"}:
        return candidate[1:-1].strip()
    return candidate


def expand_environment_variables(value: str, env: Optional[Mapping[str, str]] = None) -> str:
    """Expand ``$VAR``, ``${VAR}`` and ``%VAR%``; unknown names are left as written."""
    environ = os.environ if env is None else env

    def _replace_posix(match: re.Match) -> str:
        key = match.group(1) or match.group(2)
        return environ.get(key, match.group(0))

    def _replace_windows(match: re.Match) -> str:
        return environ.get(match.group(1), match.group(0))

    result = _POSIX_VAR_PATTERN.sub(_replace_posix, value)
    return _WINDOWS_VAR_PATTERN.sub(_replace_windows, result)


def file_uri_to_path(uri: str) -> Optional[str]:
    """Decode a ``file://`` URI into a filesystem path, or None if malformed."""
    try:
        parts = urlsplit(uri)
    except ValueError as e:
        logger.warning(f"Invalid file URL supplied: {uri}. {e}")
        return None

    if parts.netloc and parts.netloc.lower() != "localhost":
        logger.warning(f"Invalid file URL supplied: {uri}. Remote hosts are not supported.")
        return None

    if not parts.path:
        logger.warning(f"Invalid file URL supplied: {uri}. The URL has no path.")
        return None

    return url2pathname(unquote(parts.path))


def normalize_path_input(raw: str, env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Apply the textual normalization steps without touching the filesystem."""
    if not isinstance(raw, str):
        return None

    candidate = strip_quotes(raw)
    if not candidate:
        return None

    if _FILE_URI_PATTERN.match(candidate):
        return file_uri_to_path(candidate)

    candidate = expand_environment_variables(candidate, env)

    if candidate.startswith("~"):
        expanded = os.path.expanduser(candidate)
        if expanded.startswith("~"):
            logger.warning(f"Cannot resolve '~' in path {raw} because the home directory is unknown.")
            return None
        candidate = expanded

    return candidate


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


def _is_regular_file(path: Path) -> bool:
    # is_file() still raises for ENAMETOOLONG, EACCES and similar
    try:
        return path.is_file()
    except OSError as e:
        logger.debug(f"Cannot inspect {path}: {e}")
        return False


def _resolve_or_none(path: Path) -> Optional[Path]:
    try:
        return path.resolve()
    except (OSError, RuntimeError, ValueError) as e:
        logger.debug(f"Cannot resolve {path}: {e}")
        return None


def is_path_allowed(path: Path, allowed_roots: Sequence[Path]) -> bool:
    """Check a resolved path against the allow-list (empty list allows all)."""
    if not allowed_roots:
        return True
    resolved = _resolve_or_none(path)
    if resolved is None:
        return False
    roots = [_resolve_or_none(Path(root).expanduser()) for root in allowed_roots]
    return any(root is not None and _is_within(resolved, root) for root in roots)


def candidate_paths(normalized: str, search_roots: Iterable[Path] = ()) -> list[Path]:
    """Absolute candidates for a normalized path, in lookup order."""
    path = Path(normalized)
    if path.is_absolute():
        return [path]

    bases: list[Path] = [Path.cwd(), *[Path(root).expanduser() for root in search_roots], INSTALL_ROOT]
    candidates: list[Path] = []
    for base in bases:
        candidate = (base / path).absolute()
        if candidate not in candidates:
            candidates.append(candidate)
    return candidates


def resolve_local_path(
    raw: str,
    *,
    search_roots: Iterable[Path] = (),
    allowed_roots: Sequence[Path] = (),
    env: Optional[Mapping[str, str]] = None,
) -> Optional[Path]:
    """Resolve a user-supplied path to an existing, permitted regular file.

    Args:
        raw: Path as typed by the caller
        search_roots: Extra base directories for relative paths
        allowed_roots: Allow-list of directories; empty allows every path
        env: Environment used for variable expansion (defaults to os.environ)

    Returns:
        Absolute, normalized path, or None when the path cannot be used
    """
    normalized = normalize_path_input(raw, env)
    if not normalized:
        logger.warning(f"Could not interpret local path: {raw!r}")
        return None

    attempted = candidate_paths(normalized, search_roots)
    match = next((candidate for candidate in attempted if _is_regular_file(candidate)), None)
    if match is None:
        tried = ", ".join(str(candidate) for candidate in attempted)
        logger.warning(f"Local file not found for {raw!r}. Tried: {tried}")
        return None

    resolved = Path(os.path.normpath(match))
    if not is_path_allowed(resolved, allowed_roots):
        logger.warning(f"Local path {resolved} is outside the allowed directories; refusing to read it.")
        return None

    if resolved != Path(os.path.normpath(Path(normalized))):
        logger.debug(f"Resolved local path {raw!r} -> {resolved}")
    return resolved
