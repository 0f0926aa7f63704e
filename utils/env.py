"""Environment access with ``.env`` support.

The ``.env`` file at the project root (or the path in ``GEMINI_MEDIA_ENV_FILE``)
is read once. Values already present in the process environment win, unless
``GEMINI_MEDIA_FORCE_ENV_OVERRIDE`` is true, in which case the file wins.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

_dotenv_cache: Optional[dict[str, str]] = None


def _env_file() -> Path:
    override = os.environ.get("GEMINI_MEDIA_ENV_FILE")
    if override:
        return Path(override).expanduser()
    return _PROJECT_ROOT / ".env"


def _load_dotenv() -> dict[str, str]:
    global _dotenv_cache
    if _dotenv_cache is None:
        path = _env_file()
        if path.is_file():
            values = dotenv_values(path)
            _dotenv_cache = {key: value for key, value in values.items() if value is not None}
            logger.debug(f"Loaded {len(_dotenv_cache)} value(s) from {path}")
        else:
            _dotenv_cache = {}
    return _dotenv_cache


def _force_override() -> bool:
    flag = os.environ.get("GEMINI_MEDIA_FORCE_ENV_OVERRIDE", "")
    return flag.strip().lower() in {"1", "true", "yes", "on"}


def get_env(key: str, default: Optional[str] = None) -> Optional[str]:
    """Return an environment value, consulting ``.env`` as described above."""
    file_values = _load_dotenv()

    if _force_override() and key in file_values:
        return file_values[key]

    value = os.environ.get(key)
    if value is not None:
        return value

    return file_values.get(key, default)


def get_env_mapping() -> dict[str, str]:
    """Merged view of ``.env`` and the process environment."""
    file_values = _load_dotenv()
    if _force_override():
        return {**os.environ, **file_values}
    return {**file_values, **os.environ}


def reload_env() -> None:
    """Drop the cached ``.env`` contents so the next lookup re-reads the file."""
    global _dotenv_cache
    _dotenv_cache = None
