"""
Gemini credential resolution and client construction.

Both the MCP server and the direct tool runner build their ``genai.Client``
through ``create_genai_client`` so they share one source of truth for which
environment variables hold the API key.
"""

import logging
from typing import Any, Callable, Optional

from google import genai
from google.genai import types

from config import ServerOptions

from .gemini_media import GeminiMediaAnalyzer

logger = logging.getLogger(__name__)

# Checked in order; placeholders from .env.example are treated as unset
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")
PLACEHOLDER_API_KEYS = {"your_gemini_api_key_here", "your_google_api_key_here"}


class MissingCredentialsError(RuntimeError):
    """No usable Gemini API key is configured."""


def resolve_api_key(get_env: Callable[[str, Optional[str]], Optional[str]]) -> str:
    """
    Return the first configured API key.

    Args:
        get_env: Environment lookup (e.g., os.getenv or utils.env.get_env)

    Raises:
        MissingCredentialsError: If none of the variables holds a real key
    """
    for env_key in API_KEY_ENV_VARS:
        api_key = (get_env(env_key, None) or "").strip()
        if api_key and api_key not in PLACEHOLDER_API_KEYS:
            logger.debug(f"Using Gemini API key from {env_key}")
            return api_key

    raise MissingCredentialsError(
        "A Gemini API key is required. Please set GEMINI_API_KEY (or GOOGLE_API_KEY) "
        "in the environment or in the .env file."
    )


def create_genai_client(
    get_env: Callable[[str, Optional[str]], Optional[str]],
    *,
    base_url: Optional[str] = None,
) -> genai.Client:
    """Build a ``genai.Client`` from the configured key (and optional endpoint override)."""
    api_key = resolve_api_key(get_env)
    base_url = base_url or get_env("GEMINI_BASE_URL", None)

    if base_url:
        logger.debug("Initializing Gemini client with base_url=%s", base_url)
        return genai.Client(api_key=api_key, http_options=types.HttpOptions(base_url=base_url))
    return genai.Client(api_key=api_key)


class LazyAnalyzer:
    """
    Builds the shared ``GeminiMediaAnalyzer`` on first use and caches it.

    Credentials are only checked when a tool actually needs the analyzer, so
    the server can start (and list its tools) without an API key.
    """

    def __init__(
        self,
        options: ServerOptions,
        get_env: Callable[[str, Optional[str]], Optional[str]],
        client_factory: Callable[..., Any] = create_genai_client,
    ):
        self._options = options
        self._get_env = get_env
        self._client_factory = client_factory
        self._analyzer: Optional[GeminiMediaAnalyzer] = None

    def __call__(self) -> GeminiMediaAnalyzer:
        if self._analyzer is None:
            client = self._client_factory(self._get_env)
            self._analyzer = GeminiMediaAnalyzer(client, self._options)
            logger.info(f"Gemini media analyzer ready (model={self._options.model_name})")
        return self._analyzer
