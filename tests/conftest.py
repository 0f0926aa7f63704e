"""
Pytest configuration for Gemini Media MCP Server tests
"""

import os
import sys
from pathlib import Path

import pytest

# Ensure the parent directory is in the Python path for imports
parent_dir = Path(__file__).resolve().parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

# Keep a developer's .env out of the test run
os.environ["GEMINI_MEDIA_ENV_FILE"] = str(parent_dir / "tests" / ".env.does-not-exist")

from tests.media_helpers import make_genai_client, make_options  # noqa: E402


@pytest.fixture
def options():
    return make_options()


@pytest.fixture
def genai_client():
    return make_genai_client()


@pytest.fixture(autouse=True)
def _clean_gemini_env(monkeypatch):
    """Tests never see real credentials or configuration from the shell."""
    for key in list(os.environ):
        if key.startswith(("GEMINI_", "GOOGLE_", "MCP_")) and key != "GEMINI_MEDIA_ENV_FILE":
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("DISABLED_TOOLS", raising=False)

    from utils.env import reload_env

    reload_env()
    yield
    reload_env()
