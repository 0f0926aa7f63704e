#!/usr/bin/env python3
"""
Media Tool Runner - CLI entry point for calling the media tools directly.

Runs a single tool without starting the MCP server and prints the
``ToolOutput`` JSON it produces. Exit code is 0 on success, 1 on error.

Usage:
    python media_tool_runner.py --tool analyze_image --input '{"image_urls": ["https://..."]}'
    echo '{"youtube_url": "https://youtu.be/..."}' | python media_tool_runner.py --tool analyze_youtube_video
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

# Fields holding local paths; relative entries are resolved against the caller's cwd
PATH_FIELDS = ("image_paths", "video_paths")


def resolve_project_root() -> Path:
    """
    Resolve the server root directory.

    Priority:
    1. GEMINI_MEDIA_SERVER_ROOT environment variable
    2. Parent of this script's directory (development mode)
    """
    env_root = os.getenv("GEMINI_MEDIA_SERVER_ROOT")
    if env_root:
        root = Path(env_root).expanduser().resolve()
        if root.exists():
            return root

    dev_root = Path(__file__).resolve().parent.parent
    if (dev_root / "server.py").exists():
        return dev_root

    raise RuntimeError(
        "Cannot find the Gemini Media MCP Server root. "
        "Set GEMINI_MEDIA_SERVER_ROOT or run from the project directory."
    )


def setup_environment(root: Path) -> None:
    """Put the project on sys.path and keep logging quiet so stdout stays clean JSON."""
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)

    log_level = os.environ.get("GEMINI_MEDIA_RUNNER_LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, log_level, logging.WARNING)
    logging.basicConfig(level=level, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")
    for logger_name in ("httpx", "httpcore", "google_genai", "utils", "tools", "providers"):
        logging.getLogger(logger_name).setLevel(level)


def load_payload(input_arg: str | None) -> dict:
    """
    Load the input payload from argument or stdin.

    Args:
        input_arg: JSON string or path to a JSON file

    Returns:
        Parsed dictionary payload
    """
    if input_arg:
        input_arg = input_arg.strip()

        # Long JSON strings must not be probed as file names
        if input_arg.startswith("{"):
            return json.loads(input_arg)

        try:
            if Path(input_arg).is_file():
                return json.loads(Path(input_arg).read_text(encoding="utf-8"))
        except OSError:
            pass

        return json.loads(input_arg)

    if not sys.stdin.isatty():
        data = sys.stdin.read().strip()
        if data:
            return json.loads(data)

    raise ValueError("No input provided. Use --input '{...}' or pipe JSON to stdin.")


def normalize_path_fields(payload: dict, base_dir: Path) -> dict:
    """Make relative local paths absolute against ``base_dir``; URIs and ``~`` are left alone."""
    for field in PATH_FIELDS:
        values = payload.get(field)
        if not isinstance(values, list):
            continue
        normalized = []
        for value in values:
            if isinstance(value, str) and value.strip() and not _looks_special(value.strip()):
                path = Path(value.strip())
                normalized.append(str(path if path.is_absolute() else (base_dir / path)))
            else:
                normalized.append(value)
        payload[field] = normalized
    return payload


def _looks_special(value: str) -> bool:
    return value.startswith(("~", "$", "%", '"', "'")) or value.lower().startswith("file://")


def _is_error_response(text: str) -> bool:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return False
    return isinstance(data, dict) and data.get("status") == "error"


async def execute_tool(tool_name: str, payload: dict) -> tuple[str, bool]:
    """
    Run one tool with the given payload.

    Returns:
        Tuple of (ToolOutput JSON string, success boolean)
    """
    from config import load_server_options
    from providers.configuration import LazyAnalyzer
    from tools import ToolOutput, build_tools
    from utils.env import get_env, get_env_mapping

    options = load_server_options(get_env_mapping())
    tools = build_tools(LazyAnalyzer(options, get_env), options.disabled_tools)

    tool = tools.get(tool_name)
    if tool is None:
        available = ", ".join(tools) or "none"
        output = ToolOutput(status="error", content=f"Unknown or disabled tool: {tool_name}. Available: {available}")
        return output.model_dump_json(), False

    result = await tool.execute(payload)
    if not result:
        return ToolOutput(status="error", content="No response from tool").model_dump_json(), False

    text = result[0].text
    return text, not _is_error_response(text)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run a Gemini media tool directly, without the MCP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --tool analyze_image --input '{"image_urls": ["https://example.com/cat.png"]}'
  %(prog)s --tool analyze_video_from_path --input payload.json
  echo '{"youtube_url": "https://youtu.be/abc"}' | %(prog)s --tool analyze_youtube_video
""",
    )
    parser.add_argument("--tool", required=True, help="Tool name, e.g. analyze_image")
    parser.add_argument("--input", help="JSON payload, or a path to a JSON file (default: stdin)")
    args = parser.parse_args()

    original_cwd = Path.cwd()
    setup_environment(resolve_project_root())

    try:
        payload = load_payload(args.input)
    except (ValueError, json.JSONDecodeError) as e:
        print(json.dumps({"status": "error", "content": f"Invalid input: {e}", "content_type": "text"}))
        return 1

    if not isinstance(payload, dict):
        print(json.dumps({"status": "error", "content": "Input must be a JSON object", "content_type": "text"}))
        return 1

    payload = normalize_path_fields(payload, original_cwd)
    text, success = asyncio.run(execute_tool(args.tool, payload))
    print(text)
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
