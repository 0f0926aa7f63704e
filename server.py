"""
Gemini Media MCP Server - Main server implementation

This module implements the MCP (Model Context Protocol) server that exposes
Gemini-backed image and video analysis as tools. Clients such as Claude
Desktop or any other MCP host talk to it over stdio.

Key responsibilities:
- Load configuration once at startup (``.env`` plus process environment)
- Register the enabled media tools (``DISABLED_TOOLS`` removes some)
- Route tool calls to their implementations
- Build the Gemini client lazily, on the first call that needs it

stdout carries the protocol, so every log line goes to stderr or the log file.
"""

import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server
from mcp.types import METHOD_NOT_FOUND, TextContent, Tool

from config import SERVER_DESCRIPTION, SERVER_NAME, SERVER_VERSION, ServerOptions, load_server_options
from providers.configuration import LazyAnalyzer
from tools import BaseMediaTool, ToolOutput, build_tools
from tools.base import AnalyzerFactory
from utils.env import get_env, get_env_mapping, reload_env

logger = logging.getLogger(__name__)

LOG_DIR = Path(__file__).resolve().parent / "logs"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
NOISY_LOGGERS = ("httpx", "httpcore", "google_genai", "google.genai", "mcp.server.lowlevel.server")

server: Server = Server(SERVER_NAME, version=SERVER_VERSION, instructions=SERVER_DESCRIPTION)

# Populated by configure_tools(); keyed by tool name in registration order
TOOLS: dict[str, BaseMediaTool] = {}


def configure_logging(level_name: Optional[str] = None) -> None:
    """
    Configure root logging: stderr plus a size-rotated file under ``logs/``.

    Idempotent; calling it again replaces the previously installed handlers.
    """
    level_name = (level_name or get_env("LOG_LEVEL", "INFO") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    root.addHandler(stderr_handler)

    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_DIR / "mcp_server.log",
            maxBytes=20 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    except OSError as e:
        # Read-only installs still get stderr logging
        logger.warning(f"File logging disabled: {e}")

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def configure_tools(options: ServerOptions, get_analyzer: Optional[AnalyzerFactory] = None) -> dict[str, BaseMediaTool]:
    """Register the enabled tools; returns the new registry."""
    if get_analyzer is None:
        get_analyzer = LazyAnalyzer(options, get_env)

    TOOLS.clear()
    TOOLS.update(build_tools(get_analyzer, options.disabled_tools))

    if options.disabled_tools:
        logger.info(f"Disabled tools: {', '.join(sorted(options.disabled_tools))}")
    logger.info(f"Registered tools: {', '.join(TOOLS) or 'none'}")
    return TOOLS


@server.list_tools()
async def handle_list_tools() -> list[Tool]:
    """List the enabled tools with their JSON input schemas."""
    logger.debug("MCP client requested tool list")
    return [tool.to_mcp_tool() for tool in TOOLS.values()]


@server.call_tool()
async def handle_call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Route a tool call; the reply is always a single ``ToolOutput`` JSON text."""
    logger.info(f"MCP tool call: {name}")

    tool = TOOLS.get(name)
    if tool is None:
        output = ToolOutput(
            status="error",
            content=f"Unknown tool: {name}",
            error_code=METHOD_NOT_FOUND,
            metadata={"available_tools": list(TOOLS)},
        )
        return [TextContent(type="text", text=output.model_dump_json())]

    result = await tool.execute(arguments or {})
    logger.info(f"Tool '{name}' execution completed")
    return result


async def main() -> None:
    """Load configuration, register tools and serve MCP over stdio."""
    reload_env()
    configure_logging()

    options = load_server_options(get_env_mapping())
    logger.info(f"{SERVER_NAME} v{SERVER_VERSION} starting | model={options.model_name}")
    configure_tools(options)

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            InitializationOptions(
                server_name=SERVER_NAME,
                server_version=SERVER_VERSION,
                capabilities=server.get_capabilities(
                    notification_options=NotificationOptions(),
                    experimental_capabilities={},
                ),
            ),
        )


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Server stopped by user")


if __name__ == "__main__":
    run()
