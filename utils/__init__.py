"""Utility helpers for the Gemini Media MCP Server."""
