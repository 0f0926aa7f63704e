"""Gemini media pipeline: sources, request parts, Files API staging and analysis."""
