"""MCP tool server exposing Gemini 2.0 Flash image generation."""

__version__ = "1.0.0"
