"""MCP server exposing Amadeus flight search to AI agents."""

__version__ = "1.0.0"
