"""Pocket Network wallet and Morse-to-Shannon migration MCP server."""

__version__ = "0.1.0"
