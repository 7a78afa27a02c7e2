"""Todo MCP server: authenticated todo commands with an OAuth login flow."""

__version__ = "1.0.0"
