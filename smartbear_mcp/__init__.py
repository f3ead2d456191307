"""SmartBear MCP server: exposes backend product APIs as MCP tools and resources."""

__version__ = "0.1.0"
