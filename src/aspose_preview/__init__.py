"""Aspose MCP Preview: live document-preview companion for aspose-mcp-server."""

__version__ = "0.1.0"

__all__ = ["__version__"]
