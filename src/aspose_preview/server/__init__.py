"""Viewer-facing HTTP and WebSocket server."""

from __future__ import annotations

from aspose_preview.server.app import ViewerServer, create_app

__all__ = ["ViewerServer", "create_app"]
