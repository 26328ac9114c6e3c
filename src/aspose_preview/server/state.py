"""Typed application keys shared by the viewer server modules."""

from __future__ import annotations

from aiohttp import web

from aspose_preview.events import Notifier
from aspose_preview.sessions.registry import SessionRegistry

REGISTRY_KEY = web.AppKey("registry", SessionRegistry)
NOTIFIER_KEY = web.AppKey("notifier", Notifier)
STARTED_AT_KEY = web.AppKey("started_at", float)
SOCKETS_KEY = web.AppKey("sockets", set)
FORWARDERS_KEY = web.AppKey("forwarders", set)

__all__ = ["FORWARDERS_KEY", "NOTIFIER_KEY", "REGISTRY_KEY", "SOCKETS_KEY", "STARTED_AT_KEY"]
