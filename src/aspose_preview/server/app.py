"""aiohttp application factory and viewer server lifecycle."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from aiohttp import web

from aspose_preview.server.routes import routes
from aspose_preview.server.state import (
    FORWARDERS_KEY,
    NOTIFIER_KEY,
    REGISTRY_KEY,
    SOCKETS_KEY,
    STARTED_AT_KEY,
)
from aspose_preview.server.websocket import close_all_websockets, websocket_handler

if TYPE_CHECKING:
    from aspose_preview.config import PreviewConfig
    from aspose_preview.events import Notifier
    from aspose_preview.sessions.registry import SessionRegistry

logger = logging.getLogger(__name__)


def create_app(registry: SessionRegistry, notifier: Notifier) -> web.Application:
    """Build the viewer application over *registry* and *notifier*."""
    app = web.Application()
    app[REGISTRY_KEY] = registry
    app[NOTIFIER_KEY] = notifier
    app[STARTED_AT_KEY] = time.monotonic()
    app[SOCKETS_KEY] = set()
    app[FORWARDERS_KEY] = set()

    app.add_routes(routes)
    app.router.add_get("/ws", websocket_handler)
    app.on_shutdown.append(close_all_websockets)
    logger.debug("Viewer application created")
    return app


class ViewerServer:
    """HTTP + WebSocket server for browser viewers.

    Usage::

        server = ViewerServer(config, registry, notifier)
        await server.start()
        ...
        await server.stop()
    """

    def __init__(
        self,
        config: PreviewConfig,
        registry: SessionRegistry,
        notifier: Notifier,
    ) -> None:
        self._config = config
        self._registry = registry
        self._notifier = notifier
        self._runner: web.AppRunner | None = None
        self._url = config.url

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    @property
    def url(self) -> str:
        """Viewer URL; reflects the bound port once started (port 0 picks a free one)."""
        return self._url

    async def start(self) -> str:
        """Start listening and return the viewer URL."""
        if self._runner is not None:
            msg = "Viewer server is already running"
            raise RuntimeError(msg)

        runner = web.AppRunner(create_app(self._registry, self._notifier))
        await runner.setup()
        site = web.TCPSite(runner, self._config.host, self._config.port)
        try:
            await site.start()
        except OSError as exc:
            logger.error(
                "Failed to start server on %s:%d: %s", self._config.host, self._config.port, exc
            )
            await runner.cleanup()
            raise

        self._runner = runner
        if runner.addresses:
            port = runner.addresses[0][1]
            self._url = f"http://{self._config.host}:{port}"
        logger.info("Server started at %s", self._url)
        return self._url

    async def stop(self) -> None:
        """Close viewer connections and stop listening."""
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        await runner.cleanup()
        logger.info("Server stopped")


__all__ = ["ViewerServer", "create_app"]
