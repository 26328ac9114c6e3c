"""WebSocket endpoint that streams notifier events to viewers."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from aiohttp import WSMsgType, web

from aspose_preview.debug_log import is_debug_enabled, set_debug
from aspose_preview.limits import WS_CLOSE_NORMAL, WS_DRAIN_TIMEOUT_SECONDS
from aspose_preview.server.state import FORWARDERS_KEY, NOTIFIER_KEY, SOCKETS_KEY

if TYPE_CHECKING:
    from aspose_preview.events import Subscription

logger = logging.getLogger(__name__)


async def websocket_handler(request: web.Request) -> web.WebSocketResponse:
    """Accept a viewer, forward events to it and answer its control messages."""
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    client_id = uuid4().hex[:8]
    sockets = request.app[SOCKETS_KEY]
    notifier = request.app[NOTIFIER_KEY]
    logger.info("WebSocket client connected: %s", client_id)
    sockets.add(ws)

    await ws.send_json(
        {
            "type": "connected",
            "clientId": client_id,
            "timestamp": datetime.now(UTC).isoformat(),
        }
    )

    subscription = notifier.subscribe()
    forwarder = asyncio.create_task(
        _forward_events(ws, subscription),
        name=f"ws-forward-{client_id}",
    )
    forwarders = request.app[FORWARDERS_KEY]
    forwarders.add(forwarder)
    forwarder.add_done_callback(forwarders.discard)
    try:
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                await _handle_client_message(ws, msg.data)
            elif msg.type == WSMsgType.ERROR:
                logger.error("WebSocket error for client %s: %s", client_id, ws.exception())
    finally:
        notifier.unsubscribe(subscription)
        forwarder.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await forwarder
        sockets.discard(ws)
        logger.info("WebSocket client disconnected: %s", client_id)

    return ws


async def _forward_events(ws: web.WebSocketResponse, subscription: Subscription) -> None:
    try:
        async for event in subscription:
            if ws.closed:
                return
            await ws.send_json(event.to_wire())
    except (ConnectionError, RuntimeError) as exc:
        logger.debug("Stopped forwarding events: %s", exc)
        return
    finally:
        subscription.close()

    # The notifier ended the stream: this viewer fell behind or the server is stopping.
    if ws.closed:
        return
    if subscription.dropped:
        logger.warning("Closing WebSocket of a viewer that fell behind")
        reason = b"Too slow, reconnect"
    else:
        reason = b"Server shutting down"
    with contextlib.suppress(ConnectionError, RuntimeError):
        await ws.close(code=WS_CLOSE_NORMAL, message=reason)


async def _handle_client_message(ws: web.WebSocketResponse, raw: str) -> None:
    try:
        message: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse WebSocket message: %s", exc)
        return
    if not isinstance(message, dict):
        logger.debug("Ignoring non-object WebSocket message")
        return

    match message.get("type"):
        case "ping":
            await ws.send_json({"type": "pong"})
        case "subscribe":
            logger.debug("Client subscribed to session: %s", message.get("sessionId"))
        case "set_debug":
            enabled = bool(message.get("enabled"))
            set_debug(enabled)
            logger.info("Debug mode %s by client", "enabled" if enabled else "disabled")
            await ws.send_json({"type": "debug_changed", "enabled": is_debug_enabled()})
        case other:
            logger.debug("Unknown client message type: %s", other)


async def close_all_websockets(app: web.Application) -> None:
    """``on_shutdown`` hook: let forwarders flush, then close every viewer connection."""
    app[NOTIFIER_KEY].close_all()
    forwarders = app[FORWARDERS_KEY]
    if forwarders:
        _, pending = await asyncio.wait(list(forwarders), timeout=WS_DRAIN_TIMEOUT_SECONDS)
        if pending:
            logger.warning("%d event forwarder(s) still busy at shutdown", len(pending))
    for ws in list(app[SOCKETS_KEY]):
        with contextlib.suppress(ConnectionError, RuntimeError):
            await ws.close(code=WS_CLOSE_NORMAL, message=b"Server shutting down")
    logger.info("All WebSocket connections closed")


__all__ = ["close_all_websockets", "websocket_handler"]
