"""Tests for the viewer WebSocket endpoint."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest
from aiohttp import WSMsgType
from aiohttp.test_utils import TestClient, TestServer
from tests.helpers.wait import wait_until

from aspose_preview.debug_log import is_debug_enabled
from aspose_preview.events import Notifier, SessionClosed, ShutdownRequested
from aspose_preview.limits import WS_CLOSE_NORMAL
from aspose_preview.server.app import create_app
from aspose_preview.sessions.registry import SessionRegistry

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

pytestmark = pytest.mark.unit


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
async def client(notifier: Notifier) -> AsyncIterator[TestClient]:
    app = create_app(SessionRegistry(), notifier)
    async with TestClient(TestServer(app)) as test_client:
        yield test_client


async def test_connect_greets_and_streams_events(client: TestClient, notifier: Notifier) -> None:
    async with client.ws_connect("/ws") as ws:
        hello = await ws.receive_json(timeout=2)
        assert hello["type"] == "connected"
        assert hello["clientId"]

        await wait_until(lambda: notifier.subscriber_count == 1, description="subscription")
        notifier.publish(SessionClosed("s1"))
        notifier.publish(ShutdownRequested())

        assert await ws.receive_json(timeout=2) == {"type": "session_closed", "sessionId": "s1"}
        assert await ws.receive_json(timeout=2) == {"type": "shutdown"}


async def test_ping_pong(client: TestClient) -> None:
    async with client.ws_connect("/ws") as ws:
        await ws.receive_json(timeout=2)
        await ws.send_json({"type": "ping"})

        assert await ws.receive_json(timeout=2) == {"type": "pong"}


async def test_set_debug_toggles_logging(client: TestClient) -> None:
    async with client.ws_connect("/ws") as ws:
        await ws.receive_json(timeout=2)
        await ws.send_json({"type": "set_debug", "enabled": True})

        assert await ws.receive_json(timeout=2) == {"type": "debug_changed", "enabled": True}
        assert is_debug_enabled()


async def test_bad_messages_do_not_close_the_socket(client: TestClient) -> None:
    async with client.ws_connect("/ws") as ws:
        await ws.receive_json(timeout=2)
        await ws.send_str("{not json")
        await ws.send_json(["not", "an", "object"])
        await ws.send_json({"type": "subscribe", "sessionId": "s1"})
        await ws.send_json({"type": "ping"})

        assert await ws.receive_json(timeout=2) == {"type": "pong"}


async def test_disconnect_unsubscribes(client: TestClient, notifier: Notifier) -> None:
    async with client.ws_connect("/ws") as ws:
        await ws.receive_json(timeout=2)
        await wait_until(lambda: notifier.subscriber_count == 1, description="subscription")

    await wait_until(lambda: notifier.subscriber_count == 0, description="unsubscribe")


async def test_server_shutdown_closes_viewers(notifier: Notifier) -> None:
    app = create_app(SessionRegistry(), notifier)
    client = TestClient(TestServer(app))
    await client.start_server()
    try:
        ws = await client.ws_connect("/ws")
        await ws.receive_json(timeout=2)

        closing = asyncio.create_task(client.server.close())
        message = await ws.receive(timeout=5)
        await closing

        assert message.type is WSMsgType.CLOSE
        assert message.data == WS_CLOSE_NORMAL
    finally:
        await client.close()


async def test_viewer_that_falls_behind_is_disconnected() -> None:
    notifier = Notifier(queue_size=1)
    app = create_app(SessionRegistry(), notifier)
    async with TestClient(TestServer(app)) as client:
        async with client.ws_connect("/ws") as ws:
            await ws.receive_json(timeout=2)
            await wait_until(lambda: notifier.subscriber_count == 1, description="subscription")

            for n in range(3):
                notifier.publish(SessionClosed(f"s{n}"))
            assert notifier.subscriber_count == 0

            message = await ws.receive(timeout=5)

    assert message.type is WSMsgType.CLOSE
    assert message.data == WS_CLOSE_NORMAL
    assert message.extra == "Too slow, reconnect"
