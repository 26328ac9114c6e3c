"""Tests for the ViewerServer lifecycle."""

from __future__ import annotations

import asyncio

import aiohttp
import pytest
from tests.helpers.protocol import HANDSHAKE, TEST_IDENTITY, ResponseSink, json_line
from tests.helpers.wait import wait_until

from aspose_preview.config import PreviewConfig
from aspose_preview.events import Notifier
from aspose_preview.host import PreviewHost
from aspose_preview.protocol.emitter import ResponseEmitter
from aspose_preview.protocol.transport.shm import UnsupportedRegionReader
from aspose_preview.server.app import ViewerServer
from aspose_preview.sessions.registry import SessionRegistry

pytestmark = pytest.mark.integration


@pytest.fixture
def config() -> PreviewConfig:
    return PreviewConfig(host="127.0.0.1", port=0, no_open=True)


async def test_start_serves_health_and_stop_is_idempotent(config: PreviewConfig) -> None:
    notifier = Notifier()
    subscription = notifier.subscribe()
    server = ViewerServer(config, SessionRegistry(), notifier)

    url = await server.start()
    try:
        assert server.is_running
        assert not url.endswith(":0")
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{url}/api/health") as response:
                assert response.status == 200
                assert (await response.json())["status"] == "ok"
    finally:
        await server.stop()
        await server.stop()

    assert not server.is_running
    assert subscription.closed


async def test_start_twice_is_rejected(config: PreviewConfig) -> None:
    server = ViewerServer(config, SessionRegistry(), Notifier())
    await server.start()
    try:
        with pytest.raises(RuntimeError, match="already running"):
            await server.start()
    finally:
        await server.stop()


async def test_port_in_use_raises_os_error(config: PreviewConfig) -> None:
    first = ViewerServer(config, SessionRegistry(), Notifier())
    url = await first.start()
    try:
        port = int(url.rsplit(":", 1)[1])
        second = ViewerServer(
            PreviewConfig(host="127.0.0.1", port=port), SessionRegistry(), Notifier()
        )
        with pytest.raises(OSError):
            await second.start()
        assert not second.is_running
    finally:
        await first.stop()


class _QueueReader:
    """Producer stream fed by the test one chunk at a time."""

    def __init__(self) -> None:
        self.chunks: asyncio.Queue[bytes] = asyncio.Queue()

    async def read(self, n: int = -1) -> bytes:
        del n
        return await self.chunks.get()


async def test_shutdown_message_reaches_connected_viewer(
    config: PreviewConfig, sink: ResponseSink
) -> None:
    registry = SessionRegistry()
    notifier = Notifier()
    server = ViewerServer(config, registry, notifier)
    host = PreviewHost(
        config,
        registry=registry,
        notifier=notifier,
        emitter=ResponseEmitter(sink, identity=TEST_IDENTITY),
        viewer=server,
        region_reader=UnsupportedRegionReader("TestOS"),
    )
    reader = _QueueReader()
    running = asyncio.create_task(host.run(reader))
    reader.chunks.put_nowait(HANDSHAKE)
    await wait_until(lambda: server.is_running, description="viewer start")

    frames = []
    async with aiohttp.ClientSession() as session:
        async with session.ws_connect(f"{server.url}/ws") as ws:
            assert (await ws.receive_json(timeout=2))["type"] == "connected"
            await wait_until(lambda: notifier.subscriber_count == 1, description="subscription")

            reader.chunks.put_nowait(json_line(type="shutdown"))
            message = await ws.receive(timeout=5)
            while message.type is aiohttp.WSMsgType.TEXT:
                frames.append(message.json())
                message = await ws.receive(timeout=5)

    await asyncio.wait_for(running, timeout=5)

    assert message.type is aiohttp.WSMsgType.CLOSE
    assert {"type": "shutdown"} in frames
    assert not server.is_running
