"""Preview host: wires the protocol engine to the registry, notifier and viewer server."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from typing import TYPE_CHECKING, Protocol

from aspose_preview.browser import open_browser
from aspose_preview.events import (
    Notifier,
    ProtocolLog,
    SessionClosed,
    SessionUnbound,
    ShutdownRequested,
    SnapshotUpdated,
)
from aspose_preview.limits import STDIN_CHUNK_BYTES
from aspose_preview.protocol.emitter import ResponseEmitter
from aspose_preview.protocol.parser import ProtocolListener, ProtocolParser
from aspose_preview.server.app import ViewerServer
from aspose_preview.sessions.registry import SessionRegistry

if TYPE_CHECKING:
    from typing import BinaryIO

    from aspose_preview.config import PreviewConfig
    from aspose_preview.protocol.errors import ProtocolError
    from aspose_preview.protocol.messages import SnapshotMetadata
    from aspose_preview.protocol.transport.shm import RegionReader

logger = logging.getLogger(__name__)


class ChunkReader(Protocol):
    async def read(self, n: int = -1) -> bytes: ...


class Viewer(Protocol):
    async def start(self) -> str: ...

    async def stop(self) -> None: ...


class _ThreadedReader:
    """Blocking-stream reader for inputs the event loop cannot watch (regular files)."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    async def read(self, n: int = -1) -> bytes:
        return await asyncio.to_thread(self._stream.read1, n)  # type: ignore[attr-defined]


async def open_stdin_reader() -> ChunkReader:
    """Return an async reader over the binary stdin stream."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=STDIN_CHUNK_BYTES)
    protocol = asyncio.StreamReaderProtocol(reader)
    try:
        await loop.connect_read_pipe(lambda: protocol, sys.stdin.buffer)
    except (ValueError, NotImplementedError, OSError) as exc:
        logger.debug("stdin is not a pipe (%s); reading it in a worker thread", exc)
        return _ThreadedReader(sys.stdin.buffer)
    return reader


class PreviewHost(ProtocolListener):
    """Owns one ingestion path and turns protocol callbacks into viewer state.

    Usage::

        host = PreviewHost(config)
        await host.run()  # until stdin closes, shutdown arrives or stop is requested
    """

    def __init__(
        self,
        config: PreviewConfig,
        *,
        registry: SessionRegistry | None = None,
        notifier: Notifier | None = None,
        emitter: ResponseEmitter | None = None,
        viewer: Viewer | None = None,
        region_reader: RegionReader | None = None,
    ) -> None:
        self._config = config
        self._registry = registry or SessionRegistry()
        self._notifier = notifier or Notifier(config.subscriber_queue_size)
        self._viewer = viewer or ViewerServer(config, self._registry, self._notifier)
        self._parser = ProtocolParser(
            self,
            emitter or ResponseEmitter(),
            default_transport=config.transport,
            region_reader=region_reader,
            max_payload_bytes=config.max_payload_bytes,
        )
        self._stop_event = asyncio.Event()
        self._viewer_started = False
        self._stopped = False

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def parser(self) -> ProtocolParser:
        return self._parser

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    # --- ProtocolListener ---------------------------------------------------

    async def on_snapshot(self, metadata: SnapshotMetadata, payload: bytes) -> None:
        logger.debug("Received snapshot for session %s", metadata.session_id)
        self._registry.upsert(metadata.session_id, metadata, payload)

        self._notifier.publish(
            SnapshotUpdated(
                session_id=metadata.session_id,
                document_type=metadata.document_type,
                original_path=metadata.original_path,
                output_format=metadata.output_format,
                timestamp=metadata.timestamp,
            )
        )
        self._notifier.publish(
            ProtocolLog(
                level="info",
                message=f"Received snapshot for session {metadata.session_id}",
                session_id=metadata.session_id,
                data={
                    "documentType": metadata.document_type,
                    "outputFormat": metadata.output_format,
                    "sequenceNumber": metadata.sequence_number,
                },
            )
        )

    async def on_heartbeat(self) -> None:
        logger.debug("Received heartbeat")
        self._notifier.publish(ProtocolLog(level="debug", message="Received heartbeat, sent pong"))

    async def on_session_closed(self, session_id: str) -> None:
        logger.debug("Session closed: %s", session_id)
        self._registry.remove(session_id)
        self._notifier.publish(SessionClosed(session_id=session_id))

    async def on_session_unbound(self, session_id: str) -> None:
        logger.debug("Session unbound: %s", session_id)
        self._registry.remove(session_id)
        self._notifier.publish(SessionUnbound(session_id=session_id))

    async def on_initialized(self) -> None:
        if self._viewer_started:
            return
        self._viewer_started = True
        logger.info("Handshake complete, starting server...")

        try:
            url = await self._viewer.start()
        except OSError as exc:
            logger.error("Viewer server unavailable: %s", exc)
            return
        logger.info("Server listening at %s", url)

        if not self._config.no_open:
            await open_browser(url)

        self._notifier.publish(
            ProtocolLog(level="info", message="Handshake complete, extension initialized")
        )

    async def on_shutdown(self) -> None:
        logger.info("Received shutdown signal")
        self._notifier.publish(ShutdownRequested())
        self.request_stop()

    async def on_error(self, error: ProtocolError) -> None:
        logger.error("Protocol error: %s", error)
        self._notifier.publish(ProtocolLog(level="error", message=f"Protocol error: {error}"))

    # --- lifecycle ----------------------------------------------------------

    def request_stop(self) -> None:
        """Ask ``run`` to finish; safe to call from signal handlers."""
        self._stop_event.set()

    async def run(self, reader: ChunkReader | None = None) -> None:
        """Ingest the producer stream until EOF or a stop request, then tear down."""
        if reader is None:
            reader = await open_stdin_reader()
        logger.info("Protocol parser started, waiting for handshake...")

        ingest = asyncio.create_task(self._ingest(reader), name="preview-ingest")
        stop_wait = asyncio.create_task(self._stop_event.wait(), name="preview-stop-wait")
        try:
            await asyncio.wait({ingest, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
            if ingest.done() and not ingest.cancelled() and ingest.exception() is not None:
                logger.error("Ingestion failed: %s", ingest.exception())
        finally:
            for task in (ingest, stop_wait):
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            await self.stop()

    async def _ingest(self, reader: ChunkReader) -> None:
        while not self._stop_event.is_set():
            chunk = await reader.read(STDIN_CHUNK_BYTES)
            if not chunk:
                logger.info("stdin closed, shutting down...")
                return
            await self._parser.feed(chunk)

    async def stop(self) -> None:
        """Stop the viewer server; idempotent."""
        if self._stopped:
            return
        self._stopped = True
        self._stop_event.set()
        if self._viewer_started:
            await self._viewer.stop()
        self._notifier.close_all()


__all__ = ["ChunkReader", "PreviewHost", "Viewer", "open_stdin_reader"]
