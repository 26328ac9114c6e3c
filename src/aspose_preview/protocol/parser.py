"""Frame parser and handshake state machine for the preview protocol.

The producer writes one JSON metadata line per message. ``snapshot``
messages in inline mode are followed by ``[int64 LE length][payload]``;
file and mmap snapshots carry only a reference to where the payload lives.

``ProtocolParser.feed`` accepts arbitrarily chunked bytes. A frame is only
consumed once it is complete, so a partially received frame is simply
re-evaluated on the next call.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from aspose_preview.config import DEFAULT_TRANSPORT
from aspose_preview.limits import LENGTH_PREFIX_BYTES, MAX_PAYLOAD_BYTES
from aspose_preview.protocol.checksum import crc32
from aspose_preview.protocol.commands import CommandDispatcher
from aspose_preview.protocol.errors import (
    ChecksumMismatch,
    FrameDecodeError,
    FrameLengthError,
    ProtocolError,
    ProtocolViolation,
    TransportError,
)
from aspose_preview.protocol.messages import MessageType, SnapshotMetadata, TransportKind
from aspose_preview.protocol.transport.file import read_from_file
from aspose_preview.protocol.transport.inline import parse_length_prefix
from aspose_preview.protocol.transport.shm import read_from_shared_memory, select_region_reader

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from aspose_preview.protocol.emitter import ResponseEmitter
    from aspose_preview.protocol.transport.shm import RegionReader

logger = logging.getLogger(__name__)


class HandshakeState(enum.IntEnum):
    """Handshake progress; only ever moves forward."""

    AWAITING_INITIALIZE = 0
    AWAITING_INITIALIZED = 1
    READY = 2


@dataclass
class ParserState:
    """Framing state owned by exactly one parser (and one ingestion path)."""

    buffer: bytearray = field(default_factory=bytearray)
    handshake: HandshakeState = HandshakeState.AWAITING_INITIALIZE
    discard_remaining: int = 0
    """Bytes of a refused inline payload still to be dropped as they arrive."""

    def advance(self, target: HandshakeState) -> bool:
        """Move the handshake to *target*; return False if already there or past it."""
        if target <= self.handshake:
            return False
        self.handshake = target
        return True

    def skip_payload(self, length: int) -> None:
        """Drop a refused payload of *length* bytes, now or as it streams in."""
        dropped = min(len(self.buffer), length)
        del self.buffer[:dropped]
        self.discard_remaining = length - dropped

    def take(self, data: bytes | bytearray | memoryview) -> None:
        """Append *data*, minus any bytes still owed to a refused payload."""
        view = memoryview(data)
        if self.discard_remaining:
            skipped = min(len(view), self.discard_remaining)
            self.discard_remaining -= skipped
            view = view[skipped:]
        self.buffer += view


class ProtocolListener:
    """Callbacks the host supplies to the parser.

    Every hook is a no-op here; hosts override the ones they care about.
    """

    async def on_snapshot(self, metadata: SnapshotMetadata, payload: bytes) -> None:
        """A snapshot was acknowledged and its payload is ready."""

    async def on_heartbeat(self) -> None:
        """The producer sent a heartbeat (already answered with a pong)."""

    async def on_session_closed(self, session_id: str) -> None:
        """The producer closed a document session."""

    async def on_session_unbound(self, session_id: str) -> None:
        """The producer detached a session from this preview."""

    async def on_shutdown(self) -> None:
        """The producer asked the companion to shut down."""

    async def on_initialized(self) -> None:
        """The handshake completed; called at most once per parser state."""

    async def on_error(self, error: ProtocolError) -> None:
        """A frame could not be processed; the stream continues."""


def _decode_metadata(line: bytes) -> dict[str, Any]:
    try:
        data = json.loads(line.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        msg = f"Failed to parse JSON metadata: {exc}"
        raise FrameDecodeError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Metadata line must be a JSON object, got {type(data).__name__}"
        raise FrameDecodeError(msg)
    return data


def _sequence_of(message: dict[str, Any]) -> int | None:
    value = message.get("sequenceNumber")
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _format_validation_error(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'metadata'}: {error['msg']}"
        for error in exc.errors()
    )


class ProtocolParser:
    """Consumes the producer byte stream and drives the preview protocol.

    Usage::

        parser = ProtocolParser(listener, ResponseEmitter())
        await parser.feed(chunk)  # repeat for every chunk read from stdin

    ``feed`` must not be called concurrently: frames are handled strictly in
    arrival order and a snapshot is acknowledged (or rejected) before the
    next frame is looked at.
    """

    def __init__(
        self,
        listener: ProtocolListener,
        emitter: ResponseEmitter,
        *,
        state: ParserState | None = None,
        default_transport: str = DEFAULT_TRANSPORT,
        region_reader: RegionReader | None = None,
        commands: CommandDispatcher | None = None,
        max_payload_bytes: int = MAX_PAYLOAD_BYTES,
    ) -> None:
        self._listener = listener
        self._emitter = emitter
        self._state = state or ParserState()
        self._default_transport = default_transport
        self._region_reader = region_reader or select_region_reader()
        self._commands = commands or CommandDispatcher(emitter, region_reader=self._region_reader)
        self._max_payload_bytes = max_payload_bytes

    @property
    def state(self) -> ParserState:
        return self._state

    @property
    def is_ready(self) -> bool:
        """Whether the handshake has completed."""
        return self._state.handshake is HandshakeState.READY

    @property
    def buffered(self) -> int:
        """Number of bytes received but not yet consumed as part of a frame."""
        return len(self._state.buffer)

    async def feed(self, data: bytes | bytearray | memoryview) -> None:
        """Append *data* and process every complete frame now in the buffer."""
        self._state.take(data)
        while await self._process_frame():
            pass

    async def _process_frame(self) -> bool:
        """Handle the frame at the head of the buffer.

        Returns False when more bytes are needed, True when a frame (or a
        corrupt line) was consumed.
        """
        buffer = self._state.buffer
        newline = buffer.find(b"\n")
        if newline == -1:
            return False

        line = bytes(buffer[:newline])
        if not line.strip():
            del buffer[: newline + 1]
            return True

        try:
            message = _decode_metadata(line)
        except FrameDecodeError as exc:
            del buffer[: newline + 1]
            await self._report(exc)
            return True

        msg_type = message.get("type")
        logger.debug("Received message type: %s", msg_type)

        if msg_type == MessageType.SNAPSHOT:
            return await self._process_snapshot(message, newline)

        del buffer[: newline + 1]
        await self._dispatch(msg_type, message)
        return True

    async def _dispatch(self, msg_type: object, message: dict[str, Any]) -> None:
        if msg_type not in (MessageType.INITIALIZE, MessageType.INITIALIZED) and not self.is_ready:
            logger.debug("Message %s received before handshake completed", msg_type)

        match msg_type:
            case MessageType.INITIALIZE:
                logger.info(
                    "Received initialize, protocolVersion: %s", message.get("protocolVersion")
                )
                self._state.advance(HandshakeState.AWAITING_INITIALIZED)
                self._emitter.initialize_response()
            case MessageType.INITIALIZED:
                if self._state.advance(HandshakeState.READY):
                    logger.info("Handshake complete")
                    await self._guard(self._listener.on_initialized(), "on_initialized")
                else:
                    logger.debug("Ignoring repeated initialized message")
            case MessageType.HEARTBEAT:
                self._emitter.pong()
                await self._guard(self._listener.on_heartbeat(), "on_heartbeat")
            case MessageType.SESSION_CLOSED:
                session_id = await self._session_id_of(message)
                if session_id is not None:
                    await self._guard(
                        self._listener.on_session_closed(session_id), "on_session_closed"
                    )
            case MessageType.SESSION_UNBOUND:
                session_id = await self._session_id_of(message)
                if session_id is not None:
                    await self._guard(
                        self._listener.on_session_unbound(session_id), "on_session_unbound"
                    )
            case MessageType.SHUTDOWN:
                await self._guard(self._listener.on_shutdown(), "on_shutdown")
            case MessageType.COMMAND:
                self._commands.handle(message)
            case _:
                logger.warning("Unknown message type: %s", msg_type)
                await self._report(ProtocolViolation(f"Unknown message type: {msg_type}"))

    async def _session_id_of(self, message: dict[str, Any]) -> str | None:
        session_id = message.get("sessionId")
        if isinstance(session_id, str) and session_id:
            return session_id
        await self._report(FrameDecodeError(f"{message.get('type')} message without sessionId"))
        return None

    def _resolve_transport(self, message: dict[str, Any]) -> TransportKind:
        requested = message.get("transportMode") or self._default_transport
        try:
            return TransportKind(requested)
        except ValueError:
            logger.warning("Unknown transport mode %r, reading payload inline", requested)
            return TransportKind.STDIN

    async def _process_snapshot(self, message: dict[str, Any], newline: int) -> bool:
        buffer = self._state.buffer
        transport = self._resolve_transport(message)

        if transport is not TransportKind.STDIN:
            del buffer[: newline + 1]
            metadata = await self._validate_snapshot(message)
            if metadata is None:
                return True
            try:
                if transport is TransportKind.FILE:
                    payload = await read_from_file(metadata.file_path)
                else:
                    payload = await read_from_shared_memory(
                        self._region_reader,
                        metadata.mmap_name,
                        metadata.data_size,
                        metadata.file_path,
                    )
            except TransportError as exc:
                await self._report(exc)
                return True
            await self._deliver(metadata, payload)
            return True

        # Inline: nothing is consumed until metadata, prefix and payload are all buffered.
        data_start = newline + 1
        length = parse_length_prefix(buffer, data_start)
        if length is None:
            return False

        if length < 0 or length > self._max_payload_bytes:
            del buffer[: data_start + LENGTH_PREFIX_BYTES]
            if length > 0:
                self._state.skip_payload(length)
            error = FrameLengthError(length, self._max_payload_bytes)
            self._emitter.error_ack(_sequence_of(message), str(error))
            await self._report(error)
            return True

        payload_start = data_start + LENGTH_PREFIX_BYTES
        frame_end = payload_start + length
        if len(buffer) < frame_end:
            return False

        payload = bytes(buffer[payload_start:frame_end])
        del buffer[:frame_end]

        metadata = await self._validate_snapshot(message)
        if metadata is None:
            return True

        if metadata.checksum is not None:
            actual = await asyncio.to_thread(crc32, payload)
            if actual != metadata.checksum:
                await self._report(ChecksumMismatch(metadata.checksum, actual))
                return True

        await self._deliver(metadata, payload)
        return True

    async def _validate_snapshot(self, message: dict[str, Any]) -> SnapshotMetadata | None:
        try:
            return SnapshotMetadata.model_validate(message)
        except ValidationError as exc:
            msg = f"Invalid snapshot metadata: {_format_validation_error(exc)}"
            await self._report(FrameDecodeError(msg))
            return None

    async def _deliver(self, metadata: SnapshotMetadata, payload: bytes) -> None:
        self._emitter.ack(metadata.sequence_number)
        await self._guard(self._listener.on_snapshot(metadata, payload), "on_snapshot")

    async def _report(self, error: ProtocolError) -> None:
        logger.debug("Reporting protocol error: %s", error)
        await self._guard(self._listener.on_error(error), "on_error")

    @staticmethod
    async def _guard(awaitable: Awaitable[None], hook: str) -> None:
        try:
            await awaitable
        except Exception:
            logger.exception("Protocol listener hook %s failed", hook)


__all__ = ["HandshakeState", "ParserState", "ProtocolListener", "ProtocolParser"]
