"""Protocol engine: framing, handshake, transports and producer responses."""

from __future__ import annotations

from aspose_preview.protocol.commands import CommandDispatcher
from aspose_preview.protocol.emitter import ResponseEmitter
from aspose_preview.protocol.errors import (
    ChecksumMismatch,
    FrameDecodeError,
    FrameLengthError,
    ProtocolError,
    ProtocolViolation,
    TransportError,
    TransportUnavailable,
)
from aspose_preview.protocol.messages import MessageType, SnapshotMetadata, TransportKind
from aspose_preview.protocol.parser import (
    HandshakeState,
    ParserState,
    ProtocolListener,
    ProtocolParser,
)

__all__ = [
    "ChecksumMismatch",
    "CommandDispatcher",
    "FrameDecodeError",
    "FrameLengthError",
    "HandshakeState",
    "MessageType",
    "ParserState",
    "ProtocolError",
    "ProtocolListener",
    "ProtocolParser",
    "ProtocolViolation",
    "ResponseEmitter",
    "SnapshotMetadata",
    "TransportError",
    "TransportKind",
    "TransportUnavailable",
]
