"""Errors reported by the protocol engine.

None of these terminate the ingestion loop: the parser hands them to
``ProtocolListener.on_error`` and moves on to the next frame.
"""

from __future__ import annotations


class ProtocolError(Exception):
    """Base class for every parser-level error."""


class FrameDecodeError(ProtocolError):
    """Raised when a metadata line is not a valid JSON object or fails validation."""


class FrameLengthError(FrameDecodeError):
    """Raised when an inline length prefix is negative or exceeds the payload cap."""

    def __init__(self, length: int, limit: int) -> None:
        self.length = length
        self.limit = limit
        if length < 0:
            message = f"Invalid inline payload length: {length}"
        else:
            message = f"Inline payload length {length} exceeds limit of {limit} bytes"
        super().__init__(message)


class ChecksumMismatch(ProtocolError):
    """Raised when an inline payload does not match its declared CRC-32."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Checksum mismatch: expected {expected}, got {actual}")


class TransportError(ProtocolError):
    """Raised when a file or shared-memory payload cannot be read."""


class TransportUnavailable(TransportError):
    """Raised when shared-memory transport has no implementation on this platform."""


class ProtocolViolation(ProtocolError):
    """Raised for messages the engine does not understand."""


__all__ = [
    "ChecksumMismatch",
    "FrameDecodeError",
    "FrameLengthError",
    "ProtocolError",
    "ProtocolViolation",
    "TransportError",
    "TransportUnavailable",
]
