"""Inline transport: ``[int64 LE length][payload]`` directly after the metadata line."""

from __future__ import annotations

import struct

from aspose_preview.limits import LENGTH_PREFIX_BYTES

_LENGTH_PREFIX = struct.Struct("<q")


def parse_length_prefix(buffer: bytes | bytearray, offset: int = 0) -> int | None:
    """Return the signed length prefix at *offset*, or None if not fully buffered."""
    if len(buffer) < offset + LENGTH_PREFIX_BYTES:
        return None
    (length,) = _LENGTH_PREFIX.unpack_from(buffer, offset)
    return length


def encode_length_prefix(length: int) -> bytes:
    """Encode *length* the way the producer frames inline payloads."""
    return _LENGTH_PREFIX.pack(length)


__all__ = ["encode_length_prefix", "parse_length_prefix"]
