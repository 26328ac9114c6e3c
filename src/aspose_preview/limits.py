"""Numeric limits and sizes - no circular dependencies."""

from __future__ import annotations

LENGTH_PREFIX_BYTES = 8
"""Inline payloads are preceded by a little-endian signed 64-bit length."""

MAX_PAYLOAD_BYTES = 512 * 1024 * 1024  # 512 MiB per inline snapshot payload

STDIN_CHUNK_BYTES = 64 * 1024

SUBSCRIBER_QUEUE_SIZE = 256
"""Events buffered per viewer before it is considered too slow and dropped."""

WS_CLOSE_NORMAL = 1000

WS_DRAIN_TIMEOUT_SECONDS = 2.0
"""How long shutdown waits for viewers to receive queued events before closing them."""

__all__ = [
    "LENGTH_PREFIX_BYTES",
    "MAX_PAYLOAD_BYTES",
    "STDIN_CHUNK_BYTES",
    "SUBSCRIBER_QUEUE_SIZE",
    "WS_CLOSE_NORMAL",
    "WS_DRAIN_TIMEOUT_SECONDS",
]
