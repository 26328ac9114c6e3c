"""Test helpers package."""

from tests.helpers.protocol import (
    HANDSHAKE,
    TEST_IDENTITY,
    RecordingListener,
    ResponseSink,
    inline_frame,
    json_line,
)
from tests.helpers.wait import wait_until

__all__ = [
    "HANDSHAKE",
    "TEST_IDENTITY",
    "RecordingListener",
    "ResponseSink",
    "inline_frame",
    "json_line",
    "wait_until",
]
