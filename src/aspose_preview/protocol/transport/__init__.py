"""Snapshot payload transports: inline stream, temp file, shared memory."""

from __future__ import annotations

from aspose_preview.protocol.transport.file import read_from_file
from aspose_preview.protocol.transport.inline import encode_length_prefix, parse_length_prefix
from aspose_preview.protocol.transport.shm import (
    RegionReader,
    read_from_shared_memory,
    select_region_reader,
)

__all__ = [
    "RegionReader",
    "encode_length_prefix",
    "parse_length_prefix",
    "read_from_file",
    "read_from_shared_memory",
    "select_region_reader",
]
