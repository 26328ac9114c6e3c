"""File transport: the payload was written to a temp file named in the metadata."""

from __future__ import annotations

import logging

import aiofiles

from aspose_preview.protocol.errors import TransportError

logger = logging.getLogger(__name__)


async def read_from_file(file_path: str | None) -> bytes:
    """Read the whole payload file without blocking the event loop.

    Raises:
        TransportError: If no path was given or the file cannot be read.
    """
    if not file_path:
        msg = "File transport requires filePath in snapshot metadata"
        raise TransportError(msg)

    logger.debug("Reading from file: %s", file_path)
    try:
        async with aiofiles.open(file_path, "rb") as f:
            data = await f.read()
    except OSError as exc:
        logger.error("Failed to read file %s: %s", file_path, exc)
        msg = f"Failed to read file: {exc}"
        raise TransportError(msg) from exc

    logger.debug("Read %d bytes from file", len(data))
    return data


__all__ = ["read_from_file"]
