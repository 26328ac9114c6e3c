"""Single-line JSON responses written back to the producer."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

from aspose_preview.protocol.messages import (
    AckResponse,
    CommandResultResponse,
    InitializeResponse,
    PongResponse,
)
from aspose_preview.version import get_server_identity

if TYPE_CHECKING:
    from collections.abc import Callable

    from aspose_preview.protocol.messages import WireModel
    from aspose_preview.version import ServerIdentity

logger = logging.getLogger(__name__)


def stdout_writer(line: bytes) -> None:
    """Write one response line to stdout and flush it immediately."""
    sys.stdout.buffer.write(line)
    sys.stdout.buffer.flush()


class ResponseEmitter:
    """Writes acknowledgements and responses, one JSON object per line.

    The sink is a plain callable so tests (and alternative hosts) can capture
    the bytes instead of writing to stdout.
    """

    def __init__(
        self,
        write: Callable[[bytes], None] = stdout_writer,
        *,
        identity: ServerIdentity | None = None,
    ) -> None:
        self._write = write
        self._identity = identity

    @property
    def identity(self) -> ServerIdentity:
        if self._identity is None:
            self._identity = get_server_identity()
        return self._identity

    def initialize_response(self) -> None:
        identity = self.identity
        self._send(
            InitializeResponse(
                name=identity.name,
                version=identity.version,
                title=identity.title,
                description=identity.description,
                author=identity.author,
                website_url=identity.website_url,
            )
        )
        logger.info("Sent initialize_response: %s@%s", identity.name, identity.version)

    def ack(self, sequence_number: int | None) -> None:
        self._send(AckResponse(sequence_number=sequence_number))
        logger.debug("Sent ACK for sequence %s", sequence_number)

    def error_ack(self, sequence_number: int | None, message: str) -> None:
        self._send(AckResponse(sequence_number=sequence_number, status="error", error=message))
        logger.debug("Sent error ACK for sequence %s: %s", sequence_number, message)

    def pong(self) -> None:
        self._send(PongResponse())
        logger.debug("Sent pong")

    def command_result(
        self,
        command_id: str,
        success: bool,
        result: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> None:
        self._send(
            CommandResultResponse(
                command_id=command_id,
                success=success,
                result=result if success else None,
                error=error if not success else None,
            )
        )
        logger.debug("Sent command_result for %s: success=%s", command_id, success)

    def _send(self, response: WireModel) -> None:
        try:
            self._write(response.to_line())
        except (OSError, ValueError) as exc:
            # Producer is gone; stdin EOF ends the ingestion loop shortly after.
            logger.warning("Failed to write %s response: %s", type(response).__name__, exc)


__all__ = ["ResponseEmitter", "stdout_writer"]
