"""Wire message types exchanged with the producer."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MessageType(StrEnum):
    """Discriminator values of producer -> core messages."""

    INITIALIZE = "initialize"
    INITIALIZED = "initialized"
    HEARTBEAT = "heartbeat"
    SESSION_CLOSED = "session_closed"
    SESSION_UNBOUND = "session_unbound"
    SHUTDOWN = "shutdown"
    SNAPSHOT = "snapshot"
    COMMAND = "command"


class TransportKind(StrEnum):
    """How a snapshot payload reaches the core."""

    STDIN = "stdin"
    FILE = "file"
    MMAP = "mmap"


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    def to_line(self) -> bytes:
        """Serialize as one newline-terminated JSON line."""
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8") + b"\n"


class SnapshotMetadata(WireModel):
    """Metadata line of a ``snapshot`` message.

    Only ``sessionId`` is mandatory; the producer fills the descriptive fields
    and the transport-specific ones relevant to ``transportMode``.
    """

    session_id: str = Field(min_length=1, description="Stable producer-assigned session key")
    sequence_number: int | None = Field(
        default=None,
        description="Per-session counter echoed back in the acknowledgement",
    )
    document_type: str | None = Field(default=None, description="word, excel, powerpoint, pdf")
    original_path: str | None = Field(default=None, description="Path of the source document")
    output_format: str | None = Field(default=None, description="png, html, pdf")
    mime_type: str | None = Field(default=None, description="MIME type of the payload")
    timestamp: str | None = Field(default=None, description="ISO-8601 snapshot time")
    transport_mode: str | None = Field(
        default=None,
        description="stdin|file|mmap; falls back to the process default when absent",
    )
    file_path: str | None = Field(
        default=None,
        description="Payload file (file mode) or backing file (file-backed mmap)",
    )
    mmap_name: str | None = Field(default=None, description="Shared-memory region name")
    data_size: int | None = Field(default=None, ge=0, description="Shared-memory payload size")
    checksum: int | None = Field(
        default=None,
        ge=0,
        le=0xFFFFFFFF,
        description="CRC-32 of an inline payload",
    )


class InitializeResponse(WireModel):
    type: Literal["initialize_response"] = "initialize_response"
    name: str
    version: str
    title: str
    description: str
    author: str
    website_url: str


class AckResponse(WireModel):
    type: Literal["ack"] = "ack"
    sequence_number: int | None
    status: Literal["processed", "error"] = "processed"
    error: str | None = None


class PongResponse(WireModel):
    type: Literal["pong"] = "pong"


class CommandResultResponse(WireModel):
    type: Literal["command_result"] = "command_result"
    command_id: str
    success: bool
    result: dict[str, Any] | None = None
    error: str | None = None


__all__ = [
    "AckResponse",
    "CommandResultResponse",
    "InitializeResponse",
    "MessageType",
    "PongResponse",
    "SnapshotMetadata",
    "TransportKind",
    "WireModel",
]
