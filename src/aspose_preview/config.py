"""Runtime configuration for the preview companion."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from aspose_preview.limits import MAX_PAYLOAD_BYTES, SUBSCRIBER_QUEUE_SIZE

type TransportMode = Literal["stdin", "file", "mmap"]

TRANSPORT_MODE_VALUES = frozenset({"stdin", "file", "mmap"})
DEFAULT_TRANSPORT: TransportMode = "stdin"

ENV_PREFIX = "ASPOSE_PREVIEW_"


class PreviewConfig(BaseModel):
    """Process-wide settings resolved from CLI options and environment variables."""

    port: int = Field(default=3000, ge=0, le=65535, description="HTTP server port")
    host: str = Field(default="localhost", description="Bind host for the viewer server")
    no_open: bool = Field(default=False, description="Do not open a browser after the handshake")
    transport: TransportMode = Field(
        default=DEFAULT_TRANSPORT,
        description="Default snapshot transport when a message omits transportMode",
    )
    debug: bool = Field(default=False, description="Enable debug logging")
    max_payload_bytes: int = Field(
        default=MAX_PAYLOAD_BYTES,
        gt=0,
        description="Largest inline snapshot payload accepted from the producer",
    )
    subscriber_queue_size: int = Field(
        default=SUBSCRIBER_QUEUE_SIZE,
        gt=0,
        description="Events buffered per viewer before it is dropped as too slow",
    )

    @field_validator("transport", mode="before")
    @classmethod
    def validate_transport(cls, value: object) -> str:
        """Coerce unknown transport values to stdin."""
        match value:
            case str() as mode if mode.strip().lower() in TRANSPORT_MODE_VALUES:
                return mode.strip().lower()
            case _:
                pass
        return DEFAULT_TRANSPORT

    @property
    def url(self) -> str:
        """Base URL of the viewer server."""
        return f"http://{self.host}:{self.port}"


__all__ = [
    "DEFAULT_TRANSPORT",
    "ENV_PREFIX",
    "TRANSPORT_MODE_VALUES",
    "PreviewConfig",
    "TransportMode",
]
