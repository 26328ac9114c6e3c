"""Producer commands that expect a correlated ``command_result``."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from aspose_preview.version import get_package_version

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from aspose_preview.protocol.emitter import ResponseEmitter
    from aspose_preview.protocol.transport.shm import RegionReader

    CommandHandler = Callable[[Mapping[str, Any]], dict[str, Any]]

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Dispatches ``command`` messages by ``commandType``.

    Built-in commands:
    - ``get_version``: the installed package version.
    - ``get_transport_info``: which shared-memory strategy this platform uses.
    """

    def __init__(
        self,
        emitter: ResponseEmitter,
        *,
        region_reader: RegionReader | None = None,
    ) -> None:
        self._emitter = emitter
        self._region_reader = region_reader
        self._handlers: dict[str, CommandHandler] = {
            "get_version": self._get_version,
            "get_transport_info": self._get_transport_info,
        }

    def register(self, command_type: str, handler: CommandHandler) -> None:
        """Register or replace a command handler."""
        self._handlers[command_type] = handler

    def handle(self, message: Mapping[str, Any]) -> None:
        """Run one command and emit its result to the producer."""
        command_id = message.get("commandId")
        command_type = message.get("commandType")

        if not command_id:
            logger.warning("Received command without commandId")
            return
        command_id = str(command_id)

        logger.debug("Handling command: %s (%s)", command_type, command_id)
        handler = self._handlers.get(command_type) if isinstance(command_type, str) else None
        if handler is None:
            logger.warning("Unknown command type: %s", command_type)
            self._emitter.command_result(
                command_id, False, error=f"Unknown command type: {command_type}"
            )
            return

        try:
            result = handler(message)
        except Exception as exc:
            logger.exception("Command %s failed", command_type)
            self._emitter.command_result(command_id, False, error=str(exc))
            return
        self._emitter.command_result(command_id, True, result)

    def _get_version(self, message: Mapping[str, Any]) -> dict[str, Any]:
        del message
        return {"version": get_package_version()}

    def _get_transport_info(self, message: Mapping[str, Any]) -> dict[str, Any]:
        del message
        if self._region_reader is None:
            return {"platform": None, "strategy": "Unsupported", "available": False, "error": None}
        return self._region_reader.info()


__all__ = ["CommandDispatcher"]
