"""Viewer events and the fan-out notifier that delivers them."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal, Protocol
from uuid import uuid4

from aspose_preview.limits import SUBSCRIBER_QUEUE_SIZE

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


def _new_event_id() -> str:
    return uuid4().hex


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class ViewerEvent(Protocol):
    """Base protocol for events pushed to viewers."""

    @property
    def event_id(self) -> str: ...

    def to_wire(self) -> dict[str, Any]: ...


@dataclass(frozen=True)
class SnapshotUpdated:
    session_id: str
    document_type: str | None
    original_path: str | None
    output_format: str | None
    timestamp: str | None
    event_id: str = field(default_factory=_new_event_id)

    def to_wire(self) -> dict[str, Any]:
        return {
            "type": "snapshot",
            "sessionId": self.session_id,
            "documentType": self.document_type,
            "originalPath": self.original_path,
            "outputFormat": self.output_format,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SessionClosed:
    session_id: str
    event_id: str = field(default_factory=_new_event_id)

    def to_wire(self) -> dict[str, Any]:
        return {"type": "session_closed", "sessionId": self.session_id}


@dataclass(frozen=True)
class SessionUnbound:
    session_id: str
    event_id: str = field(default_factory=_new_event_id)

    def to_wire(self) -> dict[str, Any]:
        return {"type": "session_unbound", "sessionId": self.session_id}


@dataclass(frozen=True)
class ShutdownRequested:
    event_id: str = field(default_factory=_new_event_id)

    def to_wire(self) -> dict[str, Any]:
        return {"type": "shutdown"}


@dataclass(frozen=True)
class ProtocolLog:
    """Protocol activity mirrored into the viewer's log panel."""

    level: Literal["debug", "info", "warn", "error"]
    message: str
    category: str = "protocol"
    session_id: str | None = None
    data: dict[str, Any] | None = None
    timestamp: str = field(default_factory=_now_iso)
    event_id: str = field(default_factory=_new_event_id)

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {
            "type": "log",
            "level": self.level,
            "category": self.category,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        if self.session_id is not None:
            wire["sessionId"] = self.session_id
        if self.data is not None:
            wire["data"] = self.data
        return wire


_CLOSED = object()


class Subscription:
    """One subscriber's bounded event queue, iterable until closed.

    The queue keeps one slot beyond *maxsize* for the end-of-stream marker,
    so closing never fails on a full queue.
    """

    def __init__(self, maxsize: int) -> None:
        self._maxsize = maxsize
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize + 1)
        self._closed = False
        self._dropped = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def dropped(self) -> bool:
        """True when the subscription ended because it fell behind."""
        return self._dropped

    def offer(self, event: ViewerEvent) -> bool:
        """Enqueue without waiting; a full queue drops the subscription."""
        if self._closed:
            return False
        if self._queue.qsize() >= self._maxsize:
            self._drop()
            return False
        self._queue.put_nowait(event)
        return True

    def close(self) -> None:
        """Stop accepting events; the consumer still receives what is pending."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def _drop(self) -> None:
        self._closed = True
        self._dropped = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[ViewerEvent]:
        while True:
            event = await self._queue.get()
            if event is _CLOSED:
                return
            yield event


class Notifier:
    """Best-effort fan-out of viewer events to every live subscription.

    Publishing never waits on subscribers: each one has a bounded queue and
    a subscriber that falls behind is dropped. Events are not replayed; new
    subscribers only receive future events.
    """

    def __init__(self, queue_size: int = SUBSCRIBER_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._subscriptions: list[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, maxsize: int | None = None) -> Subscription:
        subscription = Subscription(maxsize or self._queue_size)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.close()
        self._subscriptions = [s for s in self._subscriptions if s is not subscription]

    def publish(self, event: ViewerEvent) -> int:
        """Deliver *event* to all subscribers; return how many accepted it."""
        delivered = 0
        dropped: list[Subscription] = []
        for subscription in self._subscriptions:
            accepted = False
            with contextlib.suppress(Exception):
                accepted = subscription.offer(event)
            if accepted:
                delivered += 1
            else:
                dropped.append(subscription)

        if dropped:
            logger.warning("Dropping %d slow or closed subscriber(s)", len(dropped))
            self._subscriptions = [s for s in self._subscriptions if s not in dropped]
        logger.debug("Published %s to %d subscriber(s)", type(event).__name__, delivered)
        return delivered

    def close_all(self) -> None:
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions = []


__all__ = [
    "Notifier",
    "ProtocolLog",
    "SessionClosed",
    "SessionUnbound",
    "ShutdownRequested",
    "SnapshotUpdated",
    "Subscription",
    "ViewerEvent",
]
