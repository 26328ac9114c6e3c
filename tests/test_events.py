"""Tests for viewer events and the fan-out notifier."""

from __future__ import annotations

import asyncio

import pytest

from aspose_preview.events import (
    Notifier,
    ProtocolLog,
    SessionClosed,
    SessionUnbound,
    ShutdownRequested,
    SnapshotUpdated,
)

pytestmark = pytest.mark.unit


async def _drain(subscription, count: int) -> list:
    received = []
    async for event in subscription:
        received.append(event)
        if len(received) == count:
            break
    return received


class TestWireShapes:
    def test_snapshot_event(self) -> None:
        event = SnapshotUpdated(
            session_id="s1",
            document_type="word",
            original_path="/a.docx",
            output_format="png",
            timestamp="t",
        )

        assert event.to_wire() == {
            "type": "snapshot",
            "sessionId": "s1",
            "documentType": "word",
            "originalPath": "/a.docx",
            "outputFormat": "png",
            "timestamp": "t",
        }

    def test_session_and_shutdown_events(self) -> None:
        assert SessionClosed("s1").to_wire() == {"type": "session_closed", "sessionId": "s1"}
        assert SessionUnbound("s2").to_wire() == {"type": "session_unbound", "sessionId": "s2"}
        assert ShutdownRequested().to_wire() == {"type": "shutdown"}

    def test_log_event_omits_empty_fields(self) -> None:
        wire = ProtocolLog(level="info", message="hello").to_wire()

        assert wire["type"] == "log"
        assert wire["category"] == "protocol"
        assert wire["timestamp"].endswith("Z")
        assert "sessionId" not in wire
        assert "data" not in wire

    def test_events_have_unique_ids(self) -> None:
        assert ShutdownRequested().event_id != ShutdownRequested().event_id


class TestNotifier:
    async def test_publish_reaches_every_subscriber_in_order(self) -> None:
        notifier = Notifier()
        first = notifier.subscribe()
        second = notifier.subscribe()
        events = [SessionClosed("a"), SessionClosed("b"), ShutdownRequested()]

        for event in events:
            assert notifier.publish(event) == 2

        assert await _drain(first, 3) == events
        assert await _drain(second, 3) == events

    async def test_publish_without_subscribers(self) -> None:
        assert Notifier().publish(ShutdownRequested()) == 0

    async def test_slow_subscriber_is_dropped_without_blocking_others(self) -> None:
        notifier = Notifier(queue_size=2)
        slow = notifier.subscribe()
        fast = notifier.subscribe(maxsize=10)

        for n in range(3):
            notifier.publish(SessionClosed(f"s{n}"))

        assert slow.closed
        assert notifier.subscriber_count == 1
        assert [event.session_id for event in await _drain(fast, 3)] == ["s0", "s1", "s2"]
        # A dropped subscription simply ends.
        assert [event async for event in slow] == []

    async def test_unsubscribe_ends_iteration(self) -> None:
        notifier = Notifier()
        subscription = notifier.subscribe()

        consumer = asyncio.create_task(_drain(subscription, 5))
        await asyncio.sleep(0)
        notifier.unsubscribe(subscription)

        assert await asyncio.wait_for(consumer, timeout=1) == []
        assert notifier.subscriber_count == 0
        assert notifier.publish(ShutdownRequested()) == 0

    async def test_new_subscriber_gets_no_replay(self) -> None:
        notifier = Notifier()
        notifier.publish(SessionClosed("old"))
        subscription = notifier.subscribe()
        notifier.publish(SessionClosed("new"))

        [event] = await _drain(subscription, 1)
        assert event.session_id == "new"

    async def test_close_all(self) -> None:
        notifier = Notifier()
        subscriptions = [notifier.subscribe() for _ in range(3)]

        notifier.close_all()

        assert notifier.subscriber_count == 0
        assert all(subscription.closed for subscription in subscriptions)

    async def test_close_delivers_pending_events_then_ends(self) -> None:
        notifier = Notifier()
        subscription = notifier.subscribe()
        notifier.publish(SessionClosed("a"))
        notifier.publish(ShutdownRequested())

        notifier.close_all()

        events = [event async for event in subscription]
        assert [type(event) for event in events] == [SessionClosed, ShutdownRequested]
        assert not subscription.dropped

    async def test_dropped_subscription_is_marked(self) -> None:
        notifier = Notifier(queue_size=1)
        subscription = notifier.subscribe()

        notifier.publish(SessionClosed("a"))
        notifier.publish(SessionClosed("b"))

        assert subscription.dropped
        assert [event async for event in subscription] == []
