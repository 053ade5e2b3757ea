"""Tests for cloudmux.session.wire (Wire, WireEvent, EventType)."""

from __future__ import annotations

import asyncio
import threading

from cloudmux.session.wire import LOGS, TERMINAL, EventType, Wire, WireEvent


# ---------------------------------------------------------------------------
# EventType / WireEvent
# ---------------------------------------------------------------------------


class TestEventType:
    def test_all_variants_exist(self) -> None:
        assert {e.name for e in EventType} == {"OUTPUT", "CLOSED", "STOPPED", "ERROR"}

    def test_values_are_lowercase(self) -> None:
        for e in EventType:
            assert e.value == e.name.lower()


class TestWireEvent:
    def test_defaults(self) -> None:
        event = WireEvent(EventType.CLOSED, TERMINAL, "abc")
        assert event.data is None

    def test_channel(self) -> None:
        assert WireEvent(EventType.OUTPUT, TERMINAL, "abc").channel == "terminal:output:abc"
        assert WireEvent(EventType.STOPPED, LOGS, "xyz").channel == "logs:stopped:xyz"


# ---------------------------------------------------------------------------
# Wire — basic send/subscribe
# ---------------------------------------------------------------------------


class TestWire:
    def test_send_to_subscriber(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.send_output(TERMINAL, "s1", "aGk=")
        event = q.get_nowait()
        assert event is not None
        assert event.type == EventType.OUTPUT
        assert event.data == "aGk="
        assert event.channel == "terminal:output:s1"

    def test_send_to_multiple_subscribers(self) -> None:
        wire = Wire()
        q1 = wire.subscribe()
        q2 = wire.subscribe()
        wire.send_closed(TERMINAL, "s1")
        e1 = q1.get_nowait()
        e2 = q2.get_nowait()
        assert e1 is not None and e2 is not None
        assert e1.type == e2.type == EventType.CLOSED

    def test_unsubscribe(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.unsubscribe(q)
        wire.send_stopped(LOGS, "s1")
        assert q.empty()

    def test_unsubscribe_nonexistent_is_safe(self) -> None:
        wire = Wire()
        q: asyncio.Queue[WireEvent | None] = asyncio.Queue()
        wire.unsubscribe(q)  # Should not raise

    def test_send_error_carries_description(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.send_error(LOGS, "s1", "throttled")
        event = q.get_nowait()
        assert event is not None
        assert event.type == EventType.ERROR
        assert event.data == "throttled"
        assert event.channel == "logs:error:s1"


# ---------------------------------------------------------------------------
# Wire — closed-state guard
# ---------------------------------------------------------------------------


class TestWireClosedGuard:
    def test_send_after_close_is_dropped(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.close()
        assert q.get_nowait() is None
        wire.send_output(TERMINAL, "s1", "x")
        assert q.empty()

    def test_close_sends_sentinel_to_all_subscribers(self) -> None:
        wire = Wire()
        queues = [wire.subscribe() for _ in range(3)]
        wire.close()
        for q in queues:
            assert q.get_nowait() is None

    def test_close_idempotent(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.close()
        wire.close()
        assert q.get_nowait() is None
        assert q.empty()
        assert wire.closed


# ---------------------------------------------------------------------------
# Wire — cross-thread delivery
# ---------------------------------------------------------------------------


class TestWireThreads:
    async def test_events_from_thread_reach_loop_subscriber(self) -> None:
        wire = Wire()
        q = wire.subscribe()

        def produce() -> None:
            for i in range(100):
                wire.send_output(TERMINAL, "s1", str(i))

        t = threading.Thread(target=produce)
        t.start()
        t.join()

        received = []
        for _ in range(100):
            event = await asyncio.wait_for(q.get(), timeout=2)
            assert event is not None
            received.append(event.data)
        assert received == [str(i) for i in range(100)]

    async def test_close_from_thread_wakes_subscriber(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        threading.Thread(target=wire.close).start()
        assert await asyncio.wait_for(q.get(), timeout=2) is None
