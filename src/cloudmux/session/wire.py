"""Wire protocol — the event sink that session workers publish to.

Streamer threads and poller tasks push events onto the wire; the UI (or
the CLI, or a recorder) subscribes and renders them. Every event belongs
to one session and one channel, ``<namespace>:<type>:<session_id>``, e.g.
``terminal:output:3f2c...`` or ``logs:stopped:9a1b...``.
"""

from __future__ import annotations

import asyncio
import enum
import threading
from dataclasses import dataclass
from typing import Any

TERMINAL = "terminal"
LOGS = "logs"


class EventType(enum.Enum):
    OUTPUT = "output"
    CLOSED = "closed"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass
class WireEvent:
    """An event on the wire."""

    type: EventType
    namespace: str
    session_id: str
    data: Any = None

    @property
    def channel(self) -> str:
        return f"{self.namespace}:{self.type.value}:{self.session_id}"


class Wire:
    """Thread-safe broadcast bus: session workers -> subscribers.

    Multi-producer, multi-consumer. Each subscriber queue remembers the
    event loop it was created on; events sent from any other thread are
    handed to that loop with ``call_soon_threadsafe``. Calls from a single
    producer thread are delivered in the order they were made.
    """

    def __init__(self) -> None:
        self._subscribers: list[
            tuple[asyncio.Queue[WireEvent | None], asyncio.AbstractEventLoop | None]
        ] = []
        self._lock = threading.Lock()
        self._closed: bool = False

    def send(self, event: WireEvent) -> None:
        """Send an event to all subscribers.

        Silently drops events after ``close()`` has been called.
        """
        with self._lock:
            if self._closed:
                return
            subscribers = list(self._subscribers)
        for q, loop in subscribers:
            _deliver(q, loop, event)

    def send_output(self, namespace: str, session_id: str, data: Any) -> None:
        self.send(WireEvent(EventType.OUTPUT, namespace, session_id, data))

    def send_closed(self, namespace: str, session_id: str) -> None:
        self.send(WireEvent(EventType.CLOSED, namespace, session_id))

    def send_stopped(self, namespace: str, session_id: str) -> None:
        self.send(WireEvent(EventType.STOPPED, namespace, session_id))

    def send_error(self, namespace: str, session_id: str, error: str) -> None:
        self.send(WireEvent(EventType.ERROR, namespace, session_id, error))

    def subscribe(self) -> asyncio.Queue[WireEvent | None]:
        """Subscribe to events. Returns a queue to read from.

        When called inside a running event loop, events produced on other
        threads are marshalled onto that loop.
        """
        try:
            loop: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        q: asyncio.Queue[WireEvent | None] = asyncio.Queue()
        with self._lock:
            self._subscribers.append((q, loop))
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        """Unsubscribe from events."""
        with self._lock:
            self._subscribers = [s for s in self._subscribers if s[0] is not q]

    def close(self) -> None:
        """Signal all subscribers that the wire is closing."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscribers = list(self._subscribers)
        for q, loop in subscribers:
            _deliver(q, loop, None)

    @property
    def closed(self) -> bool:
        return self._closed


def _deliver(
    q: asyncio.Queue[WireEvent | None],
    loop: asyncio.AbstractEventLoop | None,
    event: WireEvent | None,
) -> None:
    if loop is None or loop.is_closed():
        q.put_nowait(event)
        return
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None
    if running is loop:
        q.put_nowait(event)
    else:
        loop.call_soon_threadsafe(q.put_nowait, event)
