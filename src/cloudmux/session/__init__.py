"""Event sink and event recording."""

from cloudmux.session.wire import EventType, Wire, WireEvent

__all__ = ["EventType", "Wire", "WireEvent"]
