"""Serializable records describing terminal sessions."""

from __future__ import annotations

import enum
import time
import uuid

from pydantic import BaseModel, Field

from cloudmux.terminal.kinds import SessionKind


class SessionStatus(enum.StrEnum):
    """Lifecycle states for a terminal session.

    Moves forward only: starting -> running -> closing -> closed. ERROR is
    an alternate terminal state reachable from starting or running.
    """

    STARTING = "starting"
    RUNNING = "running"
    CLOSING = "closing"
    CLOSED = "closed"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self in (SessionStatus.CLOSED, SessionStatus.ERROR)


_ORDER = {
    SessionStatus.STARTING: 0,
    SessionStatus.RUNNING: 1,
    SessionStatus.CLOSING: 2,
    SessionStatus.CLOSED: 3,
}


def can_transition(current: SessionStatus, new: SessionStatus) -> bool:
    """Whether ``current -> new`` is a legal status change."""
    if current.terminal:
        return False
    if new is SessionStatus.ERROR:
        return current in (SessionStatus.STARTING, SessionStatus.RUNNING)
    return _ORDER[new] > _ORDER[current]


class SessionInfo(BaseModel):
    """Information about a terminal session (serializable for the frontend)."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str = ""
    session_type: SessionKind
    created_at: int = Field(default_factory=lambda: int(time.time()))
    status: SessionStatus = SessionStatus.STARTING
