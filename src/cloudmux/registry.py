"""Thread-safe keyed store of live session handles."""

from __future__ import annotations

import logging
import threading
from typing import Generic, Protocol, TypeVar

from cloudmux.errors import SessionAlreadyExists

logger = logging.getLogger(__name__)


class Tracked(Protocol):
    """Anything a registry can hold: it has an id and can describe itself."""

    @property
    def id(self) -> str: ...

    def info(self): ...


H = TypeVar("H", bound=Tracked)


class SessionRegistry(Generic[H]):
    """Maps session id -> handle.

    The map lock guards the dict and nothing else. It is never held while
    a handle's own lock is taken, so a slow operation on one session cannot
    stall lookups for the others. Callers borrow a handle for a single
    operation and must not keep it around.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, H] = {}
        self._lock = threading.Lock()

    def create(self, handle: H) -> str:
        """Register a handle under its own id.

        Raises:
            SessionAlreadyExists: the id is already registered.
        """
        session_id = handle.id
        with self._lock:
            if session_id in self._sessions:
                raise SessionAlreadyExists(session_id)
            self._sessions[session_id] = handle
        logger.debug("Registered session %s", session_id)
        return session_id

    def get(self, session_id: str) -> H | None:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> H | None:
        """Atomically pop a handle. Returns None if it was not registered."""
        with self._lock:
            handle = self._sessions.pop(session_id, None)
        if handle is not None:
            logger.debug("Removed session %s", session_id)
        return handle

    def list(self) -> list:
        """Snapshot summaries of every registered session.

        Handles are copied under the map lock; each summary is taken
        afterwards under that session's own lock.
        """
        with self._lock:
            handles = list(self._sessions.values())
        return [h.info() for h in handles]

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
