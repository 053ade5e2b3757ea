"""Terminal manager — creates, tracks and tears down PTY sessions."""

from __future__ import annotations

import base64
import binascii
import logging

from pydantic import BaseModel

from cloudmux.config import TerminalConfig
from cloudmux.errors import DecodeError, SessionAlreadyExists, SessionNotFound
from cloudmux.registry import SessionRegistry
from cloudmux.session.wire import Wire
from cloudmux.terminal.kinds import SessionKind, build_command, default_title
from cloudmux.terminal.pty import PtySession
from cloudmux.terminal.session import SessionInfo
from cloudmux.terminal.stream import OutputStreamer

logger = logging.getLogger(__name__)


class CreateSessionRequest(BaseModel):
    session_type: SessionKind
    title: str | None = None
    shell: str | None = None


class CreateSessionResponse(BaseModel):
    session_id: str
    info: SessionInfo


class TerminalManager:
    """Owns the registry of PTY sessions and their output streamers.

    Every method is safe to call from any thread. Output is published on
    ``wire`` under ``terminal:<event>:<session_id>``.
    """

    def __init__(
        self,
        wire: Wire,
        config: TerminalConfig | None = None,
        aws_cli: str = "aws",
    ) -> None:
        self._wire = wire
        self._config = config or TerminalConfig()
        self._aws_cli = aws_cli
        self._registry: SessionRegistry[PtySession] = SessionRegistry()

    def create_session(self, request: CreateSessionRequest) -> CreateSessionResponse:
        """Spawn a session, register it and start streaming its output.

        Raises:
            PtyCreationFailed, SpawnFailed: nothing is registered.
        """
        kind = request.session_type
        shell = request.shell or self._config.shell
        info = SessionInfo(
            title=request.title or default_title(kind),
            session_type=kind,
        )
        command = build_command(kind, shell=shell, aws_cli=self._aws_cli)

        session = PtySession.create(
            info,
            command,
            cols=self._config.cols,
            rows=self._config.rows,
            term=self._config.term,
        )
        reader = session.take_reader()
        streamer = OutputStreamer(
            session.id,
            reader,
            self._wire,
            on_exit=session.finish,
            chunk_size=self._config.read_chunk_size,
        )
        session.mark_running()

        try:
            self._registry.create(session)
        except SessionAlreadyExists:
            reader.close()
            session.close()
            raise

        streamer.start()
        return CreateSessionResponse(session_id=session.id, info=session.info())

    def write(self, session_id: str, data: str) -> None:
        """Write base64-encoded ``data`` to a session.

        Raises:
            SessionNotFound, DecodeError, WriteFailed
        """
        session = self._require(session_id)
        try:
            payload = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(str(e)) from e
        session.write(payload)

    def write_bytes(self, session_id: str, data: bytes) -> None:
        self._require(session_id).write(data)

    def resize(self, session_id: str, cols: int, rows: int) -> None:
        self._require(session_id).resize(cols, rows)

    def close(self, session_id: str) -> None:
        """Remove a session and kill its process. Unknown ids are a no-op."""
        session = self._registry.remove(session_id)
        if session is not None:
            session.close()

    def get_session(self, session_id: str) -> SessionInfo:
        return self._require(session_id).info()

    def list_sessions(self) -> list[SessionInfo]:
        return self._registry.list()

    def shutdown(self) -> None:
        """Close every session. Called on shutdown."""
        for session_id in self._registry.ids():
            self.close(session_id)
        logger.info("All PTY sessions cleaned up")

    def _require(self, session_id: str) -> PtySession:
        session = self._registry.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def __len__(self) -> int:
        return len(self._registry)
