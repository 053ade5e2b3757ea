"""Terminal sessions — PTY-backed subprocesses streamed onto the wire.

Each session runs its command (a local shell, ``aws ecs execute-command``,
``aws ssm start-session``) in its own process group on a pseudo-terminal.
A dedicated streamer thread publishes the output; writes and resizes go
through the manager by session id.
"""

from cloudmux.terminal.kinds import (
    EcsExec,
    LocalShell,
    SessionKind,
    SsmPortForwarding,
    SsmSession,
    build_command,
)
from cloudmux.terminal.manager import (
    CreateSessionRequest,
    CreateSessionResponse,
    TerminalManager,
)
from cloudmux.terminal.pty import PtySession
from cloudmux.terminal.session import SessionInfo, SessionStatus
from cloudmux.terminal.stream import OutputStreamer

__all__ = [
    "CreateSessionRequest",
    "CreateSessionResponse",
    "EcsExec",
    "LocalShell",
    "OutputStreamer",
    "PtySession",
    "SessionInfo",
    "SessionKind",
    "SessionStatus",
    "SsmPortForwarding",
    "SsmSession",
    "TerminalManager",
    "build_command",
]
