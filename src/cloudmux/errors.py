"""Error hierarchy for session and log-tail operations."""

from __future__ import annotations


class CloudmuxError(Exception):
    """Base class for all errors raised by cloudmux."""


class TerminalError(CloudmuxError):
    """Base class for terminal session errors.

    Subclasses format their message from a ``_template`` so the text that
    reaches the caller is stable: ``Session not found: <id>`` and so on.
    """

    _template = "{0}"

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(self._template.format(detail))


class SessionNotFound(TerminalError):
    _template = "Session not found: {0}"


class PtyCreationFailed(TerminalError):
    _template = "Failed to create PTY: {0}"


class SpawnFailed(TerminalError):
    _template = "Failed to spawn process: {0}"


class WriteFailed(TerminalError):
    _template = "Failed to write to PTY: {0}"


class ResizeFailed(TerminalError):
    _template = "Failed to resize PTY: {0}"


class SessionAlreadyExists(TerminalError):
    _template = "Session already exists: {0}"


class DecodeError(TerminalError):
    _template = "Failed to decode input: {0}"


class LogQueryError(CloudmuxError):
    """A single log-source query failed (treated as transient by the poller)."""
