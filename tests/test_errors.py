"""Tests for cloudmux.errors."""

from __future__ import annotations

import pytest

from cloudmux.errors import (
    CloudmuxError,
    DecodeError,
    LogQueryError,
    PtyCreationFailed,
    ResizeFailed,
    SessionAlreadyExists,
    SessionNotFound,
    SpawnFailed,
    TerminalError,
    WriteFailed,
)


@pytest.mark.parametrize(
    ("cls", "message"),
    [
        (SessionNotFound, "Session not found: abc"),
        (PtyCreationFailed, "Failed to create PTY: abc"),
        (SpawnFailed, "Failed to spawn process: abc"),
        (WriteFailed, "Failed to write to PTY: abc"),
        (ResizeFailed, "Failed to resize PTY: abc"),
        (SessionAlreadyExists, "Session already exists: abc"),
        (DecodeError, "Failed to decode input: abc"),
    ],
)
def test_terminal_error_messages(cls: type[TerminalError], message: str) -> None:
    err = cls("abc")
    assert str(err) == message
    assert err.detail == "abc"
    assert isinstance(err, TerminalError)
    assert isinstance(err, CloudmuxError)


def test_log_query_error_is_not_terminal_error() -> None:
    err = LogQueryError("throttled")
    assert isinstance(err, CloudmuxError)
    assert not isinstance(err, TerminalError)
    assert str(err) == "throttled"
