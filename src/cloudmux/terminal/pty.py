"""PTY session — one child process attached to a pseudo-terminal."""

from __future__ import annotations

import fcntl
import io
import logging
import os
import pty
import signal
import struct
import subprocess
import termios
import threading

from cloudmux.errors import PtyCreationFailed, ResizeFailed, SpawnFailed, WriteFailed
from cloudmux.terminal.session import SessionInfo, SessionStatus, can_transition

logger = logging.getLogger(__name__)

DEFAULT_COLS = 80
DEFAULT_ROWS = 24
REAP_TIMEOUT = 2.0

_LIVE = (SessionStatus.STARTING, SessionStatus.RUNNING)


def _set_winsize(fd: int, cols: int, rows: int) -> None:
    fcntl.ioctl(fd, termios.TIOCSWINSZ, struct.pack("HHHH", rows, cols, 0, 0))


def _acquire_controlling_tty() -> None:
    # Runs in the child after setsid(); stdin is already the follower
    fcntl.ioctl(0, termios.TIOCSCTTY, 0)


class PtySession:
    """A child process on a pseudo-terminal, with split read/write halves.

    The controller fd is kept for writing and for live resize. A duplicate
    of it is the read half: the session owns it until ``take_reader()``
    hands it to the output streamer, after which the session never reads.

    Two locks:

    * ``_lock`` guards status, geometry and the fds. It is only ever held
      for short, non-blocking sections.
    * ``_write_lock`` serializes writers. A write can block for as long as
      the child leaves its input unread, so it is held across ``os.write``
      while ``_lock`` is not.

    ``close()`` never waits on ``_write_lock``. If a write is in flight it
    kills the process group and leaves releasing the fds to that writer,
    which fails with EIO once the child is gone.

    The child is its own session leader with the follower as controlling
    terminal, so job control, Ctrl-C and SIGWINCH on resize all come from
    the kernel.
    """

    def __init__(
        self,
        info: SessionInfo,
        proc: subprocess.Popen,
        controller_fd: int,
        reader: io.FileIO,
        cols: int = DEFAULT_COLS,
        rows: int = DEFAULT_ROWS,
    ) -> None:
        self._info = info
        self._proc = proc
        self._pgid = proc.pid  # start_new_session makes the child a group leader
        self._writer_fd = controller_fd
        self._reader: io.FileIO | None = reader
        self._cols = cols
        self._rows = rows
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()

    @classmethod
    def create(
        cls,
        info: SessionInfo,
        command: list[str],
        env: dict[str, str] | None = None,
        cols: int = DEFAULT_COLS,
        rows: int = DEFAULT_ROWS,
        cwd: str | None = None,
        term: str = "xterm-256color",
    ) -> PtySession:
        """Open a pty pair and spawn ``command`` on its follower side.

        Raises:
            PtyCreationFailed: the pty pair could not be allocated or set up.
            SpawnFailed: the command could not be started.
        """
        try:
            controller_fd, follower_fd = pty.openpty()
        except OSError as e:
            raise PtyCreationFailed(str(e)) from e

        try:
            _set_winsize(controller_fd, cols, rows)
        except OSError as e:
            os.close(controller_fd)
            os.close(follower_fd)
            raise PtyCreationFailed(str(e)) from e

        child_env = {**os.environ, **(env or {})}
        child_env["TERM"] = term

        try:
            proc = subprocess.Popen(
                command,
                stdin=follower_fd,
                stdout=follower_fd,
                stderr=follower_fd,
                start_new_session=True,  # own session and process group
                preexec_fn=_acquire_controlling_tty,
                env=child_env,
                cwd=cwd,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            os.close(controller_fd)
            raise SpawnFailed(f"{command[0] if command else '<empty>'}: {e}") from e
        finally:
            # Parent always closes the follower side
            os.close(follower_fd)

        try:
            reader = io.FileIO(os.dup(controller_fd), "rb")
        except OSError as e:
            _kill_group(proc.pid)
            os.close(controller_fd)
            raise PtyCreationFailed(str(e)) from e

        logger.info(
            "PTY session %s started: pid=%d cmd=%s",
            info.id,
            proc.pid,
            " ".join(command),
        )
        return cls(info, proc, controller_fd, reader, cols=cols, rows=rows)

    # ------------------------------------------------------------------
    # Ownership transfer
    # ------------------------------------------------------------------

    def take_reader(self) -> io.FileIO:
        """Hand the read half to its single consumer.

        Raises:
            RuntimeError: the reader was already taken.
        """
        with self._lock:
            if self._reader is None:
                raise RuntimeError(f"Reader for session {self.id} already taken")
            reader, self._reader = self._reader, None
        return reader

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def mark_running(self) -> None:
        with self._lock:
            self._set_status(SessionStatus.RUNNING)

    def write(self, data: bytes) -> None:
        """Write all of ``data`` to the child's input.

        The controller fd is unbuffered, so the bytes are in the pty by the
        time this returns. Blocks while the pty input queue is full.

        Raises:
            WriteFailed: the session is no longer live or the write failed.
        """
        with self._write_lock:
            with self._lock:
                status = self._info.status
                if status not in _LIVE:
                    raise WriteFailed(f"session {self.id} is {status}")
                fd = self._writer_fd
            view = memoryview(data)
            try:
                while view:
                    written = os.write(fd, view)
                    view = view[written:]
            except OSError as e:
                raise WriteFailed(str(e)) from e
            finally:
                with self._lock:
                    if self._info.status not in _LIVE:
                        # close() or finish() ran while we were writing
                        self._release_fds()
                        self._set_status(SessionStatus.CLOSED)

    def resize(self, cols: int, rows: int) -> None:
        """Change the terminal geometry.

        The kernel sends SIGWINCH to the foreground process group.

        Raises:
            ResizeFailed: invalid size, session no longer live, or ioctl error.
        """
        if cols <= 0 or rows <= 0:
            raise ResizeFailed(f"invalid size {cols}x{rows}")
        with self._lock:
            status = self._info.status
            if status not in _LIVE:
                raise ResizeFailed(f"session {self.id} is {status}")
            try:
                _set_winsize(self._writer_fd, cols, rows)
            except OSError as e:
                raise ResizeFailed(str(e)) from e
            self._cols = cols
            self._rows = rows

    def close(self) -> None:
        """Request termination of the process tree and release the writer.

        Best effort: does not wait for the child to exit or for an
        in-flight write. The streamer sees the resulting EOF and finishes
        the cleanup.
        """
        with self._lock:
            status = self._info.status
            if status.terminal or status is SessionStatus.CLOSING:
                return
            self._set_status(SessionStatus.CLOSING)
            _kill_group(self._pgid)
            self._release_if_idle()
        logger.info("Closed PTY session %s (pgid=%d)", self.id, self._pgid)

    def finish(self, error: str | None = None) -> None:
        """Finalize after the output stream ended. Called by the streamer.

        Reaps the child and moves a still-live session to CLOSED, or to
        ERROR if the stream broke with ``error``.
        """
        exit_code = None
        try:
            exit_code = self._proc.wait(timeout=REAP_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.debug("PTY session %s: child still running after EOF", self.id)

        with self._lock:
            status = self._info.status
            if status in _LIVE:
                if error is not None:
                    self._set_status(SessionStatus.ERROR)
                else:
                    self._set_status(SessionStatus.CLOSED)
            self._release_if_idle()
        logger.info("PTY session %s exited (code=%s)", self.id, exit_code)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def id(self) -> str:
        return self._info.id

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def exit_code(self) -> int | None:
        return self._proc.poll()

    @property
    def status(self) -> SessionStatus:
        with self._lock:
            return self._info.status

    @property
    def geometry(self) -> tuple[int, int]:
        """Current (cols, rows)."""
        with self._lock:
            return self._cols, self._rows

    def info(self) -> SessionInfo:
        """A snapshot of the session record."""
        with self._lock:
            return self._info.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Internals (call with _lock held)
    # ------------------------------------------------------------------

    def _set_status(self, new: SessionStatus) -> None:
        current = self._info.status
        if not can_transition(current, new):
            logger.debug("Session %s: ignoring %s -> %s", self.id, current, new)
            return
        self._info.status = new

    def _release_if_idle(self) -> None:
        """Release the fds now unless a writer still holds the writer fd."""
        if not self._write_lock.acquire(blocking=False):
            logger.debug("Session %s: write in flight, deferring fd release", self.id)
            return
        try:
            self._release_fds()
            self._set_status(SessionStatus.CLOSED)
        finally:
            self._write_lock.release()

    def _release_fds(self) -> None:
        if self._writer_fd >= 0:
            try:
                os.close(self._writer_fd)
            except OSError:
                logger.debug("Writer fd for %s already closed", self.id)
            self._writer_fd = -1
        if self._reader is not None:
            # Nobody claimed the read half; it is ours to close
            self._reader.close()
            self._reader = None


def _kill_group(pgid: int) -> None:
    try:
        os.killpg(pgid, signal.SIGKILL)
    except ProcessLookupError:
        logger.debug("Process group already gone: %d", pgid)
    except PermissionError as e:
        logger.warning("Cannot kill process group %d: %s", pgid, e)
