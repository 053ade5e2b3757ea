"""Output streamer — republishes a PTY's output onto the wire."""

from __future__ import annotations

import base64
import errno
import io
import logging
import threading
from typing import Callable

from cloudmux.session.wire import TERMINAL, Wire

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4096


class OutputStreamer:
    """Drains one session's read half on a dedicated thread.

    Every nonempty read is base64-encoded (the wire is text oriented and
    the pty may emit arbitrary bytes) and published as ``output``. A clean
    EOF publishes ``closed``; any other read error publishes ``error``.
    Either way the loop stops, the reader is closed and ``on_exit`` runs
    with the error description (or None).

    Started once per session and never restarted. It holds no registry or
    session lock while reading, so writers are never blocked by it.
    """

    def __init__(
        self,
        session_id: str,
        reader: io.RawIOBase,
        wire: Wire,
        on_exit: Callable[[str | None], None] | None = None,
        chunk_size: int = CHUNK_SIZE,
        namespace: str = TERMINAL,
    ) -> None:
        self.session_id = session_id
        self._reader = reader
        self._wire = wire
        self._on_exit = on_exit
        self._chunk_size = chunk_size
        self._namespace = namespace
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError(f"Streamer for {self.session_id} already started")
        self._thread = threading.Thread(
            target=self._run,
            name=f"pty-stream-{self.session_id[:8]}",
            daemon=True,
        )
        self._thread.start()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the streamer to finish. Returns False on timeout."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        buf = bytearray(self._chunk_size)
        view = memoryview(buf)
        error: str | None = None
        try:
            while True:
                try:
                    n = self._reader.readinto(buf)
                except OSError as e:
                    # Linux reports EIO on the controller once every
                    # follower fd is closed: that is end-of-stream.
                    if e.errno != errno.EIO:
                        error = str(e)
                    n = 0
                except ValueError as e:
                    # Reader closed underneath us
                    error = str(e)
                    n = 0

                if error is not None:
                    logger.debug("PTY stream %s failed: %s", self.session_id, error)
                    self._wire.send_error(self._namespace, self.session_id, error)
                    break
                if not n:
                    self._wire.send_closed(self._namespace, self.session_id)
                    break

                encoded = base64.b64encode(view[:n]).decode("ascii")
                self._wire.send_output(self._namespace, self.session_id, encoded)
        finally:
            try:
                self._reader.close()
            except OSError:
                logger.debug("Reader for %s already closed", self.session_id)
            if self._on_exit is not None:
                try:
                    self._on_exit(error)
                except Exception:
                    logger.exception(
                        "Error in on_exit callback for session %s", self.session_id
                    )
