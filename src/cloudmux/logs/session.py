"""Log tail session — a cancellable polling loop over a log source."""

from __future__ import annotations

import asyncio
import enum
import logging
import threading
import time
import uuid

from pydantic import BaseModel, Field

from cloudmux.logs.source import LogEvent, LogSource
from cloudmux.session.wire import LOGS, Wire

logger = logging.getLogger(__name__)

POLL_INTERVAL = 2.0
LOOKBACK_SECONDS = 30.0


class LogTailStatus(enum.StrEnum):
    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"


class LogTailSessionInfo(BaseModel):
    """Information about a log tail session (serializable for the frontend)."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    log_group_name: str
    filter_pattern: str | None = None
    profile: str | None = None
    region: str | None = None
    status: LogTailStatus = LogTailStatus.RUNNING
    created_at: int = Field(default_factory=lambda: int(time.time() * 1000))


def initial_watermark(lookback_seconds: float, now_ms: int | None = None) -> int:
    """Start ``lookback_seconds`` in the past so a new tail shows recent history."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return now_ms - int(lookback_seconds * 1000)


def advance_watermark(current: int, events: list[LogEvent]) -> int:
    """Move past the newest event seen, never backwards.

    The +1 ms keeps the next query from returning events already
    published. Events sharing that exact millisecond but ingested after
    the query ran will be missed; that is the accepted trade-off.
    """
    if not events:
        return current
    return max(current, max(e.timestamp for e in events) + 1)


class LogTailSession:
    """Polls one log group on a fixed cadence until stopped.

    Stopping uses two signals, and both are needed:

    * ``_stop_flag`` (a threading.Event used as an atomic bool) is checked
      at the top of every iteration. It catches a stop that lands while
      the loop is between iterations and not yet waiting.
    * ``_shutdown`` (an asyncio.Event) is what the inter-poll wait blocks
      on, so a stop that lands mid-wait takes effect at once instead of
      after the full interval.

    A failed query is reported as an ``error`` event and polling carries
    on; the loop only ends through ``stop()`` (or task cancellation).
    """

    def __init__(
        self,
        info: LogTailSessionInfo,
        source: LogSource,
        wire: Wire,
        poll_interval: float = POLL_INTERVAL,
        lookback_seconds: float = LOOKBACK_SECONDS,
    ) -> None:
        self._info = info
        self._source = source
        self._wire = wire
        self._poll_interval = poll_interval
        self._lock = threading.Lock()
        self._stop_flag = threading.Event()
        self._shutdown = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task | None = None
        self.watermark = initial_watermark(lookback_seconds)

    @property
    def id(self) -> str:
        return self._info.id

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    @property
    def stopped(self) -> bool:
        return self._stop_flag.is_set()

    def info(self) -> LogTailSessionInfo:
        with self._lock:
            return self._info.model_copy()

    def start(self) -> asyncio.Task:
        """Spawn the polling task on the running loop."""
        if self._task is not None:
            raise RuntimeError(f"Log tail {self.id} already started")
        self._loop = asyncio.get_running_loop()
        self._task = self._loop.create_task(self.run(), name=f"log-tail-{self.id[:8]}")
        logger.info(
            "Log tail %s started: group=%s filter=%s",
            self.id,
            self._info.log_group_name,
            self._info.filter_pattern,
        )
        return self._task

    def stop(self) -> None:
        """Fire both cancellation signals. Safe to call from any thread."""
        self._stop_flag.set()
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self._shutdown.set)
        else:
            self._shutdown.set()
        with self._lock:
            if self._info.status == LogTailStatus.RUNNING:
                self._info.status = LogTailStatus.STOPPED

    async def run(self) -> None:
        """The polling loop. Publishes ``stopped`` however it exits."""
        try:
            while not self._stop_flag.is_set():
                await self._poll_once()
                try:
                    await asyncio.wait_for(
                        self._shutdown.wait(), timeout=self._poll_interval
                    )
                    break
                except asyncio.TimeoutError:
                    pass
        except Exception:
            logger.exception("Log tail %s crashed", self.id)
            with self._lock:
                self._info.status = LogTailStatus.ERROR
        finally:
            self._wire.send_stopped(LOGS, self.id)
            logger.info("Log tail %s stopped", self.id)

    async def _poll_once(self) -> None:
        info = self._info
        try:
            events = await self._source.tail(
                info.log_group_name,
                self.watermark,
                filter_pattern=info.filter_pattern,
                profile=info.profile,
                region=info.region,
            )
        except Exception as e:
            # Any single failed query is transient: report it and keep polling
            logger.warning("Log tail error for %s: %s", self.id, e)
            self._wire.send_error(LOGS, self.id, str(e))
            return

        if events:
            logger.debug("Log tail %s: %d events", self.id, len(events))
            self._wire.send_output(LOGS, self.id, [e.model_dump() for e in events])
            self.watermark = advance_watermark(self.watermark, events)
