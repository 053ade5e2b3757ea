"""Log tail registry — starts, stops and lists log tail sessions."""

from __future__ import annotations

import asyncio
import logging

from cloudmux.config import LogTailConfig
from cloudmux.errors import SessionNotFound
from cloudmux.logs.session import LogTailSession, LogTailSessionInfo
from cloudmux.logs.source import LogSource
from cloudmux.registry import SessionRegistry
from cloudmux.session.wire import Wire

logger = logging.getLogger(__name__)


class LogTailRegistry:
    """Registry of live log tails.

    ``create`` starts polling immediately; ``stop`` removes the entry and
    fires the session's cancellation signals. Summaries returned by
    ``list``/``get`` never expose the cancellation machinery.
    """

    def __init__(
        self,
        source: LogSource,
        wire: Wire,
        config: LogTailConfig | None = None,
    ) -> None:
        self._source = source
        self._wire = wire
        self._config = config or LogTailConfig()
        self._registry: SessionRegistry[LogTailSession] = SessionRegistry()
        self._tasks: set[asyncio.Task] = set()

    async def create(
        self,
        log_group_name: str,
        filter_pattern: str | None = None,
        profile: str | None = None,
        region: str | None = None,
    ) -> str:
        """Register a new tail and start its polling task. Returns the id."""
        info = LogTailSessionInfo(
            log_group_name=log_group_name,
            filter_pattern=filter_pattern or None,
            profile=profile,
            region=region,
        )
        session = LogTailSession(
            info,
            self._source,
            self._wire,
            poll_interval=self._config.poll_interval,
            lookback_seconds=self._config.lookback_seconds,
        )
        session_id = self._registry.create(session)
        task = session.start()
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return session_id

    def stop(self, session_id: str) -> None:
        """Stop and remove a tail.

        Raises:
            SessionNotFound: no live tail with this id.
        """
        session = self._registry.remove(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        session.stop()

    def get(self, session_id: str) -> LogTailSessionInfo:
        session = self._registry.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session.info()

    def list(self) -> list[LogTailSessionInfo]:
        return self._registry.list()

    async def shutdown(self) -> None:
        """Stop every tail and wait for the polling tasks to finish."""
        for session_id in self._registry.ids():
            try:
                self.stop(session_id)
            except SessionNotFound:
                # Raced with a concurrent stop
                continue
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        logger.info("All log tails stopped")

    def __len__(self) -> int:
        return len(self._registry)
