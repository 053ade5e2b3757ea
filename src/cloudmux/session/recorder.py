"""Append every wire event to a JSONL transcript."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any

import aiofiles

from cloudmux.session.wire import Wire, WireEvent

logger = logging.getLogger(__name__)


def event_to_dict(event: WireEvent) -> dict[str, Any]:
    """Serialize a WireEvent for JSONL storage."""
    return {
        "channel": event.channel,
        "type": event.type.value,
        "session_id": event.session_id,
        "data": event.data,
        "ts": time.time(),
    }


class WireRecorder:
    """Subscribes to a wire and writes its events to ``path``.

    Runs until the wire closes. Lines are appended, so one file can hold
    several runs.
    """

    def __init__(self, wire: Wire, path: str | Path) -> None:
        self.path = Path(path).expanduser()
        self._wire = wire
        self._task: asyncio.Task | None = None
        self.count = 0

    def start(self) -> asyncio.Task:
        if self._task is not None:
            raise RuntimeError("Recorder already started")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        queue = self._wire.subscribe()
        self._task = asyncio.create_task(self._record(queue))
        return self._task

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def _record(self, queue: asyncio.Queue[WireEvent | None]) -> None:
        try:
            async with aiofiles.open(self.path, "a", encoding="utf-8") as f:
                while True:
                    event = await queue.get()
                    if event is None:
                        break
                    await f.write(
                        json.dumps(event_to_dict(event), ensure_ascii=False) + "\n"
                    )
                    await f.flush()
                    self.count += 1
        finally:
            self._wire.unsubscribe(queue)
            logger.info("Recorded %d events to %s", self.count, self.path)
