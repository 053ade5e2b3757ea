"""Log sources — where a log tail gets its events from.

``AwsCliLogSource`` shells out to ``aws logs filter-log-events``, the same
CLI the terminal sessions use, so no SDK or extra credentials plumbing is
needed.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from cloudmux.errors import LogQueryError

logger = logging.getLogger(__name__)


class LogEvent(BaseModel):
    """One log event, in the shape the frontend renders."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: int
    message: str = ""
    log_stream_name: str = Field(default="", alias="logStreamName")
    ingestion_time: int | None = Field(default=None, alias="ingestionTime")


@runtime_checkable
class LogSource(Protocol):
    """Protocol for log sources."""

    async def tail(
        self,
        log_group_name: str,
        since_ms: int,
        filter_pattern: str | None = None,
        profile: str | None = None,
        region: str | None = None,
    ) -> list[LogEvent]:
        """Return events with ``timestamp >= since_ms`` matching the filter."""
        ...


class AwsCliLogSource:
    """Log source backed by ``aws logs filter-log-events``."""

    def __init__(self, cli: str = "aws", timeout: float = 30.0) -> None:
        self._cli = cli
        self._timeout = timeout

    def build_args(
        self,
        log_group_name: str,
        since_ms: int,
        filter_pattern: str | None = None,
        profile: str | None = None,
        region: str | None = None,
    ) -> list[str]:
        args = [
            self._cli,
            "logs",
            "filter-log-events",
            "--log-group-name",
            log_group_name,
            "--start-time",
            str(since_ms),
        ]
        if filter_pattern:
            args += ["--filter-pattern", filter_pattern]
        if profile:
            args += ["--profile", profile]
        if region:
            args += ["--region", region]
        # One FilterLogEvents page per poll; the next tick picks up the rest
        args += ["--no-paginate", "--output", "json"]
        return args

    async def tail(
        self,
        log_group_name: str,
        since_ms: int,
        filter_pattern: str | None = None,
        profile: str | None = None,
        region: str | None = None,
    ) -> list[LogEvent]:
        args = self.build_args(log_group_name, since_ms, filter_pattern, profile, region)
        try:
            stdout = await _run_cli_with_retry(args, self._timeout)
        except asyncio.TimeoutError as e:
            raise LogQueryError(
                f"Failed to tail log events: timed out after {self._timeout}s"
            ) from e
        return parse_events(stdout)


def parse_events(stdout: bytes) -> list[LogEvent]:
    """Parse ``filter-log-events`` JSON output into LogEvents."""
    if not stdout.strip():
        return []
    try:
        data = json.loads(stdout)
        return [LogEvent.model_validate(e) for e in data.get("events", [])]
    except (json.JSONDecodeError, AttributeError, ValidationError) as e:
        raise LogQueryError(f"Failed to tail log events: bad response: {e}") from e


@retry(
    retry=retry_if_exception_type(asyncio.TimeoutError),
    stop=stop_after_attempt(2),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def _run_cli_with_retry(args: list[str], timeout: float) -> bytes:
    """Run the CLI once, retrying a single time if it hangs."""
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise LogQueryError(f"Failed to tail log events: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise

    if process.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip()
        raise LogQueryError(
            f"Failed to tail log events: exit {process.returncode}: {detail}"
        )
    return stdout
