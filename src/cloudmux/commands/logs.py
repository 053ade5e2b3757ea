"""Log tail commands."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel

from cloudmux.commands.base import BaseCommand, NoParams, SessionIdParams
from cloudmux.config import AwsConfig
from cloudmux.logs.registry import LogTailRegistry


class StartLogTailParams(BaseModel):
    log_group_name: str
    filter_pattern: str | None = None
    profile: str | None = None
    region: str | None = None


class _LogsCommand(BaseCommand):
    def __init__(self, registry: LogTailRegistry, aws: AwsConfig | None = None) -> None:
        self._registry = registry
        self._aws = aws or AwsConfig()


class StartLogTailCommand(_LogsCommand):
    name: ClassVar[str] = "start_log_tail"
    param_model: ClassVar[type[BaseModel]] = StartLogTailParams

    async def execute(self, params: StartLogTailParams) -> Any:
        return await self._registry.create(
            params.log_group_name,
            filter_pattern=params.filter_pattern,
            profile=params.profile or self._aws.profile,
            region=params.region or self._aws.region,
        )


class StopLogTailCommand(_LogsCommand):
    name: ClassVar[str] = "stop_log_tail"
    param_model: ClassVar[type[BaseModel]] = SessionIdParams

    async def execute(self, params: SessionIdParams) -> Any:
        self._registry.stop(params.session_id)
        return None


class ListLogTailsCommand(_LogsCommand):
    name: ClassVar[str] = "list_log_tail_sessions"
    param_model: ClassVar[type[BaseModel]] = NoParams

    async def execute(self, params: NoParams) -> Any:
        return [info.model_dump(mode="json") for info in self._registry.list()]


def log_commands(
    registry: LogTailRegistry, aws: AwsConfig | None = None
) -> list[BaseCommand]:
    return [
        StartLogTailCommand(registry, aws),
        StopLogTailCommand(registry, aws),
        ListLogTailsCommand(registry, aws),
    ]
