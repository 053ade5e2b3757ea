"""Commands for creating, writing to, resizing and closing PTY sessions."""

from __future__ import annotations

import asyncio
from typing import Any, ClassVar

from pydantic import BaseModel, Field

from cloudmux.commands.base import BaseCommand, NoParams, SessionIdParams
from cloudmux.terminal.manager import CreateSessionRequest, TerminalManager


class WriteParams(BaseModel):
    session_id: str
    data: str = Field(description="Base64-encoded bytes to send to the session.")


class ResizeParams(BaseModel):
    session_id: str
    cols: int = Field(gt=0, le=65535)
    rows: int = Field(gt=0, le=65535)


class _TerminalCommand(BaseCommand):
    def __init__(self, manager: TerminalManager) -> None:
        self._manager = manager


class CreateSessionCommand(_TerminalCommand):
    name: ClassVar[str] = "terminal_create_session"
    param_model: ClassVar[type[BaseModel]] = CreateSessionRequest

    async def execute(self, params: CreateSessionRequest) -> Any:
        # Spawning forks; keep it off the event loop thread
        response = await asyncio.to_thread(self._manager.create_session, params)
        return response.model_dump(mode="json")


class WriteCommand(_TerminalCommand):
    name: ClassVar[str] = "terminal_write"
    param_model: ClassVar[type[BaseModel]] = WriteParams

    async def execute(self, params: WriteParams) -> Any:
        # Manager calls may block on a session; none run on the loop thread
        await asyncio.to_thread(self._manager.write, params.session_id, params.data)
        return None


class ResizeCommand(_TerminalCommand):
    name: ClassVar[str] = "terminal_resize"
    param_model: ClassVar[type[BaseModel]] = ResizeParams

    async def execute(self, params: ResizeParams) -> Any:
        await asyncio.to_thread(
            self._manager.resize, params.session_id, params.cols, params.rows
        )
        return None


class CloseCommand(_TerminalCommand):
    name: ClassVar[str] = "terminal_close"
    param_model: ClassVar[type[BaseModel]] = SessionIdParams

    async def execute(self, params: SessionIdParams) -> Any:
        await asyncio.to_thread(self._manager.close, params.session_id)
        return None


class ListSessionsCommand(_TerminalCommand):
    name: ClassVar[str] = "terminal_list_sessions"
    param_model: ClassVar[type[BaseModel]] = NoParams

    async def execute(self, params: NoParams) -> Any:
        sessions = await asyncio.to_thread(self._manager.list_sessions)
        return [info.model_dump(mode="json") for info in sessions]


class GetSessionCommand(_TerminalCommand):
    name: ClassVar[str] = "terminal_get_session"
    param_model: ClassVar[type[BaseModel]] = SessionIdParams

    async def execute(self, params: SessionIdParams) -> Any:
        info = await asyncio.to_thread(self._manager.get_session, params.session_id)
        return info.model_dump(mode="json")


def terminal_commands(manager: TerminalManager) -> list[BaseCommand]:
    return [
        CreateSessionCommand(manager),
        WriteCommand(manager),
        ResizeCommand(manager),
        CloseCommand(manager),
        ListSessionsCommand(manager),
        GetSessionCommand(manager),
    ]
