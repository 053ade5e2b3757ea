"""Dispatcher — owns the session managers and routes named commands to them.

Built once at startup, handed to whatever serves requests (a UI bridge,
the CLI, tests) and torn down with ``shutdown()``. There are no
module-level registries: two dispatchers never share sessions.
"""

from __future__ import annotations

import logging
from typing import Any

from cloudmux.commands.base import BaseCommand, CommandError, CommandResult
from cloudmux.commands.logs import log_commands
from cloudmux.commands.terminal import terminal_commands
from cloudmux.config import CloudmuxConfig
from cloudmux.logs.registry import LogTailRegistry
from cloudmux.logs.source import AwsCliLogSource, LogSource
from cloudmux.session.wire import Wire
from cloudmux.terminal.manager import TerminalManager

logger = logging.getLogger(__name__)


class Dispatcher:
    """Routes ``invoke(name, payload)`` calls to registered commands."""

    def __init__(
        self,
        wire: Wire | None = None,
        config: CloudmuxConfig | None = None,
        log_source: LogSource | None = None,
    ) -> None:
        self.config = config or CloudmuxConfig()
        self.wire = wire or Wire()
        self.terminals = TerminalManager(
            self.wire, self.config.terminal, aws_cli=self.config.aws.cli
        )
        source = log_source or AwsCliLogSource(
            cli=self.config.aws.cli, timeout=self.config.logs.query_timeout
        )
        self.log_tails = LogTailRegistry(source, self.wire, self.config.logs)

        self._commands: dict[str, BaseCommand] = {}
        for command in terminal_commands(self.terminals):
            self.register(command)
        for command in log_commands(self.log_tails, self.config.aws):
            self.register(command)

    def register(self, command: BaseCommand) -> None:
        if command.name in self._commands:
            logger.warning("Command %s already registered, overwriting", command.name)
        self._commands[command.name] = command

    def names(self) -> list[str]:
        return list(self._commands.keys())

    async def invoke(
        self, name: str, payload: dict[str, Any] | None = None
    ) -> CommandResult:
        command = self._commands.get(name)
        if command is None:
            return CommandError(
                error=f"Unknown command: {name}. Available commands: {', '.join(self.names())}"
            )
        return await command(payload)

    async def shutdown(self) -> None:
        """Stop every log tail and close every terminal, then close the wire."""
        await self.log_tails.shutdown()
        self.terminals.shutdown()
        self.wire.close()

    def __contains__(self, name: str) -> bool:
        return name in self._commands
