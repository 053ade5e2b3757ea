"""Control commands — the request boundary in front of the session managers."""

from cloudmux.commands.base import BaseCommand, CommandError, CommandOk, CommandResult
from cloudmux.commands.logs import log_commands
from cloudmux.commands.terminal import terminal_commands

__all__ = [
    "BaseCommand",
    "CommandError",
    "CommandOk",
    "CommandResult",
    "log_commands",
    "terminal_commands",
]
