"""Base command classes with Pydantic parameter validation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from cloudmux.errors import CloudmuxError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class NoParams(BaseModel):
    pass


class SessionIdParams(BaseModel):
    session_id: str


@dataclass
class CommandResult:
    """Base result from a command invocation."""

    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True, "value": self.value}
        return {"ok": False, "error": self.error}


@dataclass
class CommandOk(CommandResult):
    """Successful command result."""


@dataclass
class CommandError(CommandResult):
    """Failed command result."""

    error: str | None = "Unknown error"


class BaseCommand(ABC, Generic[T]):
    """Base class for all control commands.

    A command takes a JSON-shaped payload, validates it against
    ``param_model`` and returns a JSON-serializable value. Errors never
    escape: every failure becomes a ``CommandError`` with a readable
    message.

    Usage:
        class GetParams(BaseModel):
            session_id: str

        class GetCommand(BaseCommand[GetParams]):
            name = "get"
            param_model = GetParams

            async def execute(self, params: GetParams) -> Any:
                return {...}
    """

    name: ClassVar[str]
    param_model: ClassVar[type[BaseModel]] = NoParams

    async def __call__(self, arguments: dict[str, Any] | None = None) -> CommandResult:
        """Validate arguments and execute."""
        try:
            params = self.param_model.model_validate(arguments or {})
        except ValidationError as e:
            return CommandError(error=f"Invalid parameters: {e}")

        try:
            value = await self.execute(params)  # type: ignore[arg-type]
        except CloudmuxError as e:
            logger.debug("Command %s failed: %s", self.name, e)
            return CommandError(error=str(e))
        except Exception as e:
            logger.error("Command %s execution error: %s", self.name, e, exc_info=True)
            return CommandError(error=f"Error executing {self.name}: {e}")

        return CommandOk(value=value)

    @abstractmethod
    async def execute(self, params: T) -> Any:
        """Execute the command with validated parameters."""
        ...
