"""Application state and the registry that dispatches CLI commands."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from gator.config import Config
from gator.database import Database


class CommandError(Exception):
    """Raised when a command cannot be dispatched or fails."""


@dataclass
class State:
    """What every command handler gets: the config and the database."""

    config: Config
    db: Optional[Database] = None


@dataclass
class Command:
    """A command name typed on the command line and its arguments."""

    name: str
    args: list[str] = field(default_factory=list)


Handler = Callable[[State, Command], Any]


@dataclass
class Commands:
    """Maps command names to handler functions."""

    handlers: dict[str, Handler] = field(default_factory=dict)

    def register(self, name: str, handler: Handler) -> None:
        """Register handler under name, replacing any earlier one."""
        self.handlers[name] = handler

    def run(self, state: Optional[State], command: Command) -> Any:
        """Run the handler registered for command.name."""
        if state is None:
            raise CommandError("state is missing")
        try:
            handler = self.handlers[command.name]
        except KeyError:
            raise CommandError(f"command is not registered: {command.name}") from None
        return handler(state, command)