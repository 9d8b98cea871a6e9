"""Command dispatch, shared state and the logged-in-user wrapper."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from .config import Config
from .database import DatabaseError, Queries
from .models import User


class CommandError(Exception):
    """A command was used wrongly or could not complete."""


@dataclass
class State:
    """What every command handler works with."""

    config: Config
    db: Queries


@dataclass
class Command:
    """A command name with its arguments."""

    name: str
    args: list[str] = field(default_factory=list)


Handler = Callable[[State, Command], None]
UserHandler = Callable[[State, Command, User], None]


class Commands:
    """A registry of command handlers by name."""

    def __init__(self) -> None:
        self.handlers: dict[str, Handler] = {}

    def register(self, name: str, handler: Handler) -> None:
        """Register *handler* under *name*, replacing any earlier one."""
        self.handlers[name] = handler

    def run(self, state: State, cmd: Command) -> None:
        """Run the handler registered for *cmd*."""
        handler = self.handlers.get(cmd.name)
        if handler is None:
            raise CommandError(f"Unknown command: {cmd.name}")
        handler(state, cmd)


def middleware_logged_in(handler: UserHandler) -> Handler:
    """Wrap *handler* so that it receives the current user from the database."""

    def wrapped(state: State, cmd: Command) -> None:
        try:
            user = state.db.get_user(state.config.current_user_name)
        except DatabaseError as exc:
            raise CommandError(f"user not logged in: {exc}") from exc
        handler(state, cmd, user)

    return wrapped