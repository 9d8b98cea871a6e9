"""The command-line entry point."""

from __future__ import annotations

import sys
from typing import Optional, Sequence

from .commands import Command, CommandError, Commands, State, middleware_logged_in
from .config import read_config
from .database import DatabaseError, connect
from .handlers import (
    handler_add_feed,
    handler_aggregate,
    handler_browse,
    handler_feeds,
    handler_follow,
    handler_following,
    handler_login,
    handler_register,
    handler_reset,
    handler_unfollow,
    handler_users,
)


def init_commands() -> Commands:
    """Return a registry holding every command."""
    commands = Commands()
    commands.register("login", handler_login)
    commands.register("register", handler_register)
    commands.register("reset", handler_reset)
    commands.register("users", handler_users)
    commands.register("agg", handler_aggregate)
    commands.register("addfeed", middleware_logged_in(handler_add_feed))
    commands.register("feeds", handler_feeds)
    commands.register("follow", middleware_logged_in(handler_follow))
    commands.register("following", middleware_logged_in(handler_following))
    commands.register("unfollow", middleware_logged_in(handler_unfollow))
    commands.register("browse", handler_browse)
    return commands


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run one command; return the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        config = read_config()
    except (OSError, ValueError) as exc:
        print(exc)
        return 1
    try:
        db = connect(config.db_url)
    except DatabaseError as exc:
        print(exc)
        return 1
    with db:
        if not args:
            print("No command provided")
            return 1
        state = State(config=config, db=db)
        try:
            init_commands().run(state, Command(args[0], args[1:]))
        except (CommandError, DatabaseError, OSError, ValueError) as exc:
            print(exc)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())