"""The handlers behind each command."""

from __future__ import annotations

import logging
import re
import time
import uuid
from datetime import datetime, timedelta, timezone
from fractions import Fraction
from urllib.parse import urlsplit

from .commands import Command, CommandError, State
from .database import DatabaseError, UniqueViolationError
from .models import User
from .rss import scrape_feed

logger = logging.getLogger(__name__)

_UNIT_NS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}
_DURATION_PART = re.compile(r"(\d*)(?:\.(\d*))?(ns|us|µs|μs|ms|s|m|h)?")
_INTEGER = re.compile(r"[+-]?\d+")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``1m30s``, ``500ms`` or ``1.5h``."""
    rest = text
    sign = 1
    if rest[:1] in ("+", "-") and rest:
        sign = -1 if rest[0] == "-" else 1
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f'time: invalid duration "{text}"')
    total = Fraction(0)
    pos = 0
    while pos < len(rest):
        match = _DURATION_PART.match(rest, pos)
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise ValueError(f'time: invalid duration "{text}"')
        if unit is None:
            raise ValueError(f'time: missing unit in duration "{text}"')
        value = Fraction(int(whole or "0"))
        if fraction:
            value += Fraction(int(fraction), 10 ** len(fraction))
        total += value * _UNIT_NS[unit]
        pos = match.end()
    nanoseconds = sign * int(total)
    return timedelta(microseconds=int(nanoseconds / 1000))


def _fraction_text(value: int, unit: int) -> str:
    whole, remainder = divmod(value, unit)
    text = str(whole)
    if remainder:
        text += "." + str(remainder).zfill(len(str(unit)) - 1).rstrip("0")
    return text


def _format_duration(delta: timedelta) -> str:
    ns = ((delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds) * 1000
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return f"{sign}{_fraction_text(ns, 1_000)}µs"
    if ns < 1_000_000_000:
        return f"{sign}{_fraction_text(ns, 1_000_000)}ms"
    hours, rest = divmod(ns, 3_600_000_000_000)
    minutes, rest = divmod(rest, 60_000_000_000)
    text = f"{_fraction_text(rest, 1_000_000_000)}s"
    if hours or minutes:
        text = f"{minutes}m{text}"
    if hours:
        text = f"{hours}h{text}"
    return sign + text


def _parse_url(raw: str) -> str:
    text = raw.strip()
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in text):
        raise CommandError(f'parse "{text}": invalid control character in URL')
    try:
        urlsplit(text)
    except ValueError as exc:
        raise CommandError(f'parse "{text}": {exc}') from exc
    return text


def handler_aggregate(state: State, cmd: Command) -> None:
    """Scrape feeds on a fixed interval until interrupted."""
    if len(cmd.args) < 1:
        raise CommandError("Usage: agg <time_between_requests>")
    try:
        interval = parse_duration(cmd.args[0])
    except ValueError as exc:
        raise CommandError(f"Invalid duration: {exc}") from exc
    if interval <= timedelta(0):
        raise CommandError("non-positive interval for ticker")
    print("Collecting feeds every:", _format_duration(interval))
    seconds = interval.total_seconds()
    next_tick = time.monotonic() + seconds
    try:
        while True:
            time.sleep(max(0.0, next_tick - time.monotonic()))
            next_tick += seconds
            try:
                scrape_feed(state.db)
            except Exception as exc:  # a failed scrape must not stop the loop
                logger.debug("scrape failed: %s", exc)
    except KeyboardInterrupt:
        return


def handler_add_feed(state: State, cmd: Command, user: User) -> None:
    """Add a feed owned by *user* and follow it."""
    if len(cmd.args) < 2:
        raise CommandError(
            f"Expected 2 arguments, feed name and feed URL, got {len(cmd.args)}"
        )
    name = cmd.args[0].strip()
    url = _parse_url(cmd.args[1])
    now = _now()
    feed = state.db.add_feed(uuid.uuid4(), name, now, now, url, user.id)
    now = _now()
    state.db.create_feed_follow(uuid.uuid4(), feed.user_id, feed.id, now, now)


def handler_feeds(state: State, cmd: Command) -> None:
    """List every feed with the name of the user who added it."""
    feeds = state.db.get_feeds()
    for index, feed in enumerate(feeds):
        user = state.db.get_user_by_id(feed.user_id)
        print("*", feed.name)
        print("*", feed.url)
        print("*", user.name)
        if index != len(feeds) - 1:
            print()


def handler_follow(state: State, cmd: Command, user: User) -> None:
    """Follow the feed with the given URL."""
    if len(cmd.args) < 1:
        return
    feed = state.db.get_feed_by_url(_parse_url(cmd.args[0]))
    now = _now()
    follow = state.db.create_feed_follow(uuid.uuid4(), user.id, feed.id, now, now)
    print("* Feed name:", follow.feed_name)
    print("* Feed URL:", follow.feed_url)
    print("* User:", follow.user_name)


def handler_following(state: State, cmd: Command, user: User) -> None:
    """List the feeds *user* follows."""
    follows = state.db.get_feed_follows_for_user(user.id)
    print("User", user.name, "follows:")
    print()
    for index, follow in enumerate(follows):
        print("* Feed name:", follow.feed_name)
        print("* Feed URL:", follow.feed_url)
        if index != len(follows) - 1:
            print()


def handler_unfollow(state: State, cmd: Command, user: User) -> None:
    """Stop following the feed with the given URL."""
    if len(cmd.args) < 1:
        raise CommandError("no feed URL provided")
    feed = state.db.get_feed_by_url(_parse_url(cmd.args[0]))
    state.db.delete_feed_follow(feed.id, user.id)
    print("Unfollowed", feed.name)
    print("URL:", feed.url)


def handler_browse(state: State, cmd: Command) -> None:
    """Show the newest posts, two unless a limit is given."""
    if len(cmd.args) < 1:
        limit = 2
    else:
        raw = cmd.args[0]
        if not _INTEGER.fullmatch(raw):
            raise CommandError(f"invalid limit argument: {raw!r}")
        limit = int(raw)
    if limit < 1:
        raise CommandError(f"limit must be greater than 0, got {limit}")
    posts = state.db.get_posts(limit)
    for index, post in enumerate(posts):
        print("Title:", post.title)
        print("Description:", post.description if post.description is not None else "")
        print("PublishedAt:", post.published_at if post.published_at is not None else "")
        if index < len(posts) - 1:
            print()


def handler_reset(state: State, cmd: Command) -> None:
    """Delete every user and log out."""
    state.db.delete_all_users()
    print("Reset completed. All users deleted.")
    state.config.set_user("")


def handler_login(state: State, cmd: Command) -> None:
    """Log in as an existing user."""
    if len(cmd.args) < 1:
        raise CommandError("No arguments provided")
    name = cmd.args[0].strip()
    try:
        state.db.get_user(name)
    except DatabaseError as exc:
        raise CommandError(f"User not found: {name}") from exc
    state.config.set_user(name)
    print(f"Logged in as {name}")


def handler_register(state: State, cmd: Command) -> None:
    """Create a user and log in as them."""
    if len(cmd.args) < 1:
        raise CommandError("Usage: register <username>")
    name = cmd.args[0].strip()
    now = _now()
    try:
        user = state.db.create_user(uuid.uuid4(), now, now, name)
    except UniqueViolationError as exc:
        raise CommandError(
            f"username '{name}' already exists. Please choose a different username."
        ) from exc
    state.config.set_user(user.name)
    print(f"Registered new user: {user.name}")


def handler_users(state: State, cmd: Command) -> None:
    """List users, marking the current one."""
    for user in state.db.get_users():
        if user.name == state.config.current_user_name:
            print(f"* {user.name} (current)")
        else:
            print("*", user.name)