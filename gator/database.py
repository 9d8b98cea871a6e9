"""SQLite-backed storage for users, feeds, follows and posts."""

from __future__ import annotations

import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from .models import Feed, FeedFollowDetails, FeedFollowSummary, Post, User

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS feeds (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    last_fetched_at TEXT
);
CREATE TABLE IF NOT EXISTS feed_follows (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    feed_id TEXT NOT NULL REFERENCES feeds (id) ON DELETE CASCADE,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (user_id, feed_id)
);
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    description TEXT,
    published_at TEXT,
    feed_id TEXT NOT NULL REFERENCES feeds (id) ON DELETE CASCADE
);
"""

_USER_COLUMNS = "id, created_at, updated_at, name"
_FEED_COLUMNS = "id, created_at, updated_at, name, url, user_id, last_fetched_at"
_POST_COLUMNS = "id, created_at, updated_at, title, url, description, published_at, feed_id"


class DatabaseError(Exception):
    """A query could not be carried out."""


class NoRowsError(DatabaseError):
    """A query expected one row and found none."""

    def __init__(self, message: str = "sql: no rows in result set") -> None:
        super().__init__(message)


class UniqueViolationError(DatabaseError):
    """An insert clashed with a unique constraint."""

    code = "23505"

    def __init__(self, detail: str) -> None:
        super().__init__(f"duplicate key value violates unique constraint ({detail})")
        self.detail = detail


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.IntegrityError as exc:
        if "UNIQUE constraint failed" in str(exc):
            raise UniqueViolationError(str(exc)) from exc
        raise DatabaseError(str(exc)) from exc
    except sqlite3.Error as exc:
        raise DatabaseError(str(exc)) from exc


def _encode_time(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    try:
        aware = value if value.utcoffset() is not None else value.astimezone()
        aware = aware.astimezone(timezone.utc)
    except (OverflowError, ValueError, OSError):
        aware = value.replace(tzinfo=timezone.utc)
    return aware.isoformat(timespec="microseconds")


def _decode_time(text: Optional[str]) -> Optional[datetime]:
    return None if text is None else datetime.fromisoformat(text)


def _user(row: Sequence[Any]) -> User:
    return User(uuid.UUID(row[0]), _decode_time(row[1]), _decode_time(row[2]), row[3])


def _feed(row: Sequence[Any]) -> Feed:
    return Feed(
        id=uuid.UUID(row[0]),
        created_at=_decode_time(row[1]),
        updated_at=_decode_time(row[2]),
        name=row[3],
        url=row[4],
        user_id=uuid.UUID(row[5]),
        last_fetched_at=_decode_time(row[6]),
    )


def _post(row: Sequence[Any]) -> Post:
    return Post(
        id=uuid.UUID(row[0]),
        created_at=_decode_time(row[1]),
        updated_at=_decode_time(row[2]),
        title=row[3],
        url=row[4],
        description=row[5],
        published_at=_decode_time(row[6]),
        feed_id=uuid.UUID(row[7]),
    )


def _sqlite_target(db_url: str) -> str:
    if db_url in ("", ":memory:"):
        return ":memory:"
    prefix = "sqlite://"
    if db_url.startswith(prefix):
        rest = db_url[len(prefix):]
        if not rest:
            return ":memory:"
        return rest[1:] if rest.startswith("/") else rest
    if "://" in db_url:
        raise DatabaseError(f"unsupported database URL: {db_url}")
    return db_url


def connect(db_url: str) -> "Queries":
    """Open the database named by *db_url* and make sure its tables exist.

    Accepts a file path, ``:memory:``, or a ``sqlite://`` URL.
    """
    target = _sqlite_target(db_url)
    with _translate_errors():
        connection = sqlite3.connect(target)
    queries = Queries(connection)
    queries.create_schema()
    return queries


class Queries:
    """Typed queries over a database connection."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        connection.isolation_level = None
        with _translate_errors():
            connection.execute("PRAGMA foreign_keys = ON")
        self._conn = connection

    def __enter__(self) -> "Queries":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        with _translate_errors():
            return self._conn.execute(sql, tuple(params))

    def _fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Sequence[Any]:
        with _translate_errors():
            row = self._conn.execute(sql, tuple(params)).fetchone()
        if row is None:
            raise NoRowsError()
        return row

    def _fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[Sequence[Any]]:
        with _translate_errors():
            return self._conn.execute(sql, tuple(params)).fetchall()

    def create_schema(self) -> None:
        """Create the tables if they are missing."""
        with _translate_errors():
            self._conn.executescript(_SCHEMA)

    @contextmanager
    def transaction(self) -> Iterator["Queries"]:
        """Run the enclosed queries in one transaction, rolled back on error."""
        self._execute("BEGIN")
        try:
            yield self
        except BaseException:
            self._execute("ROLLBACK")
            raise
        else:
            self._execute("COMMIT")

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    # feed follows

    def create_feed_follow(
        self,
        id: uuid.UUID,
        user_id: uuid.UUID,
        feed_id: uuid.UUID,
        created_at: datetime,
        updated_at: datetime,
    ) -> FeedFollowDetails:
        """Insert a follow and return it with the feed and user names."""
        self._execute(
            "INSERT INTO feed_follows (id, user_id, feed_id, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (str(id), str(user_id), str(feed_id), _encode_time(created_at), _encode_time(updated_at)),
        )
        row = self._fetch_one(
            "SELECT feed_follows.id, feed_follows.user_id, feed_follows.feed_id, "
            "feed_follows.created_at, feed_follows.updated_at, "
            "feeds.name, feeds.url, users.name "
            "FROM feed_follows "
            "INNER JOIN feeds ON feed_follows.feed_id = feeds.id "
            "INNER JOIN users ON feed_follows.user_id = users.id "
            "WHERE feed_follows.id = ?",
            (str(id),),
        )
        return FeedFollowDetails(
            id=uuid.UUID(row[0]),
            user_id=uuid.UUID(row[1]),
            feed_id=uuid.UUID(row[2]),
            created_at=_decode_time(row[3]),
            updated_at=_decode_time(row[4]),
            feed_name=row[5],
            feed_url=row[6],
            user_name=row[7],
        )

    def delete_feed_follow(self, feed_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Remove the follow of *feed_id* by *user_id*, if any."""
        self._execute(
            "DELETE FROM feed_follows WHERE feed_id = ? AND user_id = ?",
            (str(feed_id), str(user_id)),
        )

    def get_feed_follows_for_user(self, user_id: uuid.UUID) -> list[FeedFollowSummary]:
        """Return the feeds followed by *user_id*."""
        rows = self._fetch_all(
            "SELECT feeds.name, feeds.url, users.name "
            "FROM feed_follows "
            "INNER JOIN feeds ON feed_follows.feed_id = feeds.id "
            "INNER JOIN users ON feed_follows.user_id = users.id "
            "WHERE feed_follows.user_id = ? "
            "ORDER BY feed_follows.rowid",
            (str(user_id),),
        )
        return [FeedFollowSummary(feed_name=r[0], feed_url=r[1], user_name=r[2]) for r in rows]

    # feeds

    def add_feed(
        self,
        id: uuid.UUID,
        name: str,
        created_at: datetime,
        updated_at: datetime,
        url: str,
        user_id: uuid.UUID,
    ) -> Feed:
        """Insert a feed and return it."""
        self._execute(
            "INSERT INTO feeds (id, name, created_at, updated_at, url, user_id) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (str(id), name, _encode_time(created_at), _encode_time(updated_at), url, str(user_id)),
        )
        return _feed(self._fetch_one(f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(id),)))

    def get_feed_by_url(self, url: str) -> Feed:
        """Return the feed with *url*, or raise NoRowsError."""
        return _feed(self._fetch_one(f"SELECT {_FEED_COLUMNS} FROM feeds WHERE url = ?", (url,)))

    def get_feeds(self) -> list[Feed]:
        """Return every feed."""
        return [_feed(r) for r in self._fetch_all(f"SELECT {_FEED_COLUMNS} FROM feeds ORDER BY rowid")]

    def get_next_feed_to_fetch(self) -> Feed:
        """Return the feed fetched longest ago, never-fetched feeds first."""
        return _feed(
            self._fetch_one(
                f"SELECT {_FEED_COLUMNS} FROM feeds "
                "ORDER BY last_fetched_at IS NOT NULL, last_fetched_at ASC LIMIT 1"
            )
        )

    def mark_feed_fetched(self, id: uuid.UUID) -> None:
        """Set the feed's fetch and update times to now."""
        now = _encode_time(datetime.now(timezone.utc))
        self._execute(
            "UPDATE feeds SET last_fetched_at = ?, updated_at = ? WHERE id = ?",
            (now, now, str(id)),
        )

    # posts

    def create_post(
        self,
        id: uuid.UUID,
        created_at: datetime,
        updated_at: datetime,
        title: str,
        url: str,
        description: Optional[str],
        published_at: Optional[datetime],
        feed_id: uuid.UUID,
    ) -> Post:
        """Insert a post and return it."""
        self._execute(
            f"INSERT INTO posts ({_POST_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                str(id),
                _encode_time(created_at),
                _encode_time(updated_at),
                title,
                url,
                description,
                _encode_time(published_at),
                str(feed_id),
            ),
        )
        return _post(self._fetch_one(f"SELECT {_POST_COLUMNS} FROM posts WHERE id = ?", (str(id),)))

    def get_posts(self, limit: int) -> list[Post]:
        """Return up to *limit* posts, newest first, undated posts leading."""
        if limit < 0:
            raise DatabaseError("LIMIT must not be negative")
        rows = self._fetch_all(
            f"SELECT {_POST_COLUMNS} FROM posts "
            "ORDER BY published_at IS NULL DESC, published_at DESC LIMIT ?",
            (limit,),
        )
        return [_post(r) for r in rows]

    # users

    def create_user(
        self, id: uuid.UUID, created_at: datetime, updated_at: datetime, name: str
    ) -> User:
        """Insert a user and return it."""
        self._execute(
            f"INSERT INTO users ({_USER_COLUMNS}) VALUES (?, ?, ?, ?)",
            (str(id), _encode_time(created_at), _encode_time(updated_at), name),
        )
        return _user(self._fetch_one(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (str(id),)))

    def delete_all_users(self) -> None:
        """Delete every user, and with them their feeds, follows and posts."""
        self._execute("DELETE FROM users")

    def get_user(self, name: str) -> User:
        """Return the user called *name*, or raise NoRowsError."""
        return _user(self._fetch_one(f"SELECT {_USER_COLUMNS} FROM users WHERE name = ?", (name,)))

    def get_user_by_id(self, id: uuid.UUID) -> User:
        """Return the user with *id*, or raise NoRowsError."""
        return _user(self._fetch_one(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (str(id),)))

    def get_users(self) -> list[User]:
        """Return every user."""
        return [_user(r) for r in self._fetch_all(f"SELECT {_USER_COLUMNS} FROM users ORDER BY rowid")]