"""Records stored in and returned by the database."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class User:
    """A registered user."""

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    name: str


@dataclass(frozen=True)
class Feed:
    """An RSS feed added by a user."""

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    name: str
    url: str
    user_id: uuid.UUID
    last_fetched_at: Optional[datetime] = None


@dataclass(frozen=True)
class FeedFollow:
    """A user following a feed."""

    id: uuid.UUID
    user_id: uuid.UUID
    feed_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Post:
    """An item collected from a feed."""

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    title: str
    url: str
    description: Optional[str]
    published_at: Optional[datetime]
    feed_id: uuid.UUID


@dataclass(frozen=True)
class FeedFollowDetails:
    """A newly created follow together with the feed and user names."""

    id: uuid.UUID
    user_id: uuid.UUID
    feed_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    feed_name: str
    feed_url: str
    user_name: str


@dataclass(frozen=True)
class FeedFollowSummary:
    """The names behind one of a user's follows."""

    feed_name: str
    feed_url: str
    user_name: str