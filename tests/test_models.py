import dataclasses
import uuid
from datetime import datetime, timezone

import pytest

from gator.models import Feed, FeedFollow, FeedFollowDetails, FeedFollowSummary, Post, User

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_user_is_frozen():
    user = User(uuid.uuid4(), NOW, NOW, "alice")
    with pytest.raises(dataclasses.FrozenInstanceError):
        user.name = "bob"
    assert user.name == "alice"


def test_feed_last_fetched_defaults_to_none():
    feed = Feed(uuid.uuid4(), NOW, NOW, "news", "https://example.com/rss", uuid.uuid4())
    assert feed.last_fetched_at is None


def test_feed_replace_keeps_other_fields():
    feed = Feed(uuid.uuid4(), NOW, NOW, "news", "https://example.com/rss", uuid.uuid4())
    fetched = dataclasses.replace(feed, last_fetched_at=NOW)
    assert fetched.last_fetched_at == NOW
    assert fetched.url == feed.url
    assert fetched.id == feed.id


def test_equality_by_value():
    ident = uuid.uuid4()
    assert FeedFollow(ident, ident, ident, NOW, NOW) == FeedFollow(ident, ident, ident, NOW, NOW)
    assert FeedFollowSummary("a", "u", "x") == FeedFollowSummary("a", "u", "x")
    assert FeedFollowSummary("a", "u", "x") != FeedFollowSummary("b", "u", "x")


def test_post_optional_fields():
    post = Post(uuid.uuid4(), NOW, NOW, "t", "https://example.com/p", None, None, uuid.uuid4())
    assert post.description is None
    assert post.published_at is None


def test_follow_details_positional_order():
    follow_id, user_id, feed_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    later = datetime(2024, 5, 2, 12, 0, tzinfo=timezone.utc)
    details = FeedFollowDetails(
        follow_id,
        user_id,
        feed_id,
        NOW,
        later,
        "news",
        "https://example.com/rss",
        "alice",
    )
    assert details.id == follow_id
    assert details.user_id == user_id
    assert details.feed_id == feed_id
    assert details.created_at == NOW
    assert details.updated_at == later
    assert details.feed_name == "news"
    assert details.feed_url == "https://example.com/rss"
    assert details.user_name == "alice"