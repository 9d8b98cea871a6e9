"""Fetching and parsing RSS feeds, and storing their items as posts."""

from __future__ import annotations

import html
import logging
import re
import uuid
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union
from urllib.error import HTTPError
from urllib.request import Request, urlopen

from .database import DatabaseError, Queries, UniqueViolationError
from .models import Post

logger = logging.getLogger(__name__)

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_ZONE_NAME_LAYOUTS = (
    "%a, %d %b %Y %H:%M:%S",
    "%d %b %y %H:%M",
    "%A, %d-%b-%y %H:%M:%S",
)
_NUMERIC_ZONE_LAYOUT = "%a, %d %b %Y %H:%M:%S %z"
_RFC3339 = re.compile(
    r"(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})"
)


@dataclass
class RSSItem:
    """One entry of a feed."""

    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""


@dataclass
class RSSFeed:
    """A feed's channel and its items."""

    title: str = ""
    link: str = ""
    description: str = ""
    items: list[RSSItem] = field(default_factory=list)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local(child.tag) == name]


def _text(element: ET.Element, name: str) -> str:
    found = _children(element, name)
    return "".join(found[-1].itertext()) if found else ""


def parse_feed(data: Union[bytes, str]) -> RSSFeed:
    """Parse an RSS document, unescaping HTML entities in titles and descriptions."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise ValueError(f"invalid feed XML: {exc}") from exc
    channels = _children(root, "channel")
    if not channels:
        return RSSFeed()
    channel = channels[-1]
    items = [
        RSSItem(
            title=html.unescape(_text(item, "title")),
            link=_text(item, "link"),
            description=html.unescape(_text(item, "description")),
            pub_date=_text(item, "pubDate"),
        )
        for item in _children(channel, "item")
    ]
    return RSSFeed(
        title=html.unescape(_text(channel, "title")),
        link=_text(channel, "link"),
        description=html.unescape(_text(channel, "description")),
        items=items,
    )


def fetch_feed(feed_url: str, timeout: Optional[float] = None) -> RSSFeed:
    """Download and parse the feed at *feed_url*."""
    request = Request(feed_url, method="GET", headers={"User-Agent": "gator"})
    kwargs = {} if timeout is None else {"timeout": timeout}
    try:
        with urlopen(request, **kwargs) as response:
            data = response.read()
    except HTTPError as exc:
        data = exc.read()
    return parse_feed(data)


def parse_time(pub_date: str) -> datetime:
    """Parse a publication date in one of the common feed formats.

    Returns the zero time (year 1, UTC) when no format matches.
    """
    head, _, zone = pub_date.rpartition(" ")
    if zone.isalpha() and zone.isupper() and len(zone) >= 3:
        for layout in _ZONE_NAME_LAYOUTS:
            try:
                return datetime.strptime(head, layout).replace(tzinfo=timezone.utc)
            except ValueError:
                continue
    try:
        return datetime.strptime(pub_date, _NUMERIC_ZONE_LAYOUT)
    except ValueError:
        pass
    match = _RFC3339.fullmatch(pub_date)
    if match:
        base, fraction, offset = match.groups()
        text = base
        if fraction:
            text += "." + fraction[:6].ljust(6, "0")
        text += "+00:00" if offset == "Z" else offset
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            pass
    return ZERO_TIME


def scrape_feed(db: Queries) -> list[Post]:
    """Fetch the feed due next, mark it fetched and store its new items."""
    target = db.get_next_feed_to_fetch()
    feed = fetch_feed(target.url)
    db.mark_feed_fetched(target.id)
    created = []
    for item in feed.items:
        now = datetime.now(timezone.utc)
        try:
            post = db.create_post(
                id=uuid.uuid4(),
                created_at=now,
                updated_at=now,
                title=item.title,
                url=item.link,
                description=item.description,
                published_at=parse_time(item.pub_date),
                feed_id=target.id,
            )
        except UniqueViolationError:
            continue
        except DatabaseError as exc:
            logger.warning("couldn't create post: %s", exc)
            continue
        created.append(post)
    return created