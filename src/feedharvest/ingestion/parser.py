"""Feed parsing and link extraction."""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List

import feedparser
import structlog

from .interfaces import LinkRecord
from ..errors import FeedParseError

logger = structlog.get_logger()

DEFAULT_TITLE = "no title"


def parse_date(value: str) -> datetime:
    """Parse an RSS/Atom date into an aware UTC datetime.

    Accepts RFC 2822 (``Sun, 10 Aug 2025 12:30:00 +0000``), RFC 3339
    (``2025-08-10T12:30:00Z``) and bare ``YYYY-MM-DD``. Raises ValueError.
    """
    if not value or not value.strip():
        raise ValueError("empty date")
    text = value.strip()

    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        parsed = None

    if parsed is None:
        iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
        try:
            parsed = datetime.fromisoformat(iso)
        except ValueError:
            raise ValueError(f"unrecognised date format: {value!r}") from None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        raise ValueError(f"date out of range in UTC: {value!r}") from None


def parse_feed(xml: str) -> feedparser.FeedParserDict:
    """Parse a feed body. Raises FeedParseError when it is not RSS/Atom."""
    parsed = feedparser.parse(xml)
    if parsed.bozo and not parsed.entries:
        raise FeedParseError(f"malformed feed: {parsed.get('bozo_exception')}")
    if not parsed.get("version") and not parsed.entries:
        raise FeedParseError("document is not an RSS or Atom feed")
    return parsed


def extract_links(parsed: feedparser.FeedParserDict) -> List[LinkRecord]:
    """Turn feed entries into link records.

    Entries without a link or without a parseable publish date are dropped.
    """
    links = []
    for entry in parsed.entries:
        url = entry.get("link")
        if not url:
            continue

        raw_date = entry.get("published") or entry.get("updated")
        if not raw_date:
            continue
        try:
            published_at = parse_date(raw_date)
        except ValueError:
            logger.debug("entry_date_unparseable", url=url, value=raw_date)
            continue

        links.append(LinkRecord(
            url=url,
            title=entry.get("title") or DEFAULT_TITLE,
            published_at=published_at,
        ))
    return links
