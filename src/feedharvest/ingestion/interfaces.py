"""Interface definitions for feed ingestion and article fetching."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

SUCCESS_STATUS_CODE = 200
# Recorded when the scrape call itself fails locally.
FETCH_ERROR_STATUS_CODE = 500


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Feed:
    """A configured feed: group, name and feed URL."""
    group: str
    name: str
    url: str

    def __str__(self) -> str:
        return f"{self.group}/{self.name} ({self.url})"


@dataclass
class FeedQuery:
    """Filter for feed configuration lookups."""
    group: Optional[str] = None
    name: Optional[str] = None


@dataclass
class LinkRecord:
    """A syndicated item's link, keyed by URL in the links table."""
    url: str
    title: str
    published_at: datetime

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "title": self.title,
            "published_at": self.published_at.isoformat(),
        }


@dataclass
class ArticleRecord:
    """Fetched article content and fetch status, keyed by URL."""
    url: str
    status_code: int
    content: str
    fetched_at: datetime = field(default_factory=utcnow)

    @property
    def is_success(self) -> bool:
        return self.status_code == SUCCESS_STATUS_CODE

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "status_code": self.status_code,
            "content": self.content,
            "fetched_at": self.fetched_at.isoformat() if self.fetched_at else None,
        }


class ArticleStatus(Enum):
    """Derived processing state of a link."""
    UNPROCESSED = "unprocessed"  # no article row
    SUCCESS = "success"          # article row with status 200
    ERROR = "error"              # article row with any other status


def derive_status(status_code: Optional[int]) -> ArticleStatus:
    if status_code is None:
        return ArticleStatus.UNPROCESSED
    if status_code == SUCCESS_STATUS_CODE:
        return ArticleStatus.SUCCESS
    return ArticleStatus.ERROR


@dataclass
class LinkWithArticleStatus:
    """A link joined with its article row, if any."""
    url: str
    title: str
    published_at: datetime
    fetched_at: Optional[datetime] = None
    status_code: Optional[int] = None
    content: Optional[str] = None

    @property
    def status(self) -> ArticleStatus:
        return derive_status(self.status_code)

    @property
    def is_unprocessed(self) -> bool:
        return self.status is ArticleStatus.UNPROCESSED

    @property
    def is_error(self) -> bool:
        return self.status is ArticleStatus.ERROR

    @property
    def is_backlog(self) -> bool:
        return self.status is not ArticleStatus.SUCCESS


def filter_by_status(
    rows: List[LinkWithArticleStatus],
    status: ArticleStatus,
    status_code: Optional[int] = None,
) -> List[LinkWithArticleStatus]:
    """Rows in `status`; for ERROR, optionally only those with `status_code`."""
    return [
        r for r in rows
        if r.status is status and (status_code is None or r.status_code == status_code)
    ]


def count_statuses(rows: List[LinkWithArticleStatus]) -> Dict[str, int]:
    counts = {s.value: 0 for s in ArticleStatus}
    for row in rows:
        counts[row.status.value] += 1
    return counts


class HttpFetcherInterface:
    """Retrieves a feed body over HTTP."""

    async def fetch(self, url: str, timeout_seconds: int) -> str:
        """Return the response body. Raises FeedFetchError on failure."""
        raise NotImplementedError


class ScraperInterface:
    """Extracts article markdown from a page URL via a scraping service."""

    async def scrape(self, url: str) -> Optional[str]:
        """Return markdown (possibly None). Raises ScrapeError on failure."""
        raise NotImplementedError
