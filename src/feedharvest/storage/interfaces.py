"""Query and result types for link/article storage."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from ..ingestion.interfaces import ArticleRecord, ArticleStatus, LinkRecord, LinkWithArticleStatus


@dataclass
class InsertResult:
    """Outcome of an upsert call.

    `inserted` counts rows the database reported as affected, which covers
    both fresh inserts and conflict updates. `skipped` is everything else.
    """
    inserted: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.inserted + self.skipped

    def __str__(self) -> str:
        return f"{self.inserted} inserted or updated, {self.skipped} unchanged"


@dataclass
class LinkQuery:
    """Filter for the links table. Date bounds are inclusive."""
    url_pattern: Optional[str] = None
    published_from: Optional[datetime] = None
    published_to: Optional[datetime] = None


@dataclass
class ArticleQuery:
    """Filter for links joined with their article status."""
    url_pattern: Optional[str] = None
    published_from: Optional[datetime] = None
    published_to: Optional[datetime] = None
    status: Optional[ArticleStatus] = None
    status_code: Optional[int] = None
    limit: Optional[int] = None


@dataclass
class ArticleContentQuery:
    """Filter for the articles table. Date bounds are inclusive."""
    url_pattern: Optional[str] = None
    fetched_from: Optional[datetime] = None
    fetched_to: Optional[datetime] = None
    status_code: Optional[int] = None


class StorageInterface:
    """Interface for link and article persistence."""

    def store_links(self, links: List[LinkRecord]) -> InsertResult:
        """Upsert a batch of links in one transaction."""
        raise NotImplementedError

    def select_backlog(self, limit: Optional[int] = None) -> List[LinkWithArticleStatus]:
        """Links with no article row or a non-200 article, newest first."""
        raise NotImplementedError

    def store_article(self, article: ArticleRecord) -> InsertResult:
        """Upsert one fetched article."""
        raise NotImplementedError
