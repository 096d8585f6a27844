"""Data ingestion - fetching and parsing RSS feeds."""

from .interfaces import (
    Feed, FeedQuery, LinkRecord, ArticleRecord, ArticleStatus, LinkWithArticleStatus,
    HttpFetcherInterface, ScraperInterface,
)
from .fetcher import HttpFeedFetcher
from .parser import parse_feed, parse_date, extract_links

__all__ = [
    "Feed", "FeedQuery", "LinkRecord", "ArticleRecord", "ArticleStatus",
    "LinkWithArticleStatus", "HttpFetcherInterface", "ScraperInterface",
    "HttpFeedFetcher", "parse_feed", "parse_date", "extract_links",
]
