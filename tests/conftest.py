"""Pytest configuration and shared fixtures."""

import pytest
import tempfile
import os
from datetime import datetime, timezone
from pathlib import Path

# Add src to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from feedharvest.errors import FeedFetchError, ScrapeError
from feedharvest.ingestion.interfaces import (
    HttpFetcherInterface, LinkRecord, ScraperInterface,
)


def rss(*items) -> str:
    """Build an RSS 2.0 document from (title, link, pubDate) tuples."""
    body = "".join(
        f"<item><title>{title}</title><link>{link}</link><pubDate>{date}</pubDate></item>"
        for title, link, date in items
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0"><channel><title>Test</title>{body}</channel></rss>'
    )


class FakeHttpFetcher(HttpFetcherInterface):
    """Serves canned bodies by URL; a value that is an Exception is raised."""

    def __init__(self, responses: dict):
        self.responses = responses
        self.calls = []

    async def fetch(self, url: str, timeout_seconds: int) -> str:
        self.calls.append((url, timeout_seconds))
        response = self.responses.get(url)
        if response is None:
            raise FeedFetchError(f"no route for {url}")
        if isinstance(response, Exception):
            raise response
        return response


class FakeScraper(ScraperInterface):
    """Returns markdown per URL; URLs in `failures` raise ScrapeError."""

    def __init__(self, markdown: dict = None, failures: set = None, default: str = "# Article"):
        self.markdown = markdown or {}
        self.failures = failures or set()
        self.default = default
        self.calls = []

    async def scrape(self, url: str):
        self.calls.append(url)
        if url in self.failures:
            raise ScrapeError("connection refused")
        return self.markdown.get(url, self.default)


@pytest.fixture
def temp_db():
    """Provide a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield f"sqlite:///{db_path}"
    # Cleanup
    try:
        os.unlink(db_path)
    except FileNotFoundError:
        pass


@pytest.fixture
def storage(temp_db):
    from feedharvest.storage.database import HarvestStorage
    storage = HarvestStorage(temp_db)
    yield storage
    storage.close()


@pytest.fixture
def sample_links():
    """Three links published a day apart."""
    return [
        LinkRecord(
            url=f"https://news.example.com/article-{i}",
            title=f"Article {i}",
            published_at=datetime(2025, 8, 26, 10 + i, 0, 0, tzinfo=timezone.utc),
        )
        for i in range(3)
    ]


@pytest.fixture
def feeds_yaml(tmp_path):
    """Write a feed config file and return its path."""
    path = tmp_path / "feeds.yaml"
    path.write_text(
        "news:\n"
        "  first: https://first.example.com/rss.xml\n"
        "  second: https://second.example.com/rss.xml\n"
        "  third: https://third.example.com/rss.xml\n"
        "blogs:\n"
        "  dev: https://dev.example.com/feed.xml\n",
        encoding="utf-8",
    )
    return path
