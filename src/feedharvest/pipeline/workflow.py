"""Ingestion workflow: collect feed links, then work through the article backlog."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

import structlog

from ..config.feeds import search_feeds
from ..config.settings import settings
from ..errors import FeedHarvestError, ScrapeError
from ..ingestion.fetcher import HttpFeedFetcher
from ..ingestion.interfaces import (
    FETCH_ERROR_STATUS_CODE, SUCCESS_STATUS_CODE, ArticleRecord, Feed, FeedQuery,
    HttpFetcherInterface, LinkRecord, ScraperInterface, utcnow,
)
from ..ingestion.parser import extract_links, parse_feed
from ..scraping.firecrawl import FirecrawlClient
from ..storage.interfaces import StorageInterface

logger = structlog.get_logger()

CONTENT_UNAVAILABLE = "content unavailable"


class WorkflowStage(Enum):
    IDLE = "idle"
    LOADING_FEEDS = "loading_feeds"
    COLLECTING_LINKS = "collecting_links"
    SELECTING_BACKLOG = "selecting_backlog"
    FETCHING_ARTICLES = "fetching_articles"
    DONE = "done"


async def fetch_article(scraper: ScraperInterface, url: str) -> ArticleRecord:
    """Scrape `url` into an article record. Scrape failures become status 500 rows."""
    try:
        markdown = await scraper.scrape(url)
    except Exception as e:
        if not isinstance(e, ScrapeError):
            logger.exception("article_scrape_unexpected_error", url=url)
        return ArticleRecord(
            url=url,
            status_code=FETCH_ERROR_STATUS_CODE,
            content=f"fetch error: {e}",
            fetched_at=utcnow(),
        )
    return ArticleRecord(
        url=url,
        status_code=SUCCESS_STATUS_CODE,
        content=markdown or CONTENT_UNAVAILABLE,
        fetched_at=utcnow(),
    )


class IngestionWorkflow:
    """Sequential, single-pass feed-to-article workflow.

    Feed and link failures are logged and skipped. Only loading the feed
    configuration can fail the run.
    """

    def __init__(
        self,
        storage: StorageInterface,
        http_client: HttpFetcherInterface,
        scraper: ScraperInterface,
        feed_timeout_seconds: int = None,
        backlog_limit: Optional[int] = None,
    ):
        self.storage = storage
        self.http_client = http_client
        self.scraper = scraper
        self.feed_timeout_seconds = (
            settings.feed_fetch_timeout_seconds if feed_timeout_seconds is None
            else feed_timeout_seconds
        )
        self.backlog_limit = backlog_limit
        self.stage = WorkflowStage.IDLE

    def _enter(self, stage: WorkflowStage) -> None:
        self.stage = stage
        logger.debug("workflow_stage", stage=stage.value)

    async def run(
        self,
        group: Optional[str] = None,
        name: Optional[str] = None,
        config_path: Optional[Union[str, Path]] = None,
    ) -> dict:
        """Run the workflow for all feeds, or those matching group/name.

        Raises ConfigError if the feed configuration cannot be loaded.
        """
        start = datetime.now()
        stats = {
            "feeds": 0,
            "feeds_failed": 0,
            "links_extracted": 0,
            "links_stored": 0,
            "backlog": 0,
            "articles_fetched": 0,
            "articles_failed": 0,
            "articles_store_failed": 0,
        }

        self._enter(WorkflowStage.LOADING_FEEDS)
        query = FeedQuery(group=group, name=name) if (group or name) else None
        feeds = search_feeds(query, config_path)
        stats["feeds"] = len(feeds)

        if not feeds and query is not None:
            logger.info("no_feeds_matched", group=group, name=name)
            self._enter(WorkflowStage.DONE)
            stats["elapsed_seconds"] = (datetime.now() - start).total_seconds()
            return stats
        logger.info("feeds_loaded", count=len(feeds), group=group, name=name)

        self._enter(WorkflowStage.COLLECTING_LINKS)
        await self.collect_links(feeds, stats)

        self._enter(WorkflowStage.SELECTING_BACKLOG)
        await self.collect_backlog_articles(stats)

        self._enter(WorkflowStage.DONE)
        stats["elapsed_seconds"] = (datetime.now() - start).total_seconds()
        logger.info("workflow_done", **stats)
        return stats

    async def fetch_feed_links(self, feed: Feed) -> List[LinkRecord]:
        """Fetch and parse one feed into link records."""
        xml = await self.http_client.fetch(feed.url, self.feed_timeout_seconds)
        return extract_links(parse_feed(xml))

    async def collect_links(self, feeds: List[Feed], stats: dict = None) -> dict:
        """Fetch, parse and store links for each feed in turn."""
        stats = stats if stats is not None else {}
        for key in ("feeds_failed", "links_extracted", "links_stored"):
            stats.setdefault(key, 0)

        for feed in feeds:
            log = logger.bind(group=feed.group, feed=feed.name)
            try:
                links = await self.fetch_feed_links(feed)
                log.info("feed_fetched", links=len(links))
                result = self.storage.store_links(links)
            except FeedHarvestError as e:
                stats["feeds_failed"] += 1
                log.error("feed_failed", url=feed.url, error=str(e))
                continue
            except Exception as e:
                stats["feeds_failed"] += 1
                log.exception("feed_failed_unexpected", url=feed.url, error=str(e))
                continue

            stats["links_extracted"] += len(links)
            stats["links_stored"] += result.inserted
            log.info("links_stored", inserted=result.inserted, skipped=result.skipped)
        return stats

    async def collect_backlog_articles(self, stats: dict = None) -> dict:
        """Fetch and store article content for every backlog link."""
        stats = stats if stats is not None else {}
        for key in ("backlog", "articles_fetched", "articles_failed", "articles_store_failed"):
            stats.setdefault(key, 0)

        try:
            backlog = self.storage.select_backlog(limit=self.backlog_limit)
        except FeedHarvestError as e:
            logger.error("backlog_select_failed", error=str(e))
            return stats
        stats["backlog"] = len(backlog)
        logger.info("backlog_selected", count=len(backlog))

        self._enter(WorkflowStage.FETCHING_ARTICLES)
        for link in backlog:
            article = await fetch_article(self.scraper, link.url)
            if article.is_success:
                stats["articles_fetched"] += 1
            else:
                stats["articles_failed"] += 1
                logger.warning("article_fetch_failed", url=link.url, error=article.content)

            try:
                result = self.storage.store_article(article)
            except FeedHarvestError as e:
                stats["articles_store_failed"] += 1
                logger.error("article_store_failed", url=link.url, error=str(e))
                continue
            logger.info("article_stored", url=link.url, status_code=article.status_code,
                        changed=bool(result.inserted))
        return stats


async def run_workflow(
    group: Optional[str] = None,
    name: Optional[str] = None,
    config_path: Optional[Union[str, Path]] = None,
    storage: StorageInterface = None,
    backlog_limit: Optional[int] = None,
) -> dict:
    """Run the workflow with the real HTTP and Firecrawl clients."""
    if storage is None:
        from ..storage.factory import get_storage
        storage = get_storage()

    async with HttpFeedFetcher() as http_client, FirecrawlClient() as scraper:
        workflow = IngestionWorkflow(
            storage=storage,
            http_client=http_client,
            scraper=scraper,
            backlog_limit=backlog_limit if backlog_limit is not None else settings.backlog_limit,
        )
        return await workflow.run(group=group, name=name, config_path=config_path)
