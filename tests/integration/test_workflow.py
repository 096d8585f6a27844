"""Integration tests for the ingestion workflow (fake HTTP/scrape clients, SQLite)."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from conftest import FakeHttpFetcher, FakeScraper, rss
from feedharvest.config.settings import settings
from feedharvest.errors import ConfigError, FeedFetchError, StorageError
from feedharvest.ingestion.interfaces import ArticleStatus, Feed
from feedharvest.pipeline.workflow import (
    CONTENT_UNAVAILABLE, IngestionWorkflow, WorkflowStage, fetch_article,
)
from feedharvest.scraping.firecrawl import FirecrawlClient
from feedharvest.storage.interfaces import ArticleQuery


FIRST = "https://first.example.com/rss.xml"
SECOND = "https://second.example.com/rss.xml"
THIRD = "https://third.example.com/rss.xml"
DEV = "https://dev.example.com/feed.xml"


def feed_body(prefix: str, count: int = 2) -> str:
    return rss(*[
        (f"{prefix} {i}", f"https://{prefix}.example.com/{i}", f"Wed, 0{i} Jan 2025 12:00:00 GMT")
        for i in range(1, count + 1)
    ])


@pytest.fixture
def responses():
    return {
        FIRST: feed_body("first"),
        SECOND: "<invalid>xml content</broken>",
        THIRD: feed_body("third"),
        DEV: feed_body("dev", 1),
    }


def make_workflow(storage, responses, scraper=None, **kwargs):
    return IngestionWorkflow(
        storage=storage,
        http_client=FakeHttpFetcher(responses),
        scraper=scraper or FakeScraper(),
        feed_timeout_seconds=5,
        **kwargs,
    )


@pytest.mark.asyncio
class TestWorkflowRun:
    """End-to-end runs of IngestionWorkflow.run."""

    async def test_failing_feed_does_not_stop_others(self, storage, responses, feeds_yaml):
        workflow = make_workflow(storage, responses)

        stats = await workflow.run(group="news", config_path=feeds_yaml)

        urls = {l.url for l in storage.search_links()}
        assert urls == {
            "https://first.example.com/1", "https://first.example.com/2",
            "https://third.example.com/1", "https://third.example.com/2",
        }
        assert stats["feeds"] == 3
        assert stats["feeds_failed"] == 1
        assert stats["articles_fetched"] == 4
        assert workflow.stage is WorkflowStage.DONE

    async def test_feed_timeout_is_passed_through(self, storage, responses, feeds_yaml):
        workflow = make_workflow(storage, responses)
        await workflow.run(group="blogs", config_path=feeds_yaml)

        assert workflow.http_client.calls == [(DEV, 5)]

    async def test_rerun_is_idempotent(self, storage, responses, feeds_yaml):
        workflow = make_workflow(storage, responses)
        await workflow.run(config_path=feeds_yaml)
        count = len(storage.search_links())

        stats = await workflow.run(config_path=feeds_yaml)

        assert len(storage.search_links()) == count
        assert stats["links_stored"] == 0
        assert stats["backlog"] == 0

    async def test_fetch_failure_stays_in_backlog(self, storage, responses, feeds_yaml):
        failing = "https://dev.example.com/1"
        scraper = FakeScraper(failures={failing})
        workflow = make_workflow(storage, responses, scraper=scraper)

        stats = await workflow.run(group="blogs", config_path=feeds_yaml)

        article = storage.get_article(failing)
        assert article.status_code == 500
        assert "error" in article.content
        assert stats["articles_failed"] == 1
        assert [b.url for b in storage.select_backlog()] == [failing]

        scraper.failures.clear()
        await workflow.run(group="blogs", config_path=feeds_yaml)

        assert scraper.calls == [failing, failing]
        assert storage.get_article(failing).status_code == 200
        assert storage.select_backlog() == []

    async def test_unknown_group_ends_early(self, storage, responses, feeds_yaml):
        workflow = make_workflow(storage, responses)

        stats = await workflow.run(group="missing", config_path=feeds_yaml)

        assert stats["feeds"] == 0
        assert workflow.http_client.calls == []
        assert workflow.scraper.calls == []
        assert workflow.stage is WorkflowStage.DONE

    async def test_missing_config_is_fatal(self, storage, responses, tmp_path):
        workflow = make_workflow(storage, responses)

        with pytest.raises(ConfigError):
            await workflow.run(config_path=tmp_path / "absent.yaml")

    async def test_backlog_limit(self, storage, responses, feeds_yaml):
        workflow = make_workflow(storage, responses, backlog_limit=1)

        stats = await workflow.run(group="news", config_path=feeds_yaml)

        assert stats["backlog"] == 1
        # newest first, ties broken by URL
        assert workflow.scraper.calls == ["https://first.example.com/2"]
        assert len(storage.search_articles(ArticleQuery(status=ArticleStatus.UNPROCESSED))) == 3


@pytest.mark.asyncio
class TestWorkflowStages:
    """Tests for individual workflow stages."""

    async def test_collect_links_with_no_feeds(self, storage):
        stats = await make_workflow(storage, {}).collect_links([])
        assert stats["feeds_failed"] == 0
        assert storage.search_links() == []

    async def test_fetch_error_propagates_from_fetch_feed_links(self, storage):
        workflow = make_workflow(storage, {FIRST: FeedFetchError("timeout")})
        with pytest.raises(FeedFetchError):
            await workflow.fetch_feed_links(Feed("news", "first", FIRST))

    async def test_store_failure_is_isolated_per_feed(self, storage, responses):
        calls = []
        original = storage.store_links

        def flaky_store(links):
            calls.append(len(links))
            if len(calls) == 1:
                raise StorageError("deadlock")
            return original(links)

        storage.store_links = flaky_store
        workflow = make_workflow(storage, responses)
        feeds = [Feed("news", "first", FIRST), Feed("news", "third", THIRD)]

        stats = await workflow.collect_links(feeds)

        assert stats["feeds_failed"] == 1
        assert {l.url for l in storage.search_links()} == {
            "https://third.example.com/1", "https://third.example.com/2",
        }

    async def test_article_store_failure_continues(self, storage, responses):
        links = await make_workflow(storage, responses).fetch_feed_links(Feed("news", "first", FIRST))
        storage.store_links(links)
        original = storage.store_article

        def failing_store(article):
            if article.url.endswith("/2"):
                raise StorageError("disk full")
            return original(article)

        storage.store_article = failing_store
        stats = await make_workflow(storage, responses).collect_backlog_articles()

        assert stats["articles_store_failed"] == 1
        assert [b.url for b in storage.select_backlog()] == ["https://first.example.com/2"]
        assert storage.get_article("https://first.example.com/1").status_code == 200

    async def test_fetch_article_placeholder_for_empty_markdown(self):
        article = await fetch_article(FakeScraper(default=None), "https://example.com/a")
        assert article.status_code == 200
        assert article.content == CONTENT_UNAVAILABLE

    async def test_fetch_article_error_record(self):
        scraper = FakeScraper(failures={"https://example.com/a"})
        article = await fetch_article(scraper, "https://example.com/a")
        assert article.status_code == 500
        assert article.content.startswith("fetch error:")

    async def test_unexpected_scraper_error_becomes_error_record(self):
        scraper = MagicMock()
        scraper.scrape = AsyncMock(side_effect=RuntimeError("boom"))
        article = await fetch_article(scraper, "https://example.com/a")
        assert article.status_code == 500
        assert article.content == "fetch error: boom"

    async def test_out_of_range_date_does_not_stop_later_feeds(self, storage, responses):
        responses[FIRST] = rss(
            ("early", "https://first.example.com/early", "0001-01-01T00:00:00+01:00"),
            ("late", "https://first.example.com/late", "9999-12-31T23:00:00-02:00"),
            ("ok", "https://first.example.com/ok", "Wed, 01 Jan 2025 12:00:00 GMT"),
        )
        workflow = make_workflow(storage, responses)
        feeds = [Feed("news", "first", FIRST), Feed("news", "third", THIRD)]

        stats = await workflow.collect_links(feeds)

        assert stats["feeds_failed"] == 0
        assert {l.url for l in storage.search_links()} == {
            "https://first.example.com/ok",
            "https://third.example.com/1", "https://third.example.com/2",
        }

    async def test_unexpected_feed_error_is_isolated(self, storage, responses):
        workflow = make_workflow(storage, responses)
        workflow.http_client.fetch = AsyncMock(side_effect=[KeyError("surprise"), responses[THIRD]])
        feeds = [Feed("news", "first", FIRST), Feed("news", "third", THIRD)]

        stats = await workflow.collect_links(feeds)

        assert stats["feeds_failed"] == 1
        assert len(storage.search_links()) == 2

    async def test_malformed_firecrawl_body_marks_whole_backlog_failed(self, storage, responses):
        links = await make_workflow(storage, responses).fetch_feed_links(Feed("news", "first", FIRST))
        storage.store_links(links)
        response = MagicMock()
        response.status = 200
        response.json = AsyncMock(return_value=None)
        context = MagicMock()
        context.__aenter__ = AsyncMock(return_value=response)
        context.__aexit__ = AsyncMock(return_value=False)
        session = MagicMock()
        session.post.return_value = context

        workflow = make_workflow(storage, responses, scraper=FirecrawlClient(session=session))
        stats = await workflow.collect_backlog_articles()

        assert stats["articles_failed"] == 2
        assert workflow.stage is WorkflowStage.FETCHING_ARTICLES
        for link in links:
            assert storage.get_article(link.url).status_code == 500


class TestWorkflowSettings:
    """Constructor defaults for IngestionWorkflow."""

    def test_explicit_zero_feed_timeout_is_kept(self, storage):
        workflow = IngestionWorkflow(storage, FakeHttpFetcher({}), FakeScraper(), feed_timeout_seconds=0)
        assert workflow.feed_timeout_seconds == 0

    def test_feed_timeout_defaults_to_settings(self, storage):
        workflow = IngestionWorkflow(storage, FakeHttpFetcher({}), FakeScraper())
        assert workflow.feed_timeout_seconds == settings.feed_fetch_timeout_seconds
