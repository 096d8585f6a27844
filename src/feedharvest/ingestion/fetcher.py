"""Async HTTP fetcher for RSS/Atom feed bodies."""

import asyncio
import time
from typing import Optional

import aiohttp
import structlog

from .interfaces import HttpFetcherInterface
from ..errors import FeedFetchError

logger = structlog.get_logger()

USER_AGENT = "FeedHarvest/0.1"


class HttpFeedFetcher(HttpFetcherInterface):
    """aiohttp-backed fetcher. Use as an async context manager."""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(headers={"User-Agent": USER_AGENT})
        return self

    async def __aexit__(self, *args):
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def fetch(self, url: str, timeout_seconds: int) -> str:
        """GET `url` and return the body text, bounded by `timeout_seconds`."""
        if self.session is None:
            raise RuntimeError("HttpFeedFetcher used outside its context manager")

        start_time = time.time()
        timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        try:
            async with self.session.get(url, timeout=timeout) as response:
                response.raise_for_status()
                body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as e:
            logger.warning("feed_http_failed", url=url, error=str(e) or type(e).__name__)
            raise FeedFetchError(f"failed to fetch feed {url}: {str(e) or type(e).__name__}") from e

        logger.debug(
            "feed_http_ok",
            url=url,
            bytes=len(body),
            time_ms=int((time.time() - start_time) * 1000),
        )
        return body
