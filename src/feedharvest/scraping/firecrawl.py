"""Firecrawl scrape API client.

Talks to a (typically self-hosted) Firecrawl instance:

    POST {base_url}/v1/scrape  {"url": ..., "formats": ["markdown"]}

and returns the ``data.markdown`` field of the response.
"""

import asyncio
import time
from typing import Optional

import aiohttp
import structlog

from ..config.settings import settings
from ..errors import ScrapeError
from ..ingestion.interfaces import ScraperInterface

logger = structlog.get_logger()


class FirecrawlClient(ScraperInterface):
    """Async Firecrawl client. Use as an async context manager."""

    def __init__(
        self,
        base_url: str = None,
        api_key: Optional[str] = None,
        timeout_seconds: int = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = (base_url or settings.firecrawl_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.firecrawl_api_key
        self.timeout_seconds = timeout_seconds or settings.scrape_timeout_seconds
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        if self.session is None:
            headers = {"Content-Type": "application/json"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self.session = aiohttp.ClientSession(headers=headers)
        return self

    async def __aexit__(self, *args):
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def scrape(self, url: str) -> Optional[str]:
        """Scrape `url` and return its markdown, or None if the service had none."""
        if self.session is None:
            raise RuntimeError("FirecrawlClient used outside its context manager")

        start_time = time.time()
        payload = {"url": url, "formats": ["markdown"]}
        try:
            async with self.session.post(
                f"{self.base_url}/v1/scrape",
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                if response.status >= 400:
                    detail = await response.text()
                    raise ScrapeError(
                        f"Firecrawl returned HTTP {response.status}: {detail[:200]}"
                    )
                body = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise ScrapeError(f"Firecrawl request failed: {str(e) or type(e).__name__}") from e

        if not isinstance(body, dict):
            raise ScrapeError(f"Firecrawl returned a non-object body: {type(body).__name__}")
        if not body.get("success", False):
            raise ScrapeError(f"Firecrawl error: {body.get('error', 'unknown error')}")

        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise ScrapeError(f"Firecrawl returned non-object data: {type(data).__name__}")
        metadata = data.get("metadata")
        logger.debug(
            "article_scraped",
            url=url,
            upstream_status=metadata.get("statusCode") if isinstance(metadata, dict) else None,
            time_ms=int((time.time() - start_time) * 1000),
        )
        markdown = data.get("markdown")
        return markdown if isinstance(markdown, str) else None
