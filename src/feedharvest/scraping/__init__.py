"""Article content scraping clients."""

from .firecrawl import FirecrawlClient

__all__ = ["FirecrawlClient"]
