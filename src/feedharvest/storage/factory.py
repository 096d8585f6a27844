"""Factory functions to create storage instances.

The database URL comes from DATABASE_URL, then FH_DATABASE_URL, then the
settings default (a local SQLite file). PostgreSQL URLs use psycopg2.
"""

import os
from functools import lru_cache

import structlog

from .database import HarvestStorage

logger = structlog.get_logger()


def get_database_url() -> str:
    """Get database URL from environment, with fallback to SQLite."""
    # Check for DATABASE_URL first (standard for cloud platforms)
    url = os.environ.get('DATABASE_URL')
    if url:
        return _normalize(url)

    # Check for FH_ prefixed version
    url = os.environ.get('FH_DATABASE_URL')
    if url:
        return _normalize(url)

    # Default to SQLite for local development
    from ..config.settings import settings
    return settings.database_url


def _normalize(url: str) -> str:
    # SQLAlchemy only accepts the postgresql:// scheme
    if url.startswith('postgres://'):
        return 'postgresql://' + url[len('postgres://'):]
    return url


def is_postgres() -> bool:
    """Check if we're using PostgreSQL."""
    return get_database_url().startswith('postgresql')


@lru_cache(maxsize=1)
def get_storage() -> HarvestStorage:
    """Get the shared storage instance for this process."""
    url = get_database_url()
    logger.info(
        "using_postgres_storage" if is_postgres() else "using_sqlite_storage",
        url=url[:40] + "...",
    )
    return HarvestStorage(url)


def clear_cache():
    """Clear cached instances (useful for testing)."""
    get_storage.cache_clear()
