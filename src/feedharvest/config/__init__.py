"""Settings, feed configuration and logging setup."""

from .settings import Settings, settings
from .feeds import FeedCatalog, load_feed_catalog, resolve_config_path, search_feeds

__all__ = [
    "Settings", "settings",
    "FeedCatalog", "load_feed_catalog", "resolve_config_path", "search_feeds",
]
