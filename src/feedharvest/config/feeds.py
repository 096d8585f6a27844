"""Feed configuration loader.

The feed file is YAML mapping group -> name -> feed URL::

    bbc:
      top: https://feeds.bbci.co.uk/news/rss.xml
      world: https://feeds.bbci.co.uk/news/world/rss.xml
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import structlog
import yaml

from ..errors import ConfigError
from ..ingestion.interfaces import Feed, FeedQuery
from .settings import settings

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = settings.config_dir / "feeds.yaml"
LEGACY_CONFIG_PATH = settings.data_dir / "feeds.yaml"


def resolve_config_path(
    explicit: Optional[Union[str, Path]] = None,
    env_value: Optional[Union[str, Path]] = None,
    exists: Callable[[Path], bool] = Path.exists,
    default: Path = DEFAULT_CONFIG_PATH,
    legacy: Path = LEGACY_CONFIG_PATH,
) -> Path:
    """Pick the feed config path: explicit > env > default > legacy.

    Explicit and env values win without probing the filesystem. When neither
    default nor legacy exists the default is returned so loading fails on it.
    """
    if explicit:
        return Path(explicit)
    if env_value:
        return Path(env_value)
    if exists(default):
        return default
    if exists(legacy):
        return legacy
    return default


class FeedCatalog:
    """Feeds grouped by category, as read from the config file."""

    def __init__(self, groups: Dict[str, Dict[str, str]]):
        self._groups = groups

    @classmethod
    def from_yaml(cls, text: str) -> "FeedCatalog":
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ConfigError("feed config must map group -> name -> url")

        groups: Dict[str, Dict[str, str]] = {}
        for group, entries in data.items():
            if not isinstance(entries, dict):
                raise ConfigError(f"feed group '{group}' must map name -> url")
            groups[str(group)] = {str(name): str(url) for name, url in entries.items()}
        return cls(groups)

    def all_feeds(self) -> List[Feed]:
        return [
            Feed(group=group, name=name, url=url)
            for group, entries in self._groups.items()
            for name, url in entries.items()
        ]

    def feeds_in_group(self, group: str) -> List[Feed]:
        entries = self._groups.get(group, {})
        return [Feed(group=group, name=name, url=url) for name, url in entries.items()]

    def feed_url(self, group: str, name: str) -> Optional[str]:
        return self._groups.get(group, {}).get(name)

    def groups(self) -> List[str]:
        return list(self._groups)

    def names_in_group(self, group: str) -> List[str]:
        return list(self._groups.get(group, {}))

    def search(self, query: Optional[FeedQuery] = None) -> List[Feed]:
        """Filter feeds by group and/or name. No query returns everything."""
        feeds = self.all_feeds()
        if query is None:
            return feeds
        return [
            f for f in feeds
            if (query.group is None or f.group == query.group)
            and (query.name is None or f.name == query.name)
        ]


def load_feed_catalog(config_path: Optional[Union[str, Path]] = None) -> FeedCatalog:
    """Load the feed catalog from YAML. Raises ConfigError on any failure."""
    path = resolve_config_path(config_path, settings.feeds_path)
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read feed config {path}: {e}") from e

    try:
        catalog = FeedCatalog.from_yaml(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in feed config {path}: {e}") from e

    logger.debug("feed_config_loaded", path=str(path), groups=len(catalog.groups()))
    return catalog


def search_feeds(
    query: Optional[FeedQuery] = None,
    config_path: Optional[Union[str, Path]] = None,
) -> List[Feed]:
    """Load the feed config and return the feeds matching `query`."""
    return load_feed_catalog(config_path).search(query)
