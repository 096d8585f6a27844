"""Exception types raised across the harvester."""


class FeedHarvestError(Exception):
    """Base class for harvester errors."""


class ConfigError(FeedHarvestError):
    """Feed configuration could not be resolved or loaded. Aborts the run."""


class DatabaseError(FeedHarvestError):
    """Database unreachable or schema setup failed. Aborts the run."""


class StorageError(FeedHarvestError):
    """A store or query call failed. The batch it covered was rolled back."""


class FeedFetchError(FeedHarvestError):
    """Feed could not be retrieved over HTTP."""


class FeedParseError(FeedHarvestError):
    """Feed body is not a usable RSS/Atom document."""


class ScrapeError(FeedHarvestError):
    """The scraping service failed to return article content."""
