"""Application settings with environment variable support."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pathlib import Path


# Compute base_dir at module level
_BASE_DIR = Path(__file__).parent.parent.parent.parent.resolve()


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FH_",  # FH_DATABASE_URL, FH_FEEDS_PATH, etc.
        extra="ignore",
    )

    # Paths - computed from base_dir
    base_dir: Path = _BASE_DIR
    data_dir: Path = _BASE_DIR / "data"
    config_dir: Path = _BASE_DIR / "config"

    # Database
    database_url: str = f"sqlite:///{_BASE_DIR / 'data' / 'feedharvest.db'}"

    # Feed configuration override (takes precedence over config/feeds.yaml)
    feeds_path: Optional[Path] = None

    # Ingestion
    feed_fetch_timeout_seconds: int = 30

    # Scraping
    firecrawl_base_url: str = "http://localhost:13002"
    firecrawl_api_key: Optional[str] = "fc-test"
    scrape_timeout_seconds: int = 60

    # Processing
    backlog_limit: int = 100

    # Logging
    log_level: str = "INFO"
    log_json: bool = False


settings = Settings()
