"""Command line entry point: run the feed-to-article workflow once."""

import argparse
import asyncio
import sys
from typing import List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from .config.logging import configure_logging
from .config.settings import settings
from .errors import ConfigError, DatabaseError, FeedHarvestError

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="feedharvest",
        description="Collect links from configured RSS feeds and fetch their article content.",
    )
    parser.add_argument("group", nargs="?", help="Only process feeds in this group")
    parser.add_argument("--name", help="Only process the feed with this name")
    parser.add_argument("--feeds", help="Path to the feed config YAML")
    parser.add_argument(
        "--limit", type=int, default=None,
        help=f"Max backlog links to fetch (default {settings.backlog_limit})",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level, settings.log_json)

    from .pipeline.workflow import run_workflow
    from .storage.factory import get_storage

    try:
        storage = get_storage()
        stats = asyncio.run(run_workflow(
            group=args.group,
            name=args.name,
            config_path=args.feeds,
            storage=storage,
            backlog_limit=args.limit,
        ))
    except (ConfigError, DatabaseError) as e:
        logger.error("workflow_aborted", error=str(e))
        return 1

    print("\nRESULTS:")
    print(f"  Feeds: {stats['feeds']} processed, {stats.get('feeds_failed', 0)} failed")
    print(f"  Links: {stats.get('links_extracted', 0)} extracted, "
          f"{stats.get('links_stored', 0)} inserted or updated")
    print(f"  Articles: {stats.get('articles_fetched', 0)} fetched, "
          f"{stats.get('articles_failed', 0)} failed (backlog {stats.get('backlog', 0)})")

    try:
        counts = storage.count_by_status()
    except (FeedHarvestError, SQLAlchemyError) as e:
        logger.error("status_counts_failed", error=str(e))
    else:
        print(f"\nLINKS: {counts['unprocessed']} unprocessed, {counts['success']} fetched, "
              f"{counts['error']} with errors")
    print(f"TIME: {stats['elapsed_seconds']:.1f}s\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
