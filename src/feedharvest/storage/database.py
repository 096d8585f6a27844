"""Database operations for links and articles."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
import structlog

from .interfaces import (
    ArticleContentQuery, ArticleQuery, InsertResult, LinkQuery, StorageInterface,
)
from .models import ArticleModel, LinkModel, init_db
from ..config.settings import settings
from ..errors import DatabaseError, StorageError
from ..ingestion.interfaces import (
    SUCCESS_STATUS_CODE, ArticleRecord, ArticleStatus, LinkRecord, LinkWithArticleStatus,
)

logger = structlog.get_logger()

links_table = LinkModel.__table__
articles_table = ArticleModel.__table__

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class HarvestStorage(StorageInterface):
    """SQLAlchemy storage for links and articles (SQLite or PostgreSQL)."""

    def __init__(self, database_url: str = None):
        if database_url is None:
            database_url = settings.database_url

        try:
            # Ensure data directory exists
            if database_url.startswith("sqlite:///"):
                db_path = database_url.replace("sqlite:///", "")
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            self.engine = init_db(database_url)
        except (SQLAlchemyError, OSError) as e:
            raise DatabaseError(f"database setup failed: {e}") from e

        if self.engine.dialect.name not in _INSERT_BY_DIALECT:
            raise DatabaseError(f"unsupported database dialect: {self.engine.dialect.name}")
        self._insert = _INSERT_BY_DIALECT[self.engine.dialect.name]
        self.Session = sessionmaker(bind=self.engine)

    def close(self) -> None:
        self.engine.dispose()

    # -- links ---------------------------------------------------------------

    def store_links(self, links: List[LinkRecord]) -> InsertResult:
        """Upsert links keyed by URL in a single transaction.

        A conflicting row is only rewritten when its title or publish date
        differs, so repeating an identical batch affects nothing.
        """
        if not links:
            return InsertResult()

        affected = 0
        try:
            with self.Session.begin() as session:
                for link in links:
                    stmt = self._insert(links_table).values(
                        url=link.url,
                        title=link.title,
                        published_at=link.published_at,
                    )
                    stmt = stmt.on_conflict_do_update(
                        index_elements=["url"],
                        set_={
                            "title": stmt.excluded.title,
                            "published_at": stmt.excluded.published_at,
                        },
                        where=or_(
                            links_table.c.title.is_distinct_from(stmt.excluded.title),
                            links_table.c.published_at.is_distinct_from(stmt.excluded.published_at),
                        ),
                    )
                    affected += session.execute(stmt).rowcount
        except SQLAlchemyError as e:
            logger.error("links_store_failed", count=len(links), error=str(e))
            raise StorageError(f"failed to store {len(links)} links: {e}") from e

        result = InsertResult(inserted=affected, skipped=len(links) - affected)
        logger.debug("links_stored", inserted=result.inserted, skipped=result.skipped)
        return result

    def search_links(self, query: Optional[LinkQuery] = None) -> List[LinkRecord]:
        """Links matching `query`, newest first."""
        query = query or LinkQuery()
        stmt = select(links_table)
        if query.url_pattern:
            stmt = stmt.where(links_table.c.url.ilike(f"%{query.url_pattern}%"))
        if query.published_from:
            stmt = stmt.where(links_table.c.published_at >= query.published_from)
        if query.published_to:
            stmt = stmt.where(links_table.c.published_at <= query.published_to)
        stmt = stmt.order_by(links_table.c.published_at.desc(), links_table.c.url)

        with self.Session() as session:
            rows = session.execute(stmt).all()
        return [
            LinkRecord(url=r.url, title=r.title, published_at=r.published_at)
            for r in rows
        ]

    # -- backlog / joined view -----------------------------------------------

    def _joined_select(self, with_content: bool = False):
        columns = [
            links_table.c.url,
            links_table.c.title,
            links_table.c.published_at,
            articles_table.c.fetched_at,
            articles_table.c.status_code,
        ]
        if with_content:
            columns.append(articles_table.c.content)
        return select(*columns).select_from(
            links_table.outerjoin(articles_table, links_table.c.url == articles_table.c.url)
        )

    def _fetch_joined(self, stmt) -> List[LinkWithArticleStatus]:
        with self.Session() as session:
            rows = session.execute(stmt).mappings().all()
        return [LinkWithArticleStatus(**row) for row in rows]

    def select_backlog(self, limit: Optional[int] = None) -> List[LinkWithArticleStatus]:
        """Links with no article row or a non-200 article, newest first."""
        stmt = (
            self._joined_select()
            .where(or_(
                articles_table.c.url.is_(None),
                articles_table.c.status_code != SUCCESS_STATUS_CODE,
            ))
            .order_by(links_table.c.published_at.desc(), links_table.c.url)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            return self._fetch_joined(stmt)
        except SQLAlchemyError as e:
            raise StorageError(f"failed to select backlog: {e}") from e

    def search_articles(self, query: Optional[ArticleQuery] = None) -> List[LinkWithArticleStatus]:
        """Links joined with their article row, filtered by `query`."""
        query = query or ArticleQuery()
        stmt = self._joined_select(with_content=True)

        if query.url_pattern:
            stmt = stmt.where(links_table.c.url.ilike(f"%{query.url_pattern}%"))
        if query.published_from:
            stmt = stmt.where(links_table.c.published_at >= query.published_from)
        if query.published_to:
            stmt = stmt.where(links_table.c.published_at <= query.published_to)

        if query.status is ArticleStatus.UNPROCESSED:
            stmt = stmt.where(articles_table.c.url.is_(None))
        elif query.status is ArticleStatus.SUCCESS:
            stmt = stmt.where(articles_table.c.status_code == SUCCESS_STATUS_CODE)
        elif query.status is ArticleStatus.ERROR:
            stmt = stmt.where(articles_table.c.status_code != SUCCESS_STATUS_CODE)
        if query.status_code is not None:
            stmt = stmt.where(articles_table.c.status_code == query.status_code)

        stmt = stmt.order_by(links_table.c.published_at.desc(), links_table.c.url)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)
        return self._fetch_joined(stmt)

    def count_by_status(self) -> Dict[str, int]:
        """Number of links per derived status."""
        joined = links_table.outerjoin(articles_table, links_table.c.url == articles_table.c.url)
        count = select(func.count()).select_from(joined)

        with self.Session() as session:
            total = session.execute(count).scalar_one()
            success = session.execute(
                count.where(articles_table.c.status_code == SUCCESS_STATUS_CODE)
            ).scalar_one()
            errors = session.execute(
                count.where(articles_table.c.status_code != SUCCESS_STATUS_CODE)
            ).scalar_one()

        return {
            ArticleStatus.UNPROCESSED.value: total - success - errors,
            ArticleStatus.SUCCESS.value: success,
            ArticleStatus.ERROR.value: errors,
        }

    # -- articles --------------------------------------------------------------

    def store_article(self, article: ArticleRecord) -> InsertResult:
        """Upsert one article keyed by URL.

        An existing row is only touched (and its fetched_at refreshed) when the
        status code or content changed.
        """
        now = datetime.now(timezone.utc)
        stmt = self._insert(articles_table).values(
            url=article.url,
            fetched_at=now,
            status_code=article.status_code,
            content=article.content,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["url"],
            set_={
                "status_code": stmt.excluded.status_code,
                "content": stmt.excluded.content,
                "fetched_at": stmt.excluded.fetched_at,
            },
            where=or_(
                articles_table.c.status_code.is_distinct_from(stmt.excluded.status_code),
                articles_table.c.content.is_distinct_from(stmt.excluded.content),
            ),
        )

        try:
            with self.Session.begin() as session:
                affected = session.execute(stmt).rowcount
        except SQLAlchemyError as e:
            logger.error("article_store_failed", url=article.url, error=str(e))
            raise StorageError(f"failed to store article {article.url}: {e}") from e

        logger.debug("article_stored", url=article.url, status_code=article.status_code,
                     changed=bool(affected))
        return InsertResult(inserted=affected, skipped=1 - affected)

    def get_article(self, url: str) -> Optional[ArticleRecord]:
        """Get the article row for a URL."""
        with self.Session() as session:
            model = session.get(ArticleModel, url)
            return self._model_to_article(model) if model else None

    def search_article_contents(
        self, query: Optional[ArticleContentQuery] = None
    ) -> List[ArticleRecord]:
        """Article rows matching `query`, most recently fetched first."""
        query = query or ArticleContentQuery()
        with self.Session() as session:
            q = session.query(ArticleModel)
            if query.url_pattern:
                q = q.filter(ArticleModel.url.ilike(f"%{query.url_pattern}%"))
            if query.fetched_from:
                q = q.filter(ArticleModel.fetched_at >= query.fetched_from)
            if query.fetched_to:
                q = q.filter(ArticleModel.fetched_at <= query.fetched_to)
            if query.status_code is not None:
                q = q.filter(ArticleModel.status_code == query.status_code)
            models = q.order_by(ArticleModel.fetched_at.desc(), ArticleModel.url).all()
            return [self._model_to_article(m) for m in models]

    def _model_to_article(self, model: ArticleModel) -> ArticleRecord:
        """Convert database model to ArticleRecord."""
        return ArticleRecord(
            url=model.url,
            status_code=model.status_code,
            content=model.content,
            fetched_at=model.fetched_at,
        )
