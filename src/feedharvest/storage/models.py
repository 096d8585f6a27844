"""SQLAlchemy models for the links and articles tables."""

from datetime import timezone

from sqlalchemy import create_engine, Column, Integer, Text, DateTime, Index
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend.

    SQLite has no timezone support, so values are stored there as naive UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class LinkModel(Base):
    """One row per distinct article link seen in any feed."""
    __tablename__ = "links"

    url = Column(Text, primary_key=True)
    title = Column(Text, nullable=False)
    published_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index('idx_links_published', 'published_at'),
    )


class ArticleModel(Base):
    """Fetched article content; joined to links by URL."""
    __tablename__ = "articles"

    url = Column(Text, primary_key=True)
    fetched_at = Column(UTCDateTime, nullable=False)
    status_code = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)

    __table_args__ = (
        Index('idx_articles_fetched', 'fetched_at'),
        Index('idx_articles_status', 'status_code'),
    )


def init_db(database_url: str):
    """Initialize database and create all tables."""
    engine = create_engine(database_url, echo=False, pool_pre_ping=True)
    Base.metadata.create_all(engine)
    return engine
