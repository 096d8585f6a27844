"""Database storage and models."""

from .database import HarvestStorage
from .interfaces import ArticleContentQuery, ArticleQuery, InsertResult, LinkQuery, StorageInterface
from .models import ArticleModel, LinkModel, init_db

__all__ = [
    "HarvestStorage", "InsertResult", "LinkQuery", "ArticleQuery", "ArticleContentQuery",
    "StorageInterface", "ArticleModel", "LinkModel", "init_db",
]
