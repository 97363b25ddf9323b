"""SQLAlchemy ORM models for Lumen."""

from lumen.models.base import Base
from lumen.models.cache_entry import CacheEntry

__all__ = [
    "Base",
    "CacheEntry",
]
