"""Database package."""

from workhub.db.base import Base, BaseModel
from workhub.db.session import get_db_session

__all__ = ["Base", "BaseModel", "get_db_session"]
