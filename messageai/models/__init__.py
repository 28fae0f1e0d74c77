"""SQLAlchemy models for persisted OAuth credentials."""

from messageai.models.base import Base, StoredRecord
from messageai.models.tokens import UserToken

__all__ = ["Base", "StoredRecord", "UserToken"]
