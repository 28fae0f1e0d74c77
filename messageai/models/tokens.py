"""
Persisted OAuth credentials.

One row per (user, provider). The Calendar Access Layer rewrites
``access_token`` and ``token_expiry`` after every successful refresh.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from messageai.models.base import StoredRecord


class UserToken(StoredRecord):
    """Credential row behind ``SQLAlchemyTokenStore``."""

    __tablename__ = "user_tokens"

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    provider: Mapped[str] = mapped_column(String(50), nullable=False, default="google")
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    # Google omits the refresh token on re-consent; keep the previous one
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    token_expiry: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    scopes: Mapped[Optional[str]] = mapped_column(Text, nullable=True, doc="Space-separated")

    __table_args__ = (
        Index("ix_user_tokens_user_provider", "user_id", "provider", unique=True),
    )

    def __repr__(self) -> str:
        return f"<UserToken(user_id={self.user_id}, provider={self.provider})>"
