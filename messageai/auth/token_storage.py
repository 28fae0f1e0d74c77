"""
Token storage and retrieval for OAuth tokens.

Defines the Token Store collaborator used by the Calendar Access Layer,
with a database-backed implementation and an in-memory one for tests
and local development. Token values never leave the access layer.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from messageai.models.tokens import UserToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OAuthTokenRecord:
    """Stored credential for one user."""

    access_token: str
    refresh_token: Optional[str]
    expires_at: Optional[datetime]

    def is_expired(self, now: datetime) -> bool:
        """A record without an expiry never expires locally."""
        if self.expires_at is None:
            return False
        return now >= self.expires_at

    def __repr__(self) -> str:
        return f"<OAuthTokenRecord(expires_at={self.expires_at})>"


class TokenStore(Protocol):
    """Per-user credential storage."""

    def get_token(self, user_id: str) -> Optional[OAuthTokenRecord]:
        """Return the user's record, or None when the user never linked a calendar."""
        ...

    def save_token(self, user_id: str, record: OAuthTokenRecord) -> None:
        """Create or replace the user's record."""
        ...


class InMemoryTokenStore:
    """Thread-safe dict-backed token store."""

    def __init__(self, tokens: Optional[dict[str, OAuthTokenRecord]] = None):
        self._tokens: dict[str, OAuthTokenRecord] = dict(tokens or {})
        self._lock = threading.Lock()

    def get_token(self, user_id: str) -> Optional[OAuthTokenRecord]:
        with self._lock:
            return self._tokens.get(user_id)

    def save_token(self, user_id: str, record: OAuthTokenRecord) -> None:
        with self._lock:
            self._tokens[user_id] = record

    def delete_token(self, user_id: str) -> bool:
        with self._lock:
            return self._tokens.pop(user_id, None) is not None


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on round trip
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class SQLAlchemyTokenStore:
    """
    Token store persisted in the ``user_tokens`` table.

    Args:
        session_factory: Callable returning a new SQLAlchemy Session
            (e.g. ``messageai.database.SessionLocal``)
        provider: OAuth provider name stored alongside each token
    """

    def __init__(self, session_factory: Callable[[], Session], provider: str = "google"):
        self._session_factory = session_factory
        self._provider = provider

    def _find(self, session: Session, user_id: str) -> Optional[UserToken]:
        stmt = select(UserToken).where(
            UserToken.user_id == user_id,
            UserToken.provider == self._provider,
        )
        return session.execute(stmt).scalar_one_or_none()

    def get_token(self, user_id: str) -> Optional[OAuthTokenRecord]:
        """
        Get a user's stored OAuth token.

        Args:
            user_id: The user's ID

        Returns:
            OAuthTokenRecord if found, None otherwise
        """
        with self._session_factory() as session:
            row = self._find(session, user_id)
            if row is None:
                return None
            return OAuthTokenRecord(
                access_token=row.access_token,
                refresh_token=row.refresh_token,
                expires_at=_as_utc(row.token_expiry),
            )

    def save_token(self, user_id: str, record: OAuthTokenRecord) -> None:
        """
        Save or update a user's OAuth token.

        A refresh that did not return a new refresh token keeps the stored one.
        """
        with self._session_factory() as session:
            row = self._find(session, user_id)
            if row is None:
                session.add(
                    UserToken(
                        user_id=user_id,
                        provider=self._provider,
                        access_token=record.access_token,
                        refresh_token=record.refresh_token,
                        token_expiry=record.expires_at,
                    )
                )
                logger.info(f"Created OAuth token for user {user_id}")
            else:
                row.access_token = record.access_token
                if record.refresh_token:
                    row.refresh_token = record.refresh_token
                row.token_expiry = record.expires_at
                logger.info(f"Updated OAuth token for user {user_id}")
            session.commit()

    def delete_token(self, user_id: str) -> bool:
        with self._session_factory() as session:
            row = self._find(session, user_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            logger.info(f"Deleted OAuth token for user {user_id}")
            return True
