"""
Google OAuth 2.0 refresh-token exchange.

Calendar linking happens in the mobile app; the backend only needs to
trade a stored refresh token for a fresh access token when the old one
expires.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx

from messageai.auth.token_storage import OAuthTokenRecord
from messageai.config import get_settings

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


@dataclass
class OAuthTokens:
    """OAuth token response from Google."""

    access_token: str
    refresh_token: Optional[str]
    expires_in: int
    token_type: str
    scope: str

    def to_record(self, now: Optional[datetime] = None) -> OAuthTokenRecord:
        """Convert to a stored record, computing the absolute expiry."""
        issued_at = now or datetime.now(timezone.utc)
        return OAuthTokenRecord(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=issued_at + timedelta(seconds=self.expires_in),
        )


class GoogleOAuthFlow:
    """
    Refreshes Google access tokens.

    Usage:
        flow = GoogleOAuthFlow()
        tokens = flow.refresh_token(stored_refresh_token)
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        settings = get_settings()
        self.client_id = client_id if client_id is not None else settings.google_oauth_client_id
        self.client_secret = (
            client_secret if client_secret is not None else settings.google_oauth_client_secret
        )
        self._http_client = http_client

        if not self.client_id or not self.client_secret:
            logger.warning(
                "Google OAuth not configured. Set GOOGLE_OAUTH_CLIENT_ID and "
                "GOOGLE_OAUTH_CLIENT_SECRET in environment."
            )

    def refresh_token(self, refresh_token: str) -> OAuthTokens:
        """
        Refresh an expired access token.

        Args:
            refresh_token: The refresh token from initial authorization

        Returns:
            New OAuthTokens with fresh access_token

        Raises:
            httpx.HTTPError: If the exchange fails
        """
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }

        if self._http_client is not None:
            response = self._http_client.post(GOOGLE_TOKEN_URL, data=data)
        else:
            with httpx.Client(timeout=10.0) as client:
                response = client.post(GOOGLE_TOKEN_URL, data=data)
        response.raise_for_status()
        token_data = response.json()

        logger.info("Successfully refreshed access token")

        return OAuthTokens(
            access_token=token_data["access_token"],
            # Google only returns a refresh token when it rotates it
            refresh_token=token_data.get("refresh_token", refresh_token),
            expires_in=token_data["expires_in"],
            token_type=token_data.get("token_type", "Bearer"),
            scope=token_data.get("scope", ""),
        )
