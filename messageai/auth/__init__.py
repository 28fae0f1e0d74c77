"""
Credential storage and OAuth refresh for calendar access.
"""

from messageai.auth.token_storage import (
    InMemoryTokenStore,
    OAuthTokenRecord,
    SQLAlchemyTokenStore,
    TokenStore,
)

__all__ = [
    "InMemoryTokenStore",
    "OAuthTokenRecord",
    "SQLAlchemyTokenStore",
    "TokenStore",
]
