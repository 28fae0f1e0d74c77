"""
Google Calendar API exceptions.

Raised by GoogleCalendarClient from HTTP status codes and translated into
the scheduler taxonomy by GoogleCalendarProvider.
"""


class GoogleCalendarError(Exception):
    """Base exception for Google Calendar operations."""

    retryable: bool = False

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class GoogleCalendarAuthError(GoogleCalendarError):
    """
    Authentication or authorization failure (401, non-quota 403).

    Causes:
    - Access token revoked or expired
    - Insufficient scopes
    """


class GoogleCalendarQuotaError(GoogleCalendarError):
    """
    API quota exceeded (403 with quota / rate limit reason).

    Retryable after backoff.
    """

    retryable = True


class GoogleCalendarNotFoundError(GoogleCalendarError):
    """Event or calendar not found (404, 410)."""


class GoogleCalendarConflictError(GoogleCalendarError):
    """Concurrent modification (409, 412). Retryable after re-fetching."""

    retryable = True


class GoogleCalendarRateLimitError(GoogleCalendarError):
    """Rate limit hit (429). Retryable after exponential backoff."""

    retryable = True


class GoogleCalendarServerError(GoogleCalendarError):
    """Google-side failure (5xx) or network timeout. Retryable."""

    retryable = True


class GoogleCalendarValidationError(GoogleCalendarError):
    """Google rejected the event body (400)."""
