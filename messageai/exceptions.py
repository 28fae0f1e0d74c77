"""
Error taxonomy for calendar access and scheduling.

Every error carries a stable ``code`` (used in API bodies and tool results)
and a ``retryable`` flag. Provider-specific errors are translated into these
at the integration boundary.
"""

from typing import Optional


class SchedulerError(Exception):
    """Base exception for scheduling operations."""

    code: str = "scheduler_error"
    retryable: bool = False

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class NotConnectedError(SchedulerError):
    """No stored calendar credential for the user."""

    code = "calendar_not_connected"


class AccessDeniedError(SchedulerError):
    """
    Credential present but rejected.

    Causes:
    - Token revoked or expired beyond refresh
    - Insufficient scopes
    """

    code = "calendar_access_denied"


class RefreshFailedError(AccessDeniedError):
    """The refresh-token exchange itself failed; the user must re-authenticate."""

    code = "calendar_refresh_failed"


class ProviderTransientError(SchedulerError):
    """
    Rate limit, quota, 5xx or timeout from the calendar provider.

    Retryable after backoff.
    """

    code = "calendar_unavailable"
    retryable = True


class ProviderError(SchedulerError):
    """Any other calendar provider failure."""

    code = "calendar_error"


class EventNotFoundError(SchedulerError):
    """Event does not exist (or was already deleted)."""

    code = "event_not_found"


class EventValidationError(SchedulerError, ValueError):
    """Missing or malformed event fields, rejected before any provider call."""

    code = "validation_error"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message, original_error=original_error)
        self.field = field


class LanguageModelError(SchedulerError):
    """The language-generation collaborator failed."""

    code = "llm_error"
    retryable = True
