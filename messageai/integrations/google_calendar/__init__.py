"""
Google Calendar integration.

Provides Google Calendar API v3 as the calendar provider.
"""

from messageai.integrations.google_calendar.adapter import GoogleCalendarAdapter
from messageai.integrations.google_calendar.client import GoogleCalendarClient
from messageai.integrations.google_calendar.exceptions import (
    GoogleCalendarAuthError,
    GoogleCalendarConflictError,
    GoogleCalendarError,
    GoogleCalendarNotFoundError,
    GoogleCalendarQuotaError,
    GoogleCalendarRateLimitError,
    GoogleCalendarServerError,
    GoogleCalendarValidationError,
)
from messageai.integrations.google_calendar.provider import GoogleCalendarProvider

__all__ = [
    "GoogleCalendarAdapter",
    "GoogleCalendarClient",
    "GoogleCalendarError",
    "GoogleCalendarAuthError",
    "GoogleCalendarConflictError",
    "GoogleCalendarNotFoundError",
    "GoogleCalendarProvider",
    "GoogleCalendarQuotaError",
    "GoogleCalendarRateLimitError",
    "GoogleCalendarServerError",
    "GoogleCalendarValidationError",
]
