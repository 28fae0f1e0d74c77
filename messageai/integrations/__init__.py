"""
Calendar provider integrations.

Provides the provider protocol and the Google Calendar implementation.
"""

from messageai.integrations.base import (
    CalendarEvent,
    CalendarProvider,
    CreateEventRequest,
)

__all__ = [
    "CalendarEvent",
    "CalendarProvider",
    "CreateEventRequest",
]
