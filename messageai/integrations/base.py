"""
Calendar provider protocol and base types.

Defines the interface the Calendar Access Layer uses to talk to an
external calendar (Google Calendar in production, in-memory fakes in tests).
"""

from abc import abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from messageai.auth.token_storage import OAuthTokenRecord


@dataclass
class CalendarEvent:
    """
    Normalized event representation across calendar providers.

    This is the common format used by the service layer, mapped from
    provider-specific formats by adapters.
    """

    id: str
    calendar_id: str
    title: str
    start_time: datetime
    end_time: datetime
    description: Optional[str] = None
    all_day: bool = False
    location: Optional[str] = None
    status: str = "confirmed"
    metadata: dict = field(default_factory=dict)

    @property
    def duration_minutes(self) -> int:
        """Calculate event duration in minutes."""
        delta = self.end_time - self.start_time
        return int(delta.total_seconds() / 60)

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"


@dataclass
class CreateEventRequest:
    """
    Request to create a new event.

    Times are timezone-aware; ``timezone`` is the IANA zone the event was
    expressed in and is forwarded to the provider for display.
    """

    title: str
    start_time: datetime
    end_time: datetime
    timezone: str = "UTC"
    description: Optional[str] = None
    location: Optional[str] = None


class CalendarProvider(Protocol):
    """
    Protocol for external calendar backends.

    A provider hands out an opaque session for an access token; every event
    operation takes that session. Errors must be raised as
    ``messageai.exceptions`` types so callers can tell auth failures from
    not-found from everything else.
    """

    @abstractmethod
    def open_session(self, access_token: str) -> Any:
        """Build an authenticated client handle for one access token."""
        ...

    @abstractmethod
    def list_events(
        self,
        session: Any,
        start: datetime,
        end: datetime,
    ) -> Sequence[CalendarEvent]:
        """
        Get events overlapping a time range.

        Args:
            session: Handle from open_session()
            start: Range start (inclusive)
            end: Range end (exclusive)
        """
        ...

    @abstractmethod
    def get_event(self, session: Any, event_id: str) -> CalendarEvent:
        """Get a single event, raising EventNotFoundError when missing."""
        ...

    @abstractmethod
    def create_event(self, session: Any, event: CreateEventRequest) -> CalendarEvent:
        """Create a new event and return it with its assigned ID."""
        ...

    @abstractmethod
    def update_event(self, session: Any, event_id: str, updates: dict) -> CalendarEvent:
        """
        Apply a partial update.

        ``updates`` uses CalendarEvent field names (title, description,
        location, start_time, end_time) plus an optional ``timezone``.
        """
        ...

    @abstractmethod
    def delete_event(self, session: Any, event_id: str) -> None:
        """Delete an event, raising EventNotFoundError when missing."""
        ...

    @abstractmethod
    def refresh_access_token(self, refresh_token: str) -> OAuthTokenRecord:
        """Exchange a refresh token for a new access token."""
        ...
