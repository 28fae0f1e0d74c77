"""
Google Calendar implementation of the CalendarProvider protocol.

Translates Google-specific failures into the scheduler error taxonomy so
the Calendar Access Layer stays provider-neutral.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional

import httpx

from messageai.auth.google_oauth import GoogleOAuthFlow
from messageai.auth.token_storage import OAuthTokenRecord
from messageai.exceptions import (
    AccessDeniedError,
    EventNotFoundError,
    ProviderError,
    ProviderTransientError,
)
from messageai.integrations.base import CalendarEvent, CreateEventRequest
from messageai.integrations.google_calendar.adapter import GoogleCalendarAdapter, format_rfc3339
from messageai.integrations.google_calendar.client import GoogleCalendarClient
from messageai.integrations.google_calendar.exceptions import (
    GoogleCalendarAuthError,
    GoogleCalendarError,
    GoogleCalendarNotFoundError,
)

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except GoogleCalendarAuthError as e:
        raise AccessDeniedError(
            "Calendar access denied. Please reconnect your Google Calendar.",
            original_error=e,
        ) from e
    except GoogleCalendarNotFoundError as e:
        raise EventNotFoundError("Event not found", original_error=e) from e
    except GoogleCalendarError as e:
        if e.retryable:
            raise ProviderTransientError(
                f"Google Calendar temporarily unavailable during {operation}",
                original_error=e,
            ) from e
        raise ProviderError(f"Google Calendar {operation} failed: {e.message}", original_error=e) from e


class GoogleCalendarProvider:
    """
    CalendarProvider backed by Google Calendar API v3.

    Args:
        calendar_id: Calendar used for every user ("primary" by default)
        oauth_flow: Refresh-token exchange (created lazily when omitted)
        client_factory: Builds a client from an access token
    """

    def __init__(
        self,
        calendar_id: str = "primary",
        oauth_flow: Optional[GoogleOAuthFlow] = None,
        client_factory: Callable[[str], GoogleCalendarClient] = GoogleCalendarClient.from_access_token,
    ):
        self.calendar_id = calendar_id
        self._oauth_flow = oauth_flow
        self._client_factory = client_factory
        self._adapter = GoogleCalendarAdapter()

    @property
    def oauth_flow(self) -> GoogleOAuthFlow:
        if self._oauth_flow is None:
            self._oauth_flow = GoogleOAuthFlow()
        return self._oauth_flow

    def open_session(self, access_token: str) -> GoogleCalendarClient:
        return self._client_factory(access_token)

    def list_events(
        self,
        session: GoogleCalendarClient,
        start: datetime,
        end: datetime,
    ) -> list[CalendarEvent]:
        with _translate_errors("list"):
            items = session.list_all_events(
                calendar_id=self.calendar_id,
                time_min=format_rfc3339(start),
                time_max=format_rfc3339(end),
            )
        return [self._adapter.from_google_event(item, self.calendar_id) for item in items]

    def get_event(self, session: GoogleCalendarClient, event_id: str) -> CalendarEvent:
        with _translate_errors("get"):
            item = session.get_event(self.calendar_id, event_id)
        return self._adapter.from_google_event(item, self.calendar_id)

    def create_event(self, session: GoogleCalendarClient, event: CreateEventRequest) -> CalendarEvent:
        body = self._adapter.to_google_event(event)
        with _translate_errors("create"):
            item = session.insert_event(self.calendar_id, body)
        return self._adapter.from_google_event(item, self.calendar_id)

    def update_event(
        self,
        session: GoogleCalendarClient,
        event_id: str,
        updates: dict,
    ) -> CalendarEvent:
        body = self._adapter.to_update_body(updates)
        with _translate_errors("update"):
            item = session.patch_event(self.calendar_id, event_id, body)
        return self._adapter.from_google_event(item, self.calendar_id)

    def delete_event(self, session: GoogleCalendarClient, event_id: str) -> None:
        with _translate_errors("delete"):
            session.delete_event(self.calendar_id, event_id)

    def refresh_access_token(self, refresh_token: str) -> OAuthTokenRecord:
        """
        Exchange a refresh token at Google's token endpoint.

        Raises:
            AccessDeniedError: Google rejected the refresh token (revoked/invalid)
            ProviderTransientError: Network failure or 5xx
            ProviderError: Any other HTTP failure
        """
        try:
            tokens = self.oauth_flow.refresh_token(refresh_token)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in (400, 401):
                raise AccessDeniedError(
                    "Google rejected the stored refresh token",
                    original_error=e,
                ) from e
            if status >= 500:
                raise ProviderTransientError(
                    f"Google token endpoint unavailable ({status})",
                    original_error=e,
                ) from e
            raise ProviderError(f"Token refresh failed ({status})", original_error=e) from e
        except httpx.HTTPError as e:
            raise ProviderTransientError(
                f"Token refresh request failed: {e}",
                original_error=e,
            ) from e
        return tokens.to_record()
