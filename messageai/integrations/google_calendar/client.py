"""
Thin client over the Google Calendar API v3.

Every request goes through ``_execute`` so Google's ``HttpError`` and
network failures surface as ``GoogleCalendarError`` subclasses. Nothing
is retried here; the Calendar Access Layer owns retry policy.
"""

import logging
from typing import Any, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError

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

logger = logging.getLogger(__name__)

PAGE_SIZE = 250

_STATUS_ERRORS: dict[int, tuple[type[GoogleCalendarError], str]] = {
    400: (GoogleCalendarValidationError, "Google rejected the request"),
    401: (GoogleCalendarAuthError, "Calendar credentials were rejected"),
    403: (GoogleCalendarAuthError, "Calendar permission missing or revoked"),
    404: (GoogleCalendarNotFoundError, "Event or calendar not found"),
    409: (GoogleCalendarConflictError, "Event changed concurrently"),
    410: (GoogleCalendarNotFoundError, "Event or calendar not found"),
    412: (GoogleCalendarConflictError, "Event changed concurrently"),
    429: (GoogleCalendarRateLimitError, "Too many requests to Google Calendar"),
}

_QUOTA_MARKERS = ("quota", "rate limit", "ratelimit")


def map_http_error(error: HttpError) -> GoogleCalendarError:
    """
    Classify a Google ``HttpError`` by status code.

    A 403 whose message mentions quota or rate limiting is a quota error
    (retryable), not an authorization failure.
    """
    status = error.resp.status
    detail = str(error)

    if status == 403 and any(marker in detail.lower() for marker in _QUOTA_MARKERS):
        return GoogleCalendarQuotaError("Google Calendar quota exhausted", original_error=error)
    if status in _STATUS_ERRORS:
        error_class, summary = _STATUS_ERRORS[status]
        return error_class(f"{summary} ({status})", original_error=error)
    if status >= 500:
        return GoogleCalendarServerError(
            f"Google Calendar unavailable ({status})", original_error=error
        )
    return GoogleCalendarError(
        f"Unexpected Google Calendar response ({status}): {detail}", original_error=error
    )


class GoogleCalendarClient:
    """Calendar v3 events API bound to one set of credentials."""

    def __init__(self, credentials: Credentials):
        self._service: Resource = build(
            "calendar",
            "v3",
            credentials=credentials,
            cache_discovery=False,
        )

    @classmethod
    def from_access_token(cls, access_token: str) -> "GoogleCalendarClient":
        return cls(Credentials(token=access_token))

    def _execute(self, request: Any) -> Any:
        try:
            return request.execute()
        except HttpError as e:
            raise map_http_error(e) from e
        except (TimeoutError, ConnectionError) as e:
            raise GoogleCalendarServerError(
                f"Could not reach Google Calendar: {e}", original_error=e
            ) from e

    def list_events(
        self,
        calendar_id: str,
        time_min: str,
        time_max: str,
        page_token: Optional[str] = None,
    ) -> dict:
        """
        Fetch one page of events between two RFC 3339 instants.

        Recurring events are expanded into single instances, ordered by start.
        """
        return self._execute(
            self._service.events().list(
                calendarId=calendar_id,
                timeMin=time_min,
                timeMax=time_max,
                singleEvents=True,
                orderBy="startTime",
                maxResults=PAGE_SIZE,
                pageToken=page_token,
            )
        )

    def list_all_events(self, calendar_id: str, time_min: str, time_max: str) -> list[dict]:
        """Follow ``nextPageToken`` until the range is exhausted."""
        items: list[dict] = []
        page_token = None
        while True:
            page = self.list_events(calendar_id, time_min, time_max, page_token=page_token)
            items.extend(page.get("items", []))
            page_token = page.get("nextPageToken")
            if not page_token:
                break

        logger.debug(f"Fetched {len(items)} events from {calendar_id} ({time_min} to {time_max})")
        return items

    def get_event(self, calendar_id: str, event_id: str) -> dict:
        return self._execute(self._service.events().get(calendarId=calendar_id, eventId=event_id))

    def insert_event(self, calendar_id: str, body: dict) -> dict:
        created = self._execute(self._service.events().insert(calendarId=calendar_id, body=body))
        logger.info(f"Inserted event {created.get('id')} into {calendar_id}")
        return created

    def patch_event(self, calendar_id: str, event_id: str, body: dict) -> dict:
        """Partial update: only the keys present in ``body`` change."""
        patched = self._execute(
            self._service.events().patch(calendarId=calendar_id, eventId=event_id, body=body)
        )
        logger.info(f"Patched event {event_id} in {calendar_id}")
        return patched

    def delete_event(self, calendar_id: str, event_id: str) -> None:
        self._execute(self._service.events().delete(calendarId=calendar_id, eventId=event_id))
        logger.info(f"Deleted event {event_id} from {calendar_id}")
