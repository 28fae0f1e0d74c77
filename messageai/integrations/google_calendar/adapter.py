"""
Translation between ``CalendarEvent`` / ``CreateEventRequest`` and the
JSON bodies of the Google Calendar v3 events resource.

Timed events carry ``dateTime`` (RFC 3339) plus ``timeZone``; all-day
events carry only ``date`` and are read as midnight UTC.
"""

from datetime import datetime, timezone
from typing import Optional

from dateutil import tz
from dateutil.parser import isoparse

from messageai.integrations.base import CalendarEvent, CreateEventRequest

# internal name -> Google field, for plain text fields
TEXT_FIELDS = (
    ("title", "summary"),
    ("description", "description"),
    ("location", "location"),
)


def format_rfc3339(value: datetime, tz_name: Optional[str] = None) -> str:
    """Render ``value`` in ``tz_name`` (UTC if unset or unknown); naive means UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    zone = tz.gettz(tz_name) if tz_name else None
    return value.astimezone(zone or timezone.utc).isoformat()


def _moment(value: datetime, tz_name: Optional[str]) -> dict:
    return {"dateTime": format_rfc3339(value, tz_name), "timeZone": tz_name or "UTC"}


def _read_moment(moment: dict, fallback: dict) -> tuple[datetime, bool]:
    """Return (instant, is_all_day) for a Google ``start`` / ``end`` object."""
    if "dateTime" in moment or "dateTime" in fallback:
        parsed = isoparse(moment.get("dateTime") or fallback["dateTime"])
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed, False

    day = moment.get("date") or fallback.get("date")
    if not day:
        today = datetime.now(timezone.utc)
        return today.replace(hour=0, minute=0, second=0, microsecond=0), True
    return datetime.strptime(day, "%Y-%m-%d").replace(tzinfo=timezone.utc), True


class GoogleCalendarAdapter:
    """Stateless converters used by ``GoogleCalendarProvider``."""

    @staticmethod
    def to_google_event(event: CreateEventRequest) -> dict:
        body: dict = {
            "start": _moment(event.start_time, event.timezone),
            "end": _moment(event.end_time, event.timezone),
        }
        for attr, google_field in TEXT_FIELDS:
            value = getattr(event, attr)
            if value:
                body[google_field] = value
        return body

    @staticmethod
    def from_google_event(item: dict, calendar_id: str) -> CalendarEvent:
        start = item.get("start", {})
        end = item.get("end", {})
        start_time, all_day = _read_moment(start, {})
        end_time, _ = _read_moment(end, start)

        return CalendarEvent(
            id=item.get("id", ""),
            calendar_id=calendar_id,
            title=item.get("summary", "Untitled"),
            description=item.get("description"),
            start_time=start_time,
            end_time=end_time,
            all_day=all_day,
            location=item.get("location"),
            status=item.get("status", "confirmed"),
            metadata={
                "etag": item.get("etag"),
                "html_link": item.get("htmlLink"),
                "time_zone": start.get("timeZone"),
            },
        )

    @staticmethod
    def to_update_body(updates: dict) -> dict:
        """
        Build a PATCH body from internal field names.

        ``start_time`` / ``end_time`` are rendered in ``updates["timezone"]``
        (UTC when absent). Keys not present are left untouched by Google.
        """
        tz_name = updates.get("timezone", "UTC")
        body: dict = {
            google_field: updates[attr]
            for attr, google_field in TEXT_FIELDS
            if attr in updates
        }
        if "start_time" in updates:
            body["start"] = _moment(updates["start_time"], tz_name)
        if "end_time" in updates:
            body["end"] = _moment(updates["end_time"], tz_name)
        return body
