"""
Interval and conflict engine.

Pure functions over absolute (timezone-aware) instants. Wall-clock
dates and times are resolved to instants in the owner's timezone before
any comparison; two events at the same wall-clock time in different
zones are generally different instants.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Union

from dateutil import tz

from messageai.exceptions import EventValidationError
from messageai.integrations.base import CalendarEvent

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


def _require_aware(value: datetime, name: str) -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise EventValidationError(
            f"{name} must be timezone-aware, got naive datetime {value.isoformat()}",
            field=name,
        )


@dataclass(frozen=True)
class TimeInterval:
    """Half-open interval [start, end) between two absolute instants."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        _require_aware(self.start, "start")
        _require_aware(self.end, "end")
        if self.start >= self.end:
            raise EventValidationError(
                f"Interval start {self.start.isoformat()} must be before end {self.end.isoformat()}",
                field="end",
            )

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def to_utc(self) -> "TimeInterval":
        return TimeInterval(
            start=self.start.astimezone(timezone.utc),
            end=self.end.astimezone(timezone.utc),
        )

    def overlap(self, other: "TimeInterval") -> "OverlapResult":
        return interval_overlap(self, other)


@dataclass(frozen=True)
class OverlapResult:
    """Outcome of comparing a proposed interval against an existing one."""

    has_conflict: bool
    overlap_minutes: int = 0


@dataclass(frozen=True)
class BusyBlock:
    """An interval on the user's calendar that new events cannot use."""

    interval: TimeInterval
    source_event_id: str
    title: str

    @property
    def start(self) -> datetime:
        return self.interval.start

    @property
    def end(self) -> datetime:
        return self.interval.end

    @classmethod
    def from_event(cls, event: CalendarEvent) -> Optional["BusyBlock"]:
        """
        Build a busy block from a provider event.

        Returns None for events that never block time: all-day entries,
        cancelled events and zero-length events.
        """
        if event.all_day or event.is_cancelled:
            return None
        if event.end_time <= event.start_time:
            logger.debug(f"Skipping zero-length event {event.id}")
            return None
        return cls(
            interval=TimeInterval(start=event.start_time, end=event.end_time),
            source_event_id=event.id,
            title=event.title,
        )


def interval_overlap(proposed: TimeInterval, existing: TimeInterval) -> OverlapResult:
    """
    Compare two intervals.

    Strict inequalities: back-to-back intervals do not conflict. The
    overlap is the length of the intersection, floored to whole minutes.
    """
    if not (proposed.start < existing.end and proposed.end > existing.start):
        return OverlapResult(has_conflict=False)

    intersection = min(proposed.end, existing.end) - max(proposed.start, existing.start)
    return OverlapResult(
        has_conflict=True,
        overlap_minutes=int(intersection.total_seconds() // 60),
    )


def overlap(
    proposed_start: datetime,
    proposed_end: datetime,
    existing_start: datetime,
    existing_end: datetime,
) -> OverlapResult:
    """
    Compute overlap between a proposed and an existing interval.

    Args:
        proposed_start: Proposed start (timezone-aware)
        proposed_end: Proposed end (timezone-aware)
        existing_start: Existing start (timezone-aware)
        existing_end: Existing end (timezone-aware)

    Returns:
        OverlapResult with has_conflict and overlap_minutes

    Raises:
        EventValidationError: On naive datetimes or empty/negative intervals
    """
    return interval_overlap(
        TimeInterval(proposed_start, proposed_end),
        TimeInterval(existing_start, existing_end),
    )


# =============================================================================
# Wall-clock resolution
# =============================================================================


def get_zone(tz_name: str) -> tzinfo:
    """
    Resolve an IANA timezone name.

    Raises:
        EventValidationError: If the name is unknown
    """
    zone = tz.gettz(tz_name) if tz_name else None
    if zone is None:
        raise EventValidationError(f"Unknown timezone: {tz_name!r}", field="timezone")
    return zone


def parse_date(value: Union[str, date], field: str = "date") -> date:
    """Parse a YYYY-MM-DD calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise EventValidationError(f"Missing required field: {field}", field=field)
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError as e:
        raise EventValidationError(
            f"Invalid {field} {value!r}: expected YYYY-MM-DD",
            field=field,
            original_error=e,
        ) from e


def parse_time(value: Union[str, time], field: str = "start_time") -> time:
    """Parse an HH:MM (24-hour) time of day."""
    if isinstance(value, time):
        return value
    if not value:
        raise EventValidationError(f"Missing required field: {field}", field=field)
    try:
        return datetime.strptime(value.strip(), TIME_FORMAT).time()
    except ValueError as e:
        raise EventValidationError(
            f"Invalid {field} {value!r}: expected HH:MM (24-hour)",
            field=field,
            original_error=e,
        ) from e


def local_instant(day: date, time_of_day: time, tz_name: str) -> datetime:
    """Wall-clock date and time in a zone, as an aware datetime."""
    zone = get_zone(tz_name)
    return datetime.combine(day, time_of_day).replace(tzinfo=zone)


def resolve_local_interval(
    day: Union[str, date],
    start_time: Union[str, time],
    duration_minutes: int,
    tz_name: str,
) -> TimeInterval:
    """
    Resolve date + start time + duration in a timezone to an absolute interval.

    The duration is elapsed time, so an event crossing a DST change keeps
    its real length. The result is expressed in UTC.
    """
    if duration_minutes is None or duration_minutes <= 0:
        raise EventValidationError(
            f"Duration must be a positive number of minutes, got {duration_minutes}",
            field="duration_minutes",
        )
    start = local_instant(parse_date(day), parse_time(start_time), tz_name).astimezone(
        timezone.utc
    )
    return TimeInterval(start=start, end=start + timedelta(minutes=duration_minutes))


def local_day_bounds(day: date, tz_name: str) -> TimeInterval:
    """Local midnight to the next local midnight, in UTC."""
    start = local_instant(day, time(0, 0), tz_name)
    end = local_instant(day + timedelta(days=1), time(0, 0), tz_name)
    return TimeInterval(start=start, end=end).to_utc()


def format_local_time(value: datetime, tz_name: str) -> str:
    """12-hour clock time in the zone, e.g. '3:00 PM'."""
    local = value.astimezone(get_zone(tz_name))
    hour = local.hour % 12 or 12
    return f"{hour}:{local.minute:02d} {'AM' if local.hour < 12 else 'PM'}"
