"""
Unit tests for the interval and conflict engine.
"""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from messageai.exceptions import EventValidationError
from messageai.services.intervals import (
    BusyBlock,
    TimeInterval,
    format_local_time,
    get_zone,
    local_day_bounds,
    overlap,
    parse_date,
    parse_time,
    resolve_local_interval,
)
from support import CHICAGO, NEW_YORK, local, make_event


class TestOverlap:
    """Tests for overlap between a proposed and an existing interval."""

    def test_partial_overlap(self):
        """Dentist 2-3pm against soccer 2:30-4:30pm overlaps by 30 minutes."""
        result = overlap(
            local(2026, 1, 15, 14), local(2026, 1, 15, 15),
            local(2026, 1, 15, 14, 30), local(2026, 1, 15, 16, 30),
        )

        assert result.has_conflict is True
        assert result.overlap_minutes == 30

    def test_back_to_back_is_not_a_conflict(self):
        """An event ending exactly when the next starts does not conflict."""
        result = overlap(
            local(2026, 1, 15, 14), local(2026, 1, 15, 15),
            local(2026, 1, 15, 15), local(2026, 1, 15, 16),
        )

        assert result.has_conflict is False
        assert result.overlap_minutes == 0

    def test_containment(self):
        """A proposal inside an existing event overlaps for its whole length."""
        result = overlap(
            local(2026, 1, 15, 14, 15), local(2026, 1, 15, 14, 45),
            local(2026, 1, 15, 14), local(2026, 1, 15, 16),
        )

        assert result.overlap_minutes == 30

    def test_identical_intervals(self):
        result = overlap(
            local(2026, 1, 15, 9), local(2026, 1, 15, 10),
            local(2026, 1, 15, 9), local(2026, 1, 15, 10),
        )

        assert result.has_conflict is True
        assert result.overlap_minutes == 60

    def test_disjoint(self):
        result = overlap(
            local(2026, 1, 15, 9), local(2026, 1, 15, 10),
            local(2026, 1, 16, 9), local(2026, 1, 16, 10),
        )

        assert result.has_conflict is False

    def test_symmetric(self):
        """Swapping proposed and existing gives the same answer."""
        a = (local(2026, 1, 15, 9), local(2026, 1, 15, 11))
        b = (local(2026, 1, 15, 10, 15), local(2026, 1, 15, 12))

        assert overlap(*a, *b) == overlap(*b, *a)

    def test_sub_minute_overlap_floors(self):
        """Overlap shorter than a minute still conflicts but counts zero minutes."""
        start = local(2026, 1, 15, 9)
        result = overlap(
            start, start + timedelta(minutes=10),
            start + timedelta(minutes=9, seconds=30), start + timedelta(minutes=20),
        )

        assert result.has_conflict is True
        assert result.overlap_minutes == 0

    def test_compares_absolute_instants_across_zones(self):
        """3pm New York is 2pm Chicago."""
        result = overlap(
            local(2026, 1, 15, 15, zone=NEW_YORK), local(2026, 1, 15, 16, zone=NEW_YORK),
            local(2026, 1, 15, 14), local(2026, 1, 15, 15),
        )

        assert result.overlap_minutes == 60

    def test_same_wall_clock_in_different_zones_is_not_a_conflict(self):
        result = overlap(
            local(2026, 1, 15, 14, zone=NEW_YORK), local(2026, 1, 15, 15, zone=NEW_YORK),
            local(2026, 1, 15, 14), local(2026, 1, 15, 15),
        )

        assert result.has_conflict is False

    def test_naive_datetime_rejected(self):
        with pytest.raises(EventValidationError):
            overlap(
                datetime(2026, 1, 15, 14), datetime(2026, 1, 15, 15),
                local(2026, 1, 15, 14), local(2026, 1, 15, 15),
            )

    def test_empty_interval_rejected(self):
        start = local(2026, 1, 15, 14)
        with pytest.raises(EventValidationError):
            overlap(start, start, start, start + timedelta(hours=1))


class TestTimeInterval:
    """Tests for the TimeInterval value type."""

    def test_duration_minutes(self):
        interval = TimeInterval(local(2026, 1, 15, 9), local(2026, 1, 15, 10, 30))
        assert interval.duration_minutes == 90

    def test_end_before_start_rejected(self):
        with pytest.raises(EventValidationError) as exc_info:
            TimeInterval(local(2026, 1, 15, 10), local(2026, 1, 15, 9))
        assert exc_info.value.field == "end"

    def test_to_utc_keeps_instant(self):
        interval = TimeInterval(local(2026, 1, 15, 9), local(2026, 1, 15, 10))
        utc = interval.to_utc()

        assert utc.start.utcoffset() == timedelta(0)
        assert utc.start == interval.start


class TestBusyBlock:
    """Tests for which calendar events block time."""

    def test_timed_event(self):
        event = make_event("e1", "Soccer", local(2026, 1, 15, 14, 30), local(2026, 1, 15, 16, 30))
        block = BusyBlock.from_event(event)

        assert block is not None
        assert block.source_event_id == "e1"
        assert block.title == "Soccer"
        assert block.start == event.start_time

    def test_all_day_event_does_not_block(self):
        event = make_event(
            "e1", "Holiday", local(2026, 1, 15, 0), local(2026, 1, 16, 0), all_day=True
        )
        assert BusyBlock.from_event(event) is None

    def test_cancelled_event_does_not_block(self):
        event = make_event(
            "e1", "Cancelled", local(2026, 1, 15, 9), local(2026, 1, 15, 10), status="cancelled"
        )
        assert BusyBlock.from_event(event) is None

    def test_zero_length_event_does_not_block(self):
        start = local(2026, 1, 15, 9)
        assert BusyBlock.from_event(make_event("e1", "Reminder", start, start)) is None


class TestWallClockResolution:
    """Tests for resolving dates and times in a timezone."""

    def test_resolve_local_interval(self):
        interval = resolve_local_interval("2026-01-15", "14:00", 60, CHICAGO)

        assert interval.start == datetime(2026, 1, 15, 20, 0, tzinfo=timezone.utc)
        assert interval.end == datetime(2026, 1, 15, 21, 0, tzinfo=timezone.utc)

    def test_duration_is_elapsed_time_across_dst(self):
        """1:00 AM plus 120 minutes on spring-forward day ends at 4:00 AM local."""
        interval = resolve_local_interval("2026-03-08", "01:00", 120, CHICAGO)

        assert interval.duration_minutes == 120
        assert interval.end.astimezone(get_zone(CHICAGO)).hour == 4

    @pytest.mark.parametrize("duration", [0, -30])
    def test_non_positive_duration_rejected(self, duration):
        with pytest.raises(EventValidationError) as exc_info:
            resolve_local_interval("2026-01-15", "14:00", duration, CHICAGO)
        assert exc_info.value.field == "duration_minutes"

    def test_unknown_timezone(self):
        with pytest.raises(EventValidationError) as exc_info:
            get_zone("Mars/Olympus_Mons")
        assert exc_info.value.field == "timezone"

    @pytest.mark.parametrize("value", ["01/15/2026", "2026-13-01", ""])
    def test_invalid_date(self, value):
        with pytest.raises(EventValidationError) as exc_info:
            parse_date(value)
        assert exc_info.value.field == "date"

    @pytest.mark.parametrize("value", ["2pm", "25:00", ""])
    def test_invalid_time(self, value):
        with pytest.raises(EventValidationError):
            parse_time(value)

    def test_parse_accepts_native_values(self):
        assert parse_date(date(2026, 1, 15)) == date(2026, 1, 15)
        assert parse_time(time(14, 30)) == time(14, 30)

    def test_local_day_bounds(self):
        bounds = local_day_bounds(date(2026, 1, 15), CHICAGO)

        assert bounds.start == datetime(2026, 1, 15, 6, 0, tzinfo=timezone.utc)
        assert bounds.duration_minutes == 24 * 60

    def test_local_day_bounds_on_short_day(self):
        assert local_day_bounds(date(2026, 3, 8), CHICAGO).duration_minutes == 23 * 60

    @pytest.mark.parametrize(
        "hour,minute,expected",
        [(0, 0, "12:00 AM"), (9, 5, "9:05 AM"), (12, 0, "12:00 PM"), (15, 30, "3:30 PM")],
    )
    def test_format_local_time(self, hour, minute, expected):
        assert format_local_time(local(2026, 1, 15, hour, minute), CHICAGO) == expected
