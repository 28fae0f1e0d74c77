"""
Free-slot search for alternative meeting times.

Scans the business-hours window of a day in fixed increments and keeps
candidates that overlap no busy block. The search widens in stages until
enough alternatives are found:

1. the proposed day (up to 3 slots)
2. the next day (filling up to 3 in total)
3. days 2-7 after the proposed day, one slot per day, up to 5 in total

The search is best-effort. A provider failure part-way through returns
what was already collected, flagged as degraded.
"""

import logging
from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import Optional, Union

from messageai.config import Settings, get_settings
from messageai.exceptions import EventValidationError, SchedulerError
from messageai.services.calendar_service import CalendarService
from messageai.services.intervals import (
    TimeInterval,
    format_local_time,
    get_zone,
    interval_overlap,
    local_day_bounds,
    local_instant,
    parse_date,
)

logger = logging.getLogger(__name__)

SAME_DAY_LIMIT = 3
NEXT_DAY_TARGET = 3
MAX_ALTERNATIVES = 5
SEARCH_HORIZON_DAYS = 7


@dataclass(frozen=True)
class AlternativeSlot:
    """A free slot plus a human-readable label in the user's timezone."""

    interval: TimeInterval
    day_offset: int
    label: str


@dataclass(frozen=True)
class AlternativeSearchResult:
    """
    Outcome of an alternative-time search.

    ``degraded`` distinguishes "no slots exist" from "the search was cut
    short by a provider failure".
    """

    alternatives: tuple[AlternativeSlot, ...] = ()
    degraded: bool = False
    error_code: Optional[str] = None

    @property
    def labels(self) -> list[str]:
        return [slot.label for slot in self.alternatives]


class FreeSlotFinder:
    """
    Finds free slots on a user's calendar.

    Args:
        calendar_service: Calendar Access Layer used for busy blocks
        settings: Business hours and scan increment
    """

    def __init__(self, calendar_service: CalendarService, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self._calendar = calendar_service
        self._start_hour = settings.business_hours_start
        self._end_hour = settings.business_hours_end
        self._increment = timedelta(minutes=settings.slot_increment_minutes)

    def _business_window(self, day: date, tz_name: str) -> TimeInterval:
        start = local_instant(day, time(self._start_hour), tz_name)
        end_day = day + timedelta(days=self._end_hour // 24)
        end = local_instant(end_day, time(self._end_hour % 24), tz_name)
        return TimeInterval(start, end).to_utc()

    def free_slots(
        self,
        user_id: str,
        day: date,
        duration_minutes: int,
        tz_name: str,
        limit: Optional[int] = None,
    ) -> list[TimeInterval]:
        """
        Free slots of the given length on one day, earliest first.

        Busy blocks are fetched without transient retries; failures propagate.
        """
        day_range = local_day_bounds(day, tz_name)
        busy = self._calendar.get_busy_blocks(
            user_id,
            day_range.start,
            day_range.end,
            retry_transient=False,
        )

        window = self._business_window(day, tz_name)
        duration = timedelta(minutes=duration_minutes)
        slots: list[TimeInterval] = []

        candidate = window.start
        while candidate + duration <= window.end:
            slot = TimeInterval(candidate, candidate + duration)
            if not any(interval_overlap(slot, block.interval).has_conflict for block in busy):
                slots.append(slot)
                if limit is not None and len(slots) >= limit:
                    break
            candidate += self._increment

        return slots

    def _label(self, slot: TimeInterval, day_offset: int, tz_name: str) -> str:
        local_start = slot.start.astimezone(get_zone(tz_name))
        when = f"{local_start:%Y-%m-%d} at {format_local_time(slot.start, tz_name)}"
        if day_offset >= 2:
            return f"{local_start:%a} {when}"
        return when

    def find_alternatives(
        self,
        user_id: str,
        proposed_date: Union[str, date],
        duration_minutes: int,
        tz_name: str,
    ) -> AlternativeSearchResult:
        """
        Find up to five alternative slots around a proposed date.

        Args:
            user_id: Calendar owner
            proposed_date: Day of the proposed event (YYYY-MM-DD or date)
            duration_minutes: Required slot length
            tz_name: IANA timezone the search runs in

        Returns:
            AlternativeSearchResult, degraded when a fetch failed mid-search

        Raises:
            EventValidationError: For a bad date, duration or timezone
        """
        day = parse_date(proposed_date)
        get_zone(tz_name)
        if duration_minutes is None or duration_minutes <= 0:
            raise EventValidationError(
                f"Duration must be a positive number of minutes, got {duration_minutes}",
                field="duration_minutes",
            )

        collected: list[AlternativeSlot] = []

        def take(day_offset: int, limit: int) -> None:
            target_day = day + timedelta(days=day_offset)
            for slot in self.free_slots(user_id, target_day, duration_minutes, tz_name, limit=limit):
                collected.append(
                    AlternativeSlot(
                        interval=slot,
                        day_offset=day_offset,
                        label=self._label(slot, day_offset, tz_name),
                    )
                )

        try:
            take(0, SAME_DAY_LIMIT)

            if len(collected) < NEXT_DAY_TARGET:
                take(1, NEXT_DAY_TARGET - len(collected))

            if len(collected) < NEXT_DAY_TARGET:
                for day_offset in range(2, SEARCH_HORIZON_DAYS + 1):
                    if len(collected) >= MAX_ALTERNATIVES:
                        break
                    take(day_offset, 1)

        except SchedulerError as e:
            logger.warning(
                f"Alternative search for user {user_id} cut short after "
                f"{len(collected)} slots: {e.message}"
            )
            return AlternativeSearchResult(
                alternatives=tuple(collected),
                degraded=True,
                error_code=e.code,
            )

        logger.debug(f"Found {len(collected)} alternative slots for user {user_id}")
        return AlternativeSearchResult(alternatives=tuple(collected))
