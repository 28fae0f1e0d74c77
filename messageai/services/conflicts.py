"""
Conflict detection for a single proposed event.

Resolves the proposal in the requesting user's timezone, compares it with
every busy block on that day and, when anything overlaps, asks the
free-slot search for alternatives.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from messageai.exceptions import EventValidationError
from messageai.services.calendar_service import DEFAULT_EVENT_DURATION_MINUTES, CalendarService
from messageai.services.free_slots import AlternativeSearchResult, FreeSlotFinder
from messageai.services.intervals import (
    BusyBlock,
    TimeInterval,
    interval_overlap,
    local_day_bounds,
    parse_date,
    parse_time,
    resolve_local_interval,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProposedEvent:
    """An event under consideration, in wall-clock terms."""

    date: Union[str, date]
    start_time: str
    duration_minutes: int = DEFAULT_EVENT_DURATION_MINUTES
    title: Optional[str] = None

    def __post_init__(self) -> None:
        parse_date(self.date)
        parse_time(self.start_time)
        if self.duration_minutes is None or self.duration_minutes <= 0:
            raise EventValidationError(
                f"Duration must be a positive number of minutes, got {self.duration_minutes}",
                field="duration_minutes",
            )

    def resolve(self, tz_name: str) -> TimeInterval:
        return resolve_local_interval(self.date, self.start_time, self.duration_minutes, tz_name)


@dataclass(frozen=True)
class Conflict:
    busy_block: BusyBlock
    overlap_minutes: int


@dataclass(frozen=True)
class ConflictResult:
    """
    Conflicts for one proposed event.

    ``alternatives`` is only searched when there is a conflict.
    """

    proposed: TimeInterval
    conflicts: tuple[Conflict, ...] = ()
    alternatives: AlternativeSearchResult = field(default_factory=AlternativeSearchResult)

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicts)

    @property
    def alternative_times(self) -> list[str]:
        return self.alternatives.labels

    @property
    def alternatives_degraded(self) -> bool:
        return self.alternatives.degraded


class ConflictDetectionService:
    """
    Answers "does this proposed event conflict, and what are the alternatives".

    Args:
        calendar_service: Calendar Access Layer
        slot_finder: Free-slot search (built on calendar_service when omitted)
    """

    def __init__(
        self,
        calendar_service: CalendarService,
        slot_finder: Optional[FreeSlotFinder] = None,
    ):
        self._calendar = calendar_service
        self._slot_finder = slot_finder or FreeSlotFinder(calendar_service)

    def detect_conflicts(
        self,
        user_id: str,
        proposed: ProposedEvent,
        tz_name: str,
    ) -> ConflictResult:
        """
        Check a proposed event against the user's calendar.

        Args:
            user_id: Calendar owner
            proposed: Proposed event
            tz_name: Timezone the proposal is expressed in (the requesting user's)

        Raises:
            NotConnectedError, AccessDeniedError, ProviderTransientError,
            ProviderError, EventValidationError
        """
        interval = proposed.resolve(tz_name)
        day = parse_date(proposed.date)
        day_range = local_day_bounds(day, tz_name)

        busy = self._calendar.get_busy_blocks(user_id, day_range.start, day_range.end)

        conflicts = []
        for block in busy:
            result = interval_overlap(interval, block.interval)
            if result.has_conflict:
                conflicts.append(Conflict(busy_block=block, overlap_minutes=result.overlap_minutes))

        if not conflicts:
            logger.info(f"No conflicts for user {user_id} at {interval.start.isoformat()}")
            return ConflictResult(proposed=interval)

        logger.info(f"Found {len(conflicts)} conflict(s) for user {user_id}")
        alternatives = self._slot_finder.find_alternatives(
            user_id,
            day,
            proposed.duration_minutes,
            tz_name,
        )
        return ConflictResult(
            proposed=interval,
            conflicts=tuple(conflicts),
            alternatives=alternatives,
        )
