"""
Review of an event extracted from a chat message.

Checks the extracted event against the user's calendar so the client can
show conflicts and alternatives before the user confirms. The calendar
check is optional: without a connected calendar, or when the provider
fails, the extraction is returned unchecked.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from messageai.agents.analysis import EventExtraction
from messageai.exceptions import EventValidationError, NotConnectedError, SchedulerError
from messageai.services.conflicts import ConflictDetectionService, ConflictResult, ProposedEvent

logger = logging.getLogger(__name__)

CONFIRMATION_CONFIDENCE_THRESHOLD = 0.7


@dataclass(frozen=True)
class EventReview:
    extraction: EventExtraction
    calendar_checked: bool = False
    conflicts: Optional[ConflictResult] = None
    needs_confirmation: bool = False
    ambiguous_fields: tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_conflict(self) -> bool:
        return self.conflicts is not None and self.conflicts.has_conflict


def review_extraction(
    extraction: EventExtraction,
    user_id: str,
    timezone: str,
    conflict_service: Optional[ConflictDetectionService] = None,
) -> EventReview:
    """
    Attach calendar conflicts to an extraction and decide if it needs confirmation.

    Confirmation is needed when the model asked for it, confidence is
    below 0.7, any field is ambiguous, or the event conflicts.

    Args:
        extraction: Analyzer output
        user_id: Calendar owner
        timezone: Timezone the extracted date/time are in
        conflict_service: Conflict Detection Service (skip the check when None)
    """
    event = extraction.event
    ambiguous = tuple(dict.fromkeys([
        *extraction.ambiguous_fields,
        *(event.ambiguous_fields if event else ()),
    ]))

    if not extraction.has_event or event is None:
        return EventReview(extraction=extraction, ambiguous_fields=ambiguous)

    conflicts: Optional[ConflictResult] = None
    calendar_checked = False

    if conflict_service is not None and event.date and event.time:
        try:
            proposed = ProposedEvent(
                date=event.date,
                start_time=event.time,
                duration_minutes=event.duration,
                title=event.title,
            )
            conflicts = conflict_service.detect_conflicts(user_id, proposed, timezone)
            calendar_checked = True
        except NotConnectedError:
            logger.info(f"Calendar not connected for user {user_id}, skipping conflict check")
        except EventValidationError as e:
            logger.info(f"Extracted event for user {user_id} is not checkable: {e.message}")
        except SchedulerError as e:
            logger.warning(f"Conflict check failed for user {user_id}: {e.message}")

    needs_confirmation = (
        extraction.needs_confirmation
        or event.confidence < CONFIRMATION_CONFIDENCE_THRESHOLD
        or bool(ambiguous)
        or (conflicts is not None and conflicts.has_conflict)
    )

    return EventReview(
        extraction=extraction,
        calendar_checked=calendar_checked,
        conflicts=conflicts,
        needs_confirmation=needs_confirmation,
        ambiguous_fields=ambiguous,
    )
