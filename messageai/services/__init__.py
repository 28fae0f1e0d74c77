"""
Service layer: calendar access, free-slot search and conflict detection.
"""

from messageai.services.calendar_service import CalendarService
from messageai.services.conflicts import ConflictDetectionService, ConflictResult, ProposedEvent
from messageai.services.event_cache import EventCache
from messageai.services.free_slots import AlternativeSearchResult, FreeSlotFinder

__all__ = [
    "AlternativeSearchResult",
    "CalendarService",
    "ConflictDetectionService",
    "ConflictResult",
    "EventCache",
    "FreeSlotFinder",
    "ProposedEvent",
]
