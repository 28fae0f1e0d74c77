"""
Tool handlers.

Each handler receives validated arguments and the caller's context and
returns a JSON-serializable result. Handlers may raise; the registry turns
every exception into a structured failure for the model.
"""

from dataclasses import dataclass
from typing import Any

from messageai.integrations.base import CalendarEvent
from messageai.services.calendar_service import CalendarService
from messageai.services.conflicts import ConflictDetectionService, ConflictResult, ProposedEvent
from messageai.services.intervals import (
    format_local_time,
    get_zone,
    local_day_bounds,
    parse_date,
)
from messageai.tools.schemas import (
    CreateCalendarEventArgs,
    DetectConflictsArgs,
    GetCalendarEventsArgs,
)

NO_CONFLICT_MESSAGE = "No conflicts found. The time slot is available."


@dataclass(frozen=True)
class ToolContext:
    """Who a tool runs for, and the services it may use."""

    user_id: str
    timezone: str
    calendar: CalendarService
    conflicts: ConflictDetectionService


def _format_event(event: CalendarEvent, tz_name: str) -> dict[str, Any]:
    local_start = event.start_time.astimezone(get_zone(tz_name))
    if event.all_day:
        start_label, end_label = "All day", "All day"
        day = event.start_time.strftime("%Y-%m-%d")
    else:
        start_label = format_local_time(event.start_time, tz_name)
        end_label = format_local_time(event.end_time, tz_name)
        day = local_start.strftime("%Y-%m-%d")
    return {
        "id": event.id,
        "title": event.title,
        "date": day,
        "startTime": start_label,
        "endTime": end_label,
        "location": event.location,
        "description": event.description,
    }


def get_calendar_events(args: GetCalendarEventsArgs, ctx: ToolContext) -> dict[str, Any]:
    """List events from the start of startDate to the end of endDate, user's timezone."""
    start = local_day_bounds(parse_date(args.start_date), ctx.timezone).start
    end = local_day_bounds(parse_date(args.end_date), ctx.timezone).end

    events = [
        event
        for event in ctx.calendar.list_events(ctx.user_id, start, end)
        if not event.is_cancelled
    ]
    return {
        "success": True,
        "eventCount": len(events),
        "events": [_format_event(event, ctx.timezone) for event in events],
        "dateRange": {"start": args.start_date, "end": args.end_date},
    }


def create_calendar_event(args: CreateCalendarEventArgs, ctx: ToolContext) -> dict[str, Any]:
    """Create an event. Every call creates a new event; repeats are not merged."""
    created = ctx.calendar.create_event(
        ctx.user_id,
        {
            "title": args.title,
            "date": args.date,
            "start_time": args.start_time,
            "duration_minutes": args.duration_minutes,
            "description": args.description,
            "location": args.location,
        },
        ctx.timezone,
    )
    formatted = _format_event(created, ctx.timezone)
    return {
        "success": True,
        "message": "Event created successfully",
        "event": {
            "id": created.id,
            "title": created.title,
            "date": formatted["date"],
            "startTime": formatted["startTime"],
            "endTime": formatted["endTime"],
            "duration": created.duration_minutes,
            "location": created.location,
        },
    }


def _suggestion(result: ConflictResult) -> str:
    if result.alternative_times:
        return (
            "This time overlaps existing events. Offer the user one of the "
            "alternative times."
        )
    if result.alternatives_degraded:
        return (
            "Alternative times could not be checked right now. Ask the user "
            "for another time."
        )
    return "No free slots were found in the next 7 days. Ask the user for another time."


def conflict_result_payload(result: ConflictResult, tz_name: str) -> dict[str, Any]:
    """Serialize a ConflictResult the way the model and the API consume it."""
    if not result.has_conflict:
        return {
            "success": True,
            "hasConflict": False,
            "message": NO_CONFLICT_MESSAGE,
            "conflicts": [],
            "alternativeTimes": [],
        }

    return {
        "success": True,
        "hasConflict": True,
        "conflictCount": len(result.conflicts),
        "conflicts": [
            {
                "id": conflict.busy_block.source_event_id,
                "title": conflict.busy_block.title,
                "start": format_local_time(conflict.busy_block.start, tz_name),
                "end": format_local_time(conflict.busy_block.end, tz_name),
                "overlapMinutes": conflict.overlap_minutes,
            }
            for conflict in result.conflicts
        ],
        "alternativeTimes": result.alternative_times,
        "alternativesDegraded": result.alternatives_degraded,
        "suggestion": _suggestion(result),
    }


def detect_conflicts(args: DetectConflictsArgs, ctx: ToolContext) -> dict[str, Any]:
    proposed = ProposedEvent(
        date=args.date,
        start_time=args.start_time,
        duration_minutes=args.duration_minutes,
        title=args.title,
    )
    result = ctx.conflicts.detect_conflicts(ctx.user_id, proposed, ctx.timezone)
    return conflict_result_payload(result, ctx.timezone)
