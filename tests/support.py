"""
Shared fakes and builders for MessageAI tests.

A controllable clock, an in-memory calendar provider with call counting
and failure injection, and a scripted chat model.
"""

import itertools
from collections import Counter, defaultdict, deque
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from dateutil import tz
from langchain_core.messages import AIMessage

from messageai.auth.token_storage import OAuthTokenRecord
from messageai.exceptions import EventNotFoundError
from messageai.integrations.base import CalendarEvent, CreateEventRequest

CHICAGO = "America/Chicago"
NEW_YORK = "America/New_York"
USER_ID = "user-1"

# Monday, January 12 2026, 9:00 AM in Chicago
NOW = datetime(2026, 1, 12, 15, 0, tzinfo=timezone.utc)


def local(year: int, month: int, day: int, hour: int, minute: int = 0, zone: str = CHICAGO) -> datetime:
    """Aware datetime for a wall-clock time in a zone."""
    return datetime(year, month, day, hour, minute, tzinfo=tz.gettz(zone))


def make_event(
    event_id: str,
    title: str,
    start: datetime,
    end: datetime,
    **kwargs: Any,
) -> CalendarEvent:
    return CalendarEvent(
        id=event_id,
        calendar_id="primary",
        title=title,
        start_time=start,
        end_time=end,
        **kwargs,
    )


def tool_call_message(*calls: tuple[str, dict], content: str = "") -> AIMessage:
    """AIMessage requesting the given (name, args) tool calls."""
    return AIMessage(
        content=content,
        tool_calls=[
            {"name": name, "args": args, "id": f"call_{name}_{index}", "type": "tool_call"}
            for index, (name, args) in enumerate(calls)
        ],
    )


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeCalendarProvider:
    """
    In-memory CalendarProvider.

    One calendar shared by every session. ``calls`` counts every operation;
    ``fail_next(operation, *outcomes)`` queues outcomes for the next calls
    of an operation, where an exception is raised and None lets the call
    through.
    """

    def __init__(self, events: Iterable[CalendarEvent] = ()):
        self.events: dict[str, CalendarEvent] = {event.id: event for event in events}
        self.calls: Counter = Counter()
        self.sessions: list[str] = []
        self.created: list[CreateEventRequest] = []
        self.updates: list[tuple[str, dict]] = []
        self.refresh_result: Optional[OAuthTokenRecord] = None
        self.refresh_error: Optional[Exception] = None
        self._failures: dict[str, deque] = defaultdict(deque)
        self._ids = itertools.count(1)

    def add(self, *events: CalendarEvent) -> None:
        for event in events:
            self.events[event.id] = event

    def fail_next(self, operation: str, *outcomes: Optional[Exception]) -> None:
        self._failures[operation].extend(outcomes)

    def _record(self, operation: str) -> None:
        self.calls[operation] += 1
        queue = self._failures[operation]
        if queue:
            outcome = queue.popleft()
            if outcome is not None:
                raise outcome

    def open_session(self, access_token: str) -> str:
        self.calls["open_session"] += 1
        self.sessions.append(access_token)
        return access_token

    def list_events(self, session: str, start: datetime, end: datetime) -> list[CalendarEvent]:
        self._record("list_events")
        matching = [
            event
            for event in self.events.values()
            if event.start_time < end and event.end_time > start
        ]
        return sorted(matching, key=lambda event: event.start_time)

    def get_event(self, session: str, event_id: str) -> CalendarEvent:
        self._record("get_event")
        if event_id not in self.events:
            raise EventNotFoundError("Event not found")
        return self.events[event_id]

    def create_event(self, session: str, event: CreateEventRequest) -> CalendarEvent:
        self._record("create_event")
        self.created.append(event)
        created = make_event(
            f"evt-{next(self._ids)}",
            event.title,
            event.start_time,
            event.end_time,
            description=event.description,
            location=event.location,
        )
        self.events[created.id] = created
        return created

    def update_event(self, session: str, event_id: str, updates: dict) -> CalendarEvent:
        self._record("update_event")
        if event_id not in self.events:
            raise EventNotFoundError("Event not found")
        self.updates.append((event_id, dict(updates)))
        changes = {key: value for key, value in updates.items() if key != "timezone"}
        updated = replace(self.events[event_id], **changes)
        self.events[event_id] = updated
        return updated

    def delete_event(self, session: str, event_id: str) -> None:
        self._record("delete_event")
        if event_id not in self.events:
            raise EventNotFoundError("Event not found")
        del self.events[event_id]

    def refresh_access_token(self, refresh_token: str) -> OAuthTokenRecord:
        self._record("refresh_access_token")
        if self.refresh_error is not None:
            raise self.refresh_error
        return self.refresh_result


class ScriptedChatModel:
    """
    Stand-in for a tool-bound chat model.

    Returns the scripted responses in order (an exception in the script is
    raised instead). Once the script runs out, ``default`` is returned if
    given. Every call's message list is recorded in ``calls``.
    """

    def __init__(self, responses: Iterable[Any] = (), default: Optional[AIMessage] = None):
        self._responses = deque(responses)
        self.default = default
        self.calls: list[list] = []

    def script(self, *responses: Any) -> None:
        self._responses.extend(responses)

    def invoke(self, messages, config=None, **kwargs) -> AIMessage:
        self.calls.append(list(messages))
        if self._responses:
            response = self._responses.popleft()
        elif self.default is not None:
            response = self.default
        else:
            raise AssertionError("ScriptedChatModel ran out of responses")

        if isinstance(response, Exception):
            raise response
        return response
