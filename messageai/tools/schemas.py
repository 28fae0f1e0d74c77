"""
Tool argument models and model-facing schemas.

The JSON schemas are a stable contract consumed by the language model;
argument names stay camelCase for backward compatibility. The pydantic
models validate whatever the model sends before any handler runs.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from messageai.services.intervals import parse_date, parse_time

DEFAULT_DURATION_MINUTES = 60
MAX_DURATION_MINUTES = 24 * 60


class ToolArguments(BaseModel):
    """Base for tool arguments: aliases accepted, unknown keys ignored."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


def _check_date(value: str) -> str:
    parse_date(value)
    return value


def _check_time(value: str) -> str:
    parse_time(value)
    return value


class GetCalendarEventsArgs(ToolArguments):
    start_date: str = Field(alias="startDate")
    end_date: str = Field(alias="endDate")

    @field_validator("start_date", "end_date")
    @classmethod
    def check_dates(cls, value: str) -> str:
        return _check_date(value)

    @model_validator(mode="after")
    def check_range(self) -> "GetCalendarEventsArgs":
        if parse_date(self.end_date) < parse_date(self.start_date):
            raise ValueError("endDate must not be before startDate")
        return self


class CreateCalendarEventArgs(ToolArguments):
    title: str = Field(min_length=1, max_length=200)
    date: str
    start_time: str = Field(alias="startTime")
    duration: Optional[int] = Field(default=None, ge=1, le=MAX_DURATION_MINUTES)
    description: Optional[str] = None
    location: Optional[str] = None

    @field_validator("date")
    @classmethod
    def check_date(cls, value: str) -> str:
        return _check_date(value)

    @field_validator("start_time")
    @classmethod
    def check_start_time(cls, value: str) -> str:
        return _check_time(value)

    @property
    def duration_minutes(self) -> int:
        return self.duration or DEFAULT_DURATION_MINUTES


class DetectConflictsArgs(ToolArguments):
    date: str
    start_time: str = Field(alias="startTime")
    duration: Optional[int] = Field(default=None, ge=1, le=MAX_DURATION_MINUTES)
    title: Optional[str] = None

    @field_validator("date")
    @classmethod
    def check_date(cls, value: str) -> str:
        return _check_date(value)

    @field_validator("start_time")
    @classmethod
    def check_start_time(cls, value: str) -> str:
        return _check_time(value)

    @property
    def duration_minutes(self) -> int:
        return self.duration or DEFAULT_DURATION_MINUTES


# =============================================================================
# Model-facing schemas (OpenAI function format, accepted by bind_tools)
# =============================================================================

GET_CALENDAR_EVENTS_SCHEMA = {
    "type": "function",
    "function": {
        "name": "getCalendarEvents",
        "description": (
            "Get the user's calendar events for a date range. Use this to see "
            "what is already scheduled before suggesting or creating events."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "startDate": {
                    "type": "string",
                    "description": "First day of the range, YYYY-MM-DD",
                },
                "endDate": {
                    "type": "string",
                    "description": "Last day of the range (inclusive), YYYY-MM-DD",
                },
            },
            "required": ["startDate", "endDate"],
        },
    },
}

CREATE_CALENDAR_EVENT_SCHEMA = {
    "type": "function",
    "function": {
        "name": "createCalendarEvent",
        "description": (
            "Create a new event on the user's calendar. Only call this after "
            "the user has confirmed the details."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Event title"},
                "date": {"type": "string", "description": "Event date, YYYY-MM-DD"},
                "startTime": {
                    "type": "string",
                    "description": "Start time in 24-hour HH:MM, in the user's timezone",
                },
                "duration": {
                    "type": "integer",
                    "description": "Duration in minutes (default 60)",
                },
                "description": {"type": "string", "description": "Optional notes"},
                "location": {"type": "string", "description": "Optional location"},
            },
            "required": ["title", "date", "startTime"],
        },
    },
}

DETECT_CONFLICTS_SCHEMA = {
    "type": "function",
    "function": {
        "name": "detectConflicts",
        "description": (
            "Check whether a proposed time overlaps existing events. Returns the "
            "conflicts and alternative times when the slot is taken."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "date": {"type": "string", "description": "Proposed date, YYYY-MM-DD"},
                "startTime": {
                    "type": "string",
                    "description": "Proposed start time in 24-hour HH:MM",
                },
                "duration": {
                    "type": "integer",
                    "description": "Duration in minutes (default 60)",
                },
                "title": {"type": "string", "description": "Optional event title"},
            },
            "required": ["date", "startTime"],
        },
    },
}
