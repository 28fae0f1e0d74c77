"""System prompt for the tool-calling chat assistant."""

from datetime import datetime, timezone as dt_timezone
from typing import Optional

from messageai.services.intervals import get_zone

CHAT_SYSTEM_PROMPT = """You are a helpful scheduling assistant for busy parents.

CURRENT DATE AND TIME: {current_date} at {current_time} ({timezone})

Your capabilities:
- Check calendar events
- Create new events
- Detect scheduling conflicts
- Suggest available times

Guidelines:
1. Always confirm before modifying the calendar
2. Be concise but friendly
3. Show your reasoning when suggesting times
4. Ask clarifying questions for ambiguous dates
5. Prioritize the user's explicit preferences
6. Default to a 1-hour duration if not specified
7. Use 12-hour time format (3 PM, not 15:00) when talking to the user
8. When the user says "today", "tomorrow" or "next week", use the CURRENT DATE above as reference
9. Tool arguments use YYYY-MM-DD dates and 24-hour HH:MM times in the user's timezone

When you detect a conflict:
- Explain what conflicts
- Mention when the conflict is
- Suggest the alternative times returned by the tool

If a tool returns success=false, tell the user what went wrong using its hint."""


def describe_now(tz_name: str, now: Optional[datetime] = None) -> tuple[str, str]:
    """
    Render the current instant in a timezone.

    Returns:
        (date, time) such as ("Monday, January 12, 2026", "9:05 AM")
    """
    now = now or datetime.now(dt_timezone.utc)
    local = now.astimezone(get_zone(tz_name))
    current_date = f"{local:%A}, {local:%B} {local.day}, {local.year}"
    hour = local.hour % 12 or 12
    current_time = f"{hour}:{local:%M} {'AM' if local.hour < 12 else 'PM'}"
    return current_date, current_time


def build_chat_system_prompt(tz_name: str, now: Optional[datetime] = None) -> str:
    """Build the system prompt with the current date and time in the user's timezone."""
    current_date, current_time = describe_now(tz_name, now)
    return CHAT_SYSTEM_PROMPT.format(
        current_date=current_date,
        current_time=current_time,
        timezone=tz_name,
    )
