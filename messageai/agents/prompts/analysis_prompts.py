"""
Prompts for the structured-output message analyzers.

The response structure is enforced by the schema passed to
``with_structured_output``; these prompts only carry the rules.
"""

from datetime import datetime, timezone as dt_timezone
from typing import Optional, Sequence

from dateutil.parser import parse as parse_datetime

from messageai.services.intervals import format_local_time

EVENT_EXTRACTION_PROMPT = """Extract scheduling information from the following text.

CURRENT DATE: {current_date}
USER TIMEZONE: {timezone}

Rules:
1. Use the CURRENT DATE above when interpreting "today", "tomorrow", etc.
2. Extract explicit dates (YYYY-MM-DD) and times (24-hour HH:MM)
3. Infer reasonable defaults (1 hour duration)
4. List every field you had to guess in ambiguous_fields
5. Be conservative - better to ask than guess wrong

Text:
{text}"""


INVITATION_DETECTION_PROMPT = """Analyze this message to determine if it's an invitation to an event or activity.

CURRENT DATE: {current_date}
CURRENT TIME: {current_time}

Message: "{text}"

WHAT COUNTS AS AN INVITATION:
- Direct invites: "Want to come to...", "You're invited to...", "Join us for..."
- Event announcements: "We're having a party...", "Birthday party at..."
- Activity proposals: "Let's meet for...", "How about we..."
- Playdates: "Kids playdate on Saturday", "Want to bring kids to the park?"
- Meetings: "Can we meet to discuss...", "Parent-teacher conference..."
- Group activities: "Anyone free for soccer practice?", "Team potluck next week"

NOT invitations:
- Questions about availability ("Are you free Friday?")
- Tentative suggestions ("We should hang out sometime")
- General planning ("We need to schedule...")
- Past event mentions ("Thanks for coming yesterday")
- Event info without invite ("School event is next week")

Be strict: only mark as invitation if there's a clear invite to a specific event or activity."""


RSVP_DETECTION_PROMPT = """Analyze if this message is an RSVP response to the given invitation.

INVITATION:
"{invitation_text}"

RESPONSE MESSAGE:
"{text}"

YES responses: "Yes", "Sure", "Count me in", "We'll be there", "+1"
NO responses: "Sorry", "Can't make it", "Have to pass", "Not this time"
MAYBE responses: "Maybe", "Not sure", "Let me check", "I'll let you know"

NOT RSVP responses:
- Questions about the event ("What time is it?", "Where is it?")
- Unrelated messages
- Acknowledgments without commitment ("Thanks for inviting us")

Responses may mention how many people are coming ("Family of 4") or carry
conditions ("Only if weather is good"); capture both."""


DECISION_SUMMARY_PROMPT = """Analyze this group chat conversation and identify if a decision was made.

PARTICIPANTS: {participants}

CONVERSATION:
{conversation}

Rules:
1. Only report has_decision=true if there's a clear question and final decision
2. Question should be concise (e.g., "Where to eat?", "What time to meet?")
3. Final decision should be the agreed-upon choice
4. List participant names (not IDs) in agreed/disagreed/neutral
5. Include 2-3 key messages that led to the decision
6. Consider "let's do X", "sounds good", "I'm in", "agree" as agreement
7. Consider "no", "I can't", "prefer Y" as disagreement
8. Be conservative - if there is no clear decision, report has_decision=false"""


def format_conversation(messages: Sequence[dict]) -> str:
    """Render chat messages as "sender: text" lines."""
    lines = []
    for message in messages:
        sender = message.get("sender_name") or message.get("senderName") or "Unknown"
        lines.append(f"{sender}: {message.get('text', '')}")
    return "\n".join(lines)


def _message_time(message: dict) -> Optional[datetime]:
    value = message.get("timestamp")
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = parse_datetime(value)
        except (ValueError, OverflowError):
            return None
    else:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=dt_timezone.utc)


def describe_timeline(messages: Sequence[dict], timezone: Optional[str]) -> str:
    """First and last message times plus elapsed minutes, or "" without timestamps."""
    times = [t for t in map(_message_time, messages) if t is not None]
    if not times or not timezone:
        return ""
    first, last = min(times), max(times)
    minutes = round((last - first).total_seconds() / 60)
    return (
        f"- First message: {format_local_time(first, timezone)}\n"
        f"- Last message: {format_local_time(last, timezone)}\n"
        f"- Duration: {minutes} minutes"
    )


def build_event_extraction_prompt(text: str, current_date: str, timezone: str) -> str:
    return EVENT_EXTRACTION_PROMPT.format(text=text, current_date=current_date, timezone=timezone)


def build_invitation_prompt(text: str, current_date: str, current_time: str) -> str:
    return INVITATION_DETECTION_PROMPT.format(
        text=text,
        current_date=current_date,
        current_time=current_time,
    )


def build_rsvp_prompt(text: str, invitation_text: str) -> str:
    return RSVP_DETECTION_PROMPT.format(text=text, invitation_text=invitation_text)


def build_decision_prompt(
    messages: Sequence[dict],
    participant_names: Sequence[str],
    timezone: Optional[str] = None,
) -> str:
    prompt = DECISION_SUMMARY_PROMPT.format(
        participants=", ".join(participant_names) or "Unknown",
        conversation=format_conversation(messages),
    )
    timeline = describe_timeline(messages, timezone)
    if timeline:
        prompt += f"\n\nTIMELINE INFO:\n{timeline}"
    return prompt
