"""
Message analyzers backed by structured LLM output.

Each analyzer sends one prompt through ``with_structured_output`` and
returns a validated pydantic model. Model failures surface as
LanguageModelError; nothing here touches the calendar.
"""

import logging
from datetime import datetime
from typing import Any, Literal, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError

from messageai.agents.llm import get_analysis_llm
from messageai.agents.prompts import (
    build_decision_prompt,
    build_event_extraction_prompt,
    build_invitation_prompt,
    build_rsvp_prompt,
    describe_now,
)
from messageai.exceptions import LanguageModelError

logger = logging.getLogger(__name__)

ConsensusLevel = Literal["unanimous", "strong", "moderate", "weak", "none"]

ModelT = TypeVar("ModelT", bound=BaseModel)


# ============================================================================
# Output models
# ============================================================================

class ExtractedEvent(BaseModel):
    title: str
    date: Optional[str] = Field(default=None, description="YYYY-MM-DD")
    time: Optional[str] = Field(default=None, description="24-hour HH:MM")
    duration: int = Field(default=60, ge=1, description="Minutes")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    ambiguous_fields: list[str] = Field(default_factory=list)


class EventExtraction(BaseModel):
    """Scheduling information found in a chat message."""

    has_event: bool
    event: Optional[ExtractedEvent] = None
    ambiguous_fields: list[str] = Field(default_factory=list)
    needs_confirmation: bool = False


class InvitationDetection(BaseModel):
    is_invitation: bool
    invitation_type: Optional[
        Literal["party", "meeting", "playdate", "event", "activity", "other"]
    ] = None
    event_title: Optional[str] = None
    event_date: Optional[str] = None
    event_time: Optional[str] = None
    event_location: Optional[str] = None
    invitation_text: Optional[str] = None
    requires_rsvp: bool = False
    rsvp_deadline: Optional[str] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class RSVPDetection(BaseModel):
    is_rsvp: bool
    rsvp_status: Optional[Literal["yes", "no", "maybe"]] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reason: Optional[str] = None
    number_of_people: Optional[int] = Field(default=None, ge=1)
    conditions: Optional[str] = None


class DecisionParticipants(BaseModel):
    agreed: list[str] = Field(default_factory=list)
    disagreed: list[str] = Field(default_factory=list)
    neutral: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.agreed) + len(self.disagreed) + len(self.neutral)


class DecisionSummary(BaseModel):
    """Whether a group conversation reached a decision, and who agreed."""

    has_decision: bool
    question: Optional[str] = None
    final_decision: Optional[str] = None
    participants: DecisionParticipants = Field(default_factory=DecisionParticipants)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    key_messages: list[str] = Field(default_factory=list)
    consensus_level: ConsensusLevel = "none"


# ============================================================================
# Helpers
# ============================================================================

def consensus_level(agreed: int, total: int) -> ConsensusLevel:
    """
    Classify agreement among participants.

    unanimous: everyone agreed; strong: 80%+; moderate: 60-79%;
    weak: 50-59%; none: no majority or nobody counted.
    """
    if total <= 0 or agreed <= 0:
        return "none"
    if agreed >= total:
        return "unanimous"

    share = agreed * 100 / total
    if share >= 80:
        return "strong"
    if share >= 60:
        return "moderate"
    if share >= 50:
        return "weak"
    return "none"


def _invoke_structured(llm, schema: Type[ModelT], prompt: str, task: str) -> ModelT:
    try:
        result = llm.with_structured_output(schema).invoke(prompt)
        if isinstance(result, dict):
            result = schema.model_validate(result)
    except ValidationError as e:
        logger.error(f"{task} returned malformed output: {e}")
        raise LanguageModelError(f"{task} returned malformed output", original_error=e) from e
    except Exception as e:
        logger.error(f"{task} failed: {e}", exc_info=True)
        raise LanguageModelError(f"{task} failed: {e}", original_error=e) from e

    if result is None:
        raise LanguageModelError(f"{task} returned no output")
    return result


# ============================================================================
# Analyzers
# ============================================================================

def extract_event(
    text: str,
    timezone: str,
    llm=None,
    now: Optional[datetime] = None,
) -> EventExtraction:
    """
    Extract a proposed event from a chat message.

    Args:
        text: Message text
        timezone: User's IANA timezone, used for relative dates
        llm: Chat model (low-temperature default)
        now: Current instant (defaults to the system clock)

    Raises:
        LanguageModelError: If the model call fails or returns malformed output
    """
    current_date, _ = describe_now(timezone, now)
    prompt = build_event_extraction_prompt(text, current_date, timezone)
    result = _invoke_structured(
        llm or get_analysis_llm(temperature=0.3),
        EventExtraction,
        prompt,
        "Event extraction",
    )

    if not result.has_event:
        return result.model_copy(update={"event": None})
    return result


def detect_invitation(
    text: str,
    timezone: str,
    llm=None,
    now: Optional[datetime] = None,
) -> InvitationDetection:
    current_date, current_time = describe_now(timezone, now)
    prompt = build_invitation_prompt(text, current_date, current_time)
    return _invoke_structured(
        llm or get_analysis_llm(),
        InvitationDetection,
        prompt,
        "Invitation detection",
    )


def detect_rsvp(message_text: str, invitation_text: str, llm=None) -> RSVPDetection:
    """Classify a reply to an invitation as yes / no / maybe, or not an RSVP."""
    prompt = build_rsvp_prompt(message_text, invitation_text)
    result = _invoke_structured(
        llm or get_analysis_llm(),
        RSVPDetection,
        prompt,
        "RSVP detection",
    )
    if not result.is_rsvp:
        return result.model_copy(update={"rsvp_status": None})
    return result


def summarize_decision(
    messages: Sequence[dict[str, Any]],
    participant_names: Sequence[str],
    timezone: Optional[str] = None,
    llm=None,
) -> DecisionSummary:
    """
    Summarize whether a group conversation reached a decision.

    The consensus level is recomputed from the participant lists rather
    than trusted from the model.

    Args:
        messages: Chat messages with sender_name (or senderName) and text
        participant_names: Display names of the conversation's members
        timezone: Timezone message timestamps are shown in
        llm: Chat model (low-temperature default)
    """
    if not messages:
        return DecisionSummary(has_decision=False)

    prompt = build_decision_prompt(messages, participant_names, timezone)
    result = _invoke_structured(
        llm or get_analysis_llm(temperature=0.3),
        DecisionSummary,
        prompt,
        "Decision summarization",
    )

    level = consensus_level(len(result.participants.agreed), result.participants.total)
    if not result.has_decision:
        level = "none"
    return result.model_copy(update={"consensus_level": level})
