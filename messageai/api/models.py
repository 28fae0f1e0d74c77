"""
Pydantic request and response models for the MessageAI API.

Field names are snake_case in Python and camelCase on the wire; both are
accepted on input.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from messageai.agents.state import ConversationTurn


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


def _require_text(value: str, name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{name} is required")
    return value.strip()


class UserRequest(ApiModel):
    user_id: str = Field(..., description="Authenticated user the request acts for")
    timezone: Optional[str] = Field(
        None,
        description="IANA timezone (defaults to DEFAULT_TIMEZONE)",
        examples=["America/Chicago"],
    )

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        return _require_text(v, "userId")


# =============================================================================
# Chat
# =============================================================================


class ChatRequest(UserRequest):
    """One chat message for the scheduling assistant."""

    message: str = Field(..., max_length=4000, examples=["Am I free Saturday at 2pm?"])
    conversation_history: list[ConversationTurn] = Field(default_factory=list)

    @field_validator("message")
    @classmethod
    def validate_message_not_empty(cls, v: str) -> str:
        return _require_text(v, "message")


class ChatResponse(ApiModel):
    reply: str
    tools_called: list[str] = Field(default_factory=list)
    status: Literal["completed", "iteration_cap_reached", "failed"]
    iterations: int = 0
    conversation_id: str


# =============================================================================
# Conflict detection
# =============================================================================


class ProposedEventModel(ApiModel):
    date: str = Field(..., examples=["2026-01-17"])
    start_time: str = Field(..., examples=["14:30"])
    duration: int = Field(60, ge=1, le=24 * 60, description="Minutes")
    title: Optional[str] = None


class DetectConflictsRequest(UserRequest):
    proposed_event: ProposedEventModel


class ConflictModel(ApiModel):
    id: Optional[str] = None
    title: str
    start: str
    end: str
    overlap_minutes: int


class DetectConflictsResponse(ApiModel):
    has_conflict: bool
    conflicts: list[ConflictModel] = Field(default_factory=list)
    alternative_times: list[str] = Field(default_factory=list)
    alternatives_degraded: bool = False


# =============================================================================
# Message analysis
# =============================================================================


class TextAnalysisRequest(ApiModel):
    text: str = Field(..., max_length=4000)
    timezone: Optional[str] = None

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return _require_text(v, "text")


class ExtractEventRequest(TextAnalysisRequest):
    user_id: Optional[str] = Field(
        None,
        description="When set, the extracted event is checked against this user's calendar",
    )


class ExtractEventResponse(ApiModel):
    has_event: bool
    event: Optional[dict[str, Any]] = None
    ambiguous_fields: list[str] = Field(default_factory=list)
    needs_confirmation: bool = False
    calendar_checked: bool = False
    conflicts: Optional[DetectConflictsResponse] = None


class DetectRSVPRequest(ApiModel):
    text: str = Field(..., max_length=4000)
    invitation_text: str = Field(..., max_length=4000)

    @field_validator("text", "invitation_text")
    @classmethod
    def validate_texts(cls, v: str) -> str:
        return _require_text(v, "text")


class ChatMessageModel(ApiModel):
    sender_name: str = "Unknown"
    text: str
    timestamp: Optional[str] = None


class SummarizeDecisionRequest(ApiModel):
    messages: list[ChatMessageModel] = Field(default_factory=list)
    participant_names: list[str] = Field(default_factory=list)
    timezone: Optional[str] = None


# =============================================================================
# System
# =============================================================================


class HealthResponse(ApiModel):
    status: Literal["healthy", "unhealthy"]
    version: str
    services_ready: bool


class ErrorResponse(BaseModel):
    error_type: str
    message: str
    retryable: bool = False
