"""Prompt templates for the scheduling assistant."""

from messageai.agents.prompts.analysis_prompts import (
    build_decision_prompt,
    build_event_extraction_prompt,
    build_invitation_prompt,
    build_rsvp_prompt,
    format_conversation,
)
from messageai.agents.prompts.chat_prompts import (
    CHAT_SYSTEM_PROMPT,
    build_chat_system_prompt,
    describe_now,
)

__all__ = [
    "CHAT_SYSTEM_PROMPT",
    "build_chat_system_prompt",
    "build_decision_prompt",
    "build_event_extraction_prompt",
    "build_invitation_prompt",
    "build_rsvp_prompt",
    "describe_now",
    "format_conversation",
]
