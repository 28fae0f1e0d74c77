"""
Agent module for the scheduling assistant.

LLM construction, prompts, orchestration state and the structured-output
message analyzers.
"""

from messageai.agents.analysis import (
    DecisionParticipants,
    DecisionSummary,
    EventExtraction,
    ExtractedEvent,
    InvitationDetection,
    RSVPDetection,
    consensus_level,
    detect_invitation,
    detect_rsvp,
    extract_event,
    summarize_decision,
)
from messageai.agents.state import (
    ConversationTurn,
    OrchestrationResult,
    OrchestrationState,
    ToolCallRecord,
)

__all__ = [
    # Orchestration state
    "ConversationTurn",
    "OrchestrationResult",
    "OrchestrationState",
    "ToolCallRecord",
    # Analyzer models
    "DecisionParticipants",
    "DecisionSummary",
    "EventExtraction",
    "ExtractedEvent",
    "InvitationDetection",
    "RSVPDetection",
    # Analyzers
    "consensus_level",
    "detect_invitation",
    "detect_rsvp",
    "extract_event",
    "summarize_decision",
]
