"""
State schema for the tool-calling orchestration loop.

Design:
- TypedDict root state for LangGraph compatibility and partial updates
- Pydantic models for the request history and the final result
- ISO 8601 datetime strings for JSON serialization
"""

from typing import Any, Literal, Optional, TypedDict

from langchain_core.messages import BaseMessage
from pydantic import BaseModel, Field

OrchestrationStatus = Literal[
    "in_progress",
    "completed",
    "iteration_cap_reached",
    "failed",
]


# ============================================================================
# Conversation
# ============================================================================

class ConversationTurn(BaseModel):
    """Prior turn supplied by the caller."""

    role: Literal["user", "assistant", "system"]
    content: str


# ============================================================================
# Tool calls
# ============================================================================

class ToolCallRecord(BaseModel):
    """One executed tool call, kept for the audit trail."""

    iteration: int = Field(ge=1)
    tool_call_id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    success: bool
    error: Optional[str] = None
    timestamp: str  # ISO 8601


# ============================================================================
# Result
# ============================================================================

class OrchestrationResult(BaseModel):
    """
    Outcome of one chat turn.

    ``tools_called`` lists every executed tool in execution order,
    repeats included.
    """

    conversation_id: str
    reply: str
    tools_called: list[str] = Field(default_factory=list)
    status: Literal["completed", "iteration_cap_reached", "failed"]
    iterations: int = 0
    turns: list[ToolCallRecord] = Field(default_factory=list)
    errors: list[dict[str, Any]] = Field(default_factory=list)


# ============================================================================
# Root state
# ============================================================================

class OrchestrationState(TypedDict, total=False):
    """
    State flowing through the orchestration graph.

    Nodes return partial updates; list fields are replaced wholesale, so
    nodes always return the full extended list.
    """

    # Request context
    conversation_id: str
    user_id: str
    timezone: str

    # Model conversation (system prompt, history, user message, AI and tool messages)
    messages: list[BaseMessage]

    # Loop accounting
    iterations: int
    max_iterations: int
    tools_called: list[str]
    turns: list[dict[str, Any]]

    # Outcome
    reply: Optional[str]
    status: OrchestrationStatus
    errors: list[dict[str, Any]]

    # Metadata
    created_at: str
    updated_at: str
