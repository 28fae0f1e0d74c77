"""
LangGraph orchestrator for the scheduling assistant.

Runs one chat turn as a bounded loop: the model either answers or asks
for tools; requested tools run sequentially and their results go back to
the model, until it answers or the iteration cap forces a reply.

Usage:
    from messageai.orchestrator import build_orchestrator_graph, run_orchestration

    # Build graph once at startup
    graph = build_orchestrator_graph(model, registry)

    # Run for each chat message
    result = run_orchestration(
        graph,
        user_id="user_123",
        message="Add soccer practice Saturday at 2:30pm",
        conversation_history=[],
        timezone="America/Chicago",
    )
"""

import logging
import uuid
from datetime import datetime, timezone as dt_timezone
from typing import Any, Optional, Sequence, Union

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langgraph.graph import END, StateGraph

from messageai.agents.prompts import build_chat_system_prompt
from messageai.agents.state import (
    ConversationTurn,
    OrchestrationResult,
    OrchestrationState,
    ToolCallRecord,
)
from messageai.config import get_settings
from messageai.orchestrator.nodes import FAILURE_REPLY, OrchestratorNodes, _create_error
from messageai.orchestrator.routing import route_after_agent
from messageai.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


def build_orchestrator_graph(model, registry: ToolRegistry):
    """
    Build the tool-calling graph.

    Args:
        model: Chat model with the registry's tool schemas bound
        registry: Tool registry

    Returns:
        Compiled StateGraph

    Graph Structure:
        agent -> [routing decision]
            -> tools -> agent
            -> finish -> END
            -> force_finish -> END
            -> END (model failure)
    """
    logger.info("Building orchestrator graph")
    nodes = OrchestratorNodes(model, registry)

    graph = StateGraph(OrchestrationState)

    graph.add_node("agent", nodes.agent_node)
    graph.add_node("tools", nodes.tools_node)
    graph.add_node("finish", nodes.finish_node)
    graph.add_node("force_finish", nodes.force_finish_node)

    graph.set_entry_point("agent")

    graph.add_conditional_edges(
        "agent",
        route_after_agent,
        {
            "tools": "tools",
            "finish": "finish",
            "force_finish": "force_finish",
            "end": END,
        },
    )

    graph.add_edge("tools", "agent")
    graph.add_edge("finish", END)
    graph.add_edge("force_finish", END)

    compiled = graph.compile()
    logger.info("Orchestrator graph built successfully")
    return compiled


def _history_message(turn: ConversationTurn) -> BaseMessage:
    if turn.role == "assistant":
        return AIMessage(content=turn.content)
    return HumanMessage(content=turn.content)


def initialize_state(
    user_id: str,
    message: str,
    conversation_history: Optional[Sequence[Union[ConversationTurn, dict]]],
    timezone: str,
    conversation_id: Optional[str] = None,
    max_iterations: Optional[int] = None,
    now: Optional[datetime] = None,
) -> OrchestrationState:
    """
    Initialize state for one chat turn.

    Messages are: system prompt, prior turns in order, then the new user message.
    System-role turns from the history are appended to the system prompt;
    Anthropic accepts only one leading system message.
    """
    now = now or datetime.now(dt_timezone.utc)
    history = [
        turn if isinstance(turn, ConversationTurn) else ConversationTurn.model_validate(turn)
        for turn in conversation_history or []
    ]

    system_prompt = "\n\n".join(
        [build_chat_system_prompt(timezone, now)]
        + [turn.content for turn in history if turn.role == "system"]
    )
    messages: list[BaseMessage] = [SystemMessage(content=system_prompt)]
    messages.extend(_history_message(turn) for turn in history if turn.role != "system")
    messages.append(HumanMessage(content=message))

    return OrchestrationState(
        conversation_id=conversation_id or str(uuid.uuid4()),
        user_id=user_id,
        timezone=timezone,
        messages=messages,
        iterations=0,
        max_iterations=max_iterations or get_settings().max_tool_iterations,
        tools_called=[],
        turns=[],
        reply=None,
        status="in_progress",
        errors=[],
        created_at=now.isoformat(),
        updated_at=now.isoformat(),
    )


def _to_result(state: dict[str, Any], conversation_id: str) -> OrchestrationResult:
    status = state.get("status")
    if status not in ("completed", "iteration_cap_reached", "failed"):
        status = "failed"

    return OrchestrationResult(
        conversation_id=conversation_id,
        reply=state.get("reply") or FAILURE_REPLY,
        tools_called=list(state.get("tools_called", [])),
        status=status,
        iterations=state.get("iterations", 0),
        turns=[ToolCallRecord.model_validate(turn) for turn in state.get("turns", [])],
        errors=list(state.get("errors", [])),
    )


def run_orchestration(
    graph,
    user_id: str,
    message: str,
    conversation_history: Optional[Sequence[Union[ConversationTurn, dict]]],
    timezone: str,
    conversation_id: Optional[str] = None,
    max_iterations: Optional[int] = None,
) -> OrchestrationResult:
    """
    Run one chat turn to completion.

    Never raises for tool or model failures: the result carries a reply in
    every case, with status "completed", "iteration_cap_reached" or "failed".

    Args:
        graph: Compiled orchestrator graph
        user_id: Authenticated user the tools act for
        message: The user's new message
        conversation_history: Prior turns as {role, content}
        timezone: User's IANA timezone
        conversation_id: Optional id used to correlate log lines
        max_iterations: Tool-round cap (defaults to MAX_TOOL_ITERATIONS)

    Returns:
        OrchestrationResult with reply and tools_called in execution order
    """
    initial_state = initialize_state(
        user_id=user_id,
        message=message,
        conversation_history=conversation_history,
        timezone=timezone,
        conversation_id=conversation_id,
        max_iterations=max_iterations,
    )

    conv_id = initial_state["conversation_id"]
    logger.info(f"[{conv_id}] Running orchestration for user {user_id}: '{message[:50]}'")

    # Each tool round is two graph steps (agent, tools) plus the terminal steps
    config = {"recursion_limit": 2 * initial_state["max_iterations"] + 5}

    try:
        final_state = graph.invoke(initial_state, config=config)
    except Exception as e:
        logger.error(f"[{conv_id}] Orchestration failed: {e}", exc_info=True)
        final_state = {
            **initial_state,
            "status": "failed",
            "reply": FAILURE_REPLY,
            "errors": [
                _create_error(
                    error_type="orchestrator_failure",
                    node="orchestrator",
                    message=f"Workflow execution failed: {e}",
                    retryable=True,
                )
            ],
        }

    result = _to_result(final_state, conv_id)
    logger.info(
        f"[{conv_id}] Orchestration finished: status={result.status}, "
        f"iterations={result.iterations}, tools={result.tools_called}"
    )
    return result


__all__ = [
    "build_orchestrator_graph",
    "initialize_state",
    "run_orchestration",
]
