"""
Routing logic for the orchestration graph.

Decision functions used with LangGraph's conditional edges.
"""

import logging
from typing import Literal

from langchain_core.messages import AIMessage

from messageai.agents.state import OrchestrationState

logger = logging.getLogger(__name__)


def route_after_agent(
    state: OrchestrationState,
) -> Literal["tools", "finish", "force_finish", "end"]:
    """
    Route after the model's turn.

    Routing Logic:
    1. Model call failed -> end (reply already set)
    2. No tool calls requested -> finish
    3. Tool calls requested but the iteration cap is used up -> force_finish
    4. Otherwise -> tools

    Args:
        state: Current orchestration state

    Returns:
        String key for next node
    """
    conv_id = state.get("conversation_id", "unknown")

    if state.get("status") == "failed":
        return "end"

    messages = state.get("messages", [])
    last = messages[-1] if messages else None
    tool_calls = last.tool_calls if isinstance(last, AIMessage) else []

    if not tool_calls:
        return "finish"

    iterations = state.get("iterations", 0)
    max_iterations = state.get("max_iterations", 5)
    if iterations >= max_iterations:
        logger.info(
            f"[{conv_id}] Routing to force_finish: {iterations} of {max_iterations} "
            f"iterations used, {len(tool_calls)} tool call(s) still requested"
        )
        return "force_finish"

    return "tools"
