"""
Node implementations for the tool-calling orchestration graph.

Each node:
1. Reads what it needs from state
2. Calls the language model or the tool registry
3. Returns a partial state update

Nodes never raise exceptions - errors are captured in state.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from langchain_core.messages import AIMessage, BaseMessage, ToolMessage

from messageai.agents.state import OrchestrationState
from messageai.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

FAILURE_REPLY = (
    "Sorry, I'm having trouble answering right now. Please try again in a moment."
)
EMPTY_REPLY = "I'm not sure how to help with that. Could you rephrase your request?"
CAP_REPLY = (
    "I wasn't able to finish that request. Could you give me a bit more detail "
    "or try again?"
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _create_error(
    error_type: str,
    node: str,
    message: str,
    details: dict | None = None,
    retryable: bool = False,
) -> dict[str, Any]:
    """Create standardized error entry."""
    return {
        "error_type": error_type,
        "node": node,
        "message": message,
        "details": details or {},
        "retryable": retryable,
        "timestamp": _now(),
    }


def message_text(message: BaseMessage) -> str:
    """Plain text of a message whose content may be a list of content blocks."""
    content = message.content
    if isinstance(content, str):
        return content.strip()

    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts).strip()


def last_ai_message(messages: list[BaseMessage]) -> Optional[AIMessage]:
    for message in reversed(messages):
        if isinstance(message, AIMessage):
            return message
    return None


class OrchestratorNodes:
    """
    Graph nodes bound to a language model and a tool registry.

    Args:
        model: Runnable whose invoke(messages) returns an AIMessage
            (a chat model with the tool schemas bound)
        registry: Tool registry executing requested tools
    """

    def __init__(self, model, registry: ToolRegistry):
        self._model = model
        self._registry = registry

    # =========================================================================
    # Agent Node
    # =========================================================================

    def agent_node(self, state: OrchestrationState) -> dict[str, Any]:
        """
        Send the accumulated conversation to the model.

        Returns partial state update with:
        - messages: history plus the model's turn
        - status/errors/reply: on model failure
        """
        conv_id = state.get("conversation_id", "unknown")
        messages = list(state.get("messages", []))
        logger.info(
            f"[{conv_id}] Calling model with {len(messages)} messages "
            f"(iteration {state.get('iterations', 0)})"
        )

        try:
            response = self._model.invoke(messages)
            if not isinstance(response, AIMessage):
                response = AIMessage(content=getattr(response, "content", str(response)))

        except Exception as e:
            logger.error(f"[{conv_id}] Model call failed: {e}", exc_info=True)
            error = _create_error(
                error_type="llm_error",
                node="agent",
                message="Language model call failed",
                details={"exception": str(e)},
                retryable=True,
            )
            return {
                "status": "failed",
                "reply": FAILURE_REPLY,
                "errors": [*state.get("errors", []), error],
                "updated_at": _now(),
            }

        if response.tool_calls:
            names = ", ".join(call["name"] for call in response.tool_calls)
            logger.info(f"[{conv_id}] Model requested {len(response.tool_calls)} tool call(s): {names}")

        return {
            "messages": [*messages, response],
            "updated_at": _now(),
        }

    # =========================================================================
    # Tools Node
    # =========================================================================

    def tools_node(self, state: OrchestrationState) -> dict[str, Any]:
        """
        Execute the tool calls of the latest model turn, one at a time, in order.

        Every call produces a ToolMessage, including failures, so the model
        always sees a result for each request. Repeated calls are executed
        again; nothing is deduplicated.
        """
        conv_id = state.get("conversation_id", "unknown")
        messages = list(state.get("messages", []))
        iteration = state.get("iterations", 0) + 1

        ai_message = last_ai_message(messages)
        tool_calls = ai_message.tool_calls if ai_message is not None else []

        tools_called = list(state.get("tools_called", []))
        turns = list(state.get("turns", []))

        for index, call in enumerate(tool_calls):
            name = call["name"]
            arguments = call.get("args") or {}
            call_id = call.get("id") or f"call_{iteration}_{index}"

            result = self._registry.execute(
                name,
                arguments,
                user_id=state["user_id"],
                timezone=state["timezone"],
            )
            success = bool(result.get("success"))
            if not success:
                logger.info(f"[{conv_id}] Tool {name} returned failure: {result.get('error')}")

            messages.append(
                ToolMessage(
                    content=json.dumps(result, default=str),
                    tool_call_id=call_id,
                    name=name,
                )
            )
            tools_called.append(name)
            turns.append(
                {
                    "iteration": iteration,
                    "tool_call_id": call_id,
                    "name": name,
                    "arguments": arguments,
                    "success": success,
                    "error": None if success else result.get("error"),
                    "timestamp": _now(),
                }
            )

        logger.info(f"[{conv_id}] Executed {len(tool_calls)} tool call(s) in iteration {iteration}")

        return {
            "messages": messages,
            "tools_called": tools_called,
            "turns": turns,
            "iterations": iteration,
            "updated_at": _now(),
        }

    # =========================================================================
    # Terminal Nodes
    # =========================================================================

    def finish_node(self, state: OrchestrationState) -> dict[str, Any]:
        """The model answered without tool calls; its text is the reply."""
        conv_id = state.get("conversation_id", "unknown")
        ai_message = last_ai_message(state.get("messages", []))
        reply = message_text(ai_message) if ai_message is not None else ""

        logger.info(
            f"[{conv_id}] Completed after {state.get('iterations', 0)} tool iteration(s)"
        )
        return {
            "reply": reply or EMPTY_REPLY,
            "status": "completed",
            "updated_at": _now(),
        }

    def force_finish_node(self, state: OrchestrationState) -> dict[str, Any]:
        """
        Stop at the iteration cap while the model still wants tools.

        The reply is the latest non-empty model text, or a generic message.
        """
        conv_id = state.get("conversation_id", "unknown")
        logger.warning(
            f"[{conv_id}] Iteration cap reached after {state.get('iterations', 0)} "
            f"tool iteration(s); tools called: {state.get('tools_called', [])}"
        )

        reply = ""
        for message in reversed(state.get("messages", [])):
            if isinstance(message, AIMessage):
                reply = message_text(message)
                if reply:
                    break

        return {
            "reply": reply or CAP_REPLY,
            "status": "iteration_cap_reached",
            "updated_at": _now(),
        }
