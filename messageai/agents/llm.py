"""
LLM initialization for the scheduling assistant.

Centralizes model selection and client configuration. Uses Anthropic
Claude through LangChain so the orchestrator and analyzers only depend on
the Runnable interface.
"""

from typing import Any, Sequence

from langchain_anthropic import ChatAnthropic

from messageai.config import get_settings

# Model constants for Anthropic Claude
SONNET_MODEL = "claude-sonnet-4-20250514"
HAIKU_MODEL = "claude-3-5-haiku-20241022"

DEFAULT_MODEL = SONNET_MODEL  # Chat orchestration
ANALYSIS_MODEL = HAIKU_MODEL  # Short structured-output analyzers


def get_llm(
    model: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
) -> ChatAnthropic:
    """
    Get a configured Anthropic Claude LLM instance.

    Args:
        model: Model name. Falls back to LLM_MODEL, then DEFAULT_MODEL.
        temperature: Sampling temperature. Defaults to LLM_TEMPERATURE (0.7).
        max_tokens: Response token limit. Defaults to LLM_MAX_TOKENS (1500).

    Returns:
        ChatAnthropic instance

    Raises:
        ValueError: If ANTHROPIC_API_KEY is not configured
    """
    settings = get_settings()
    api_key = settings.get_llm_api_key()

    return ChatAnthropic(
        model=model or settings.llm_model or DEFAULT_MODEL,
        anthropic_api_key=api_key,
        temperature=settings.llm_temperature if temperature is None else temperature,
        max_tokens=max_tokens or settings.llm_max_tokens,
    )


def get_tool_calling_llm(tool_definitions: Sequence[dict[str, Any]], **kwargs):
    """
    Get the chat model with the calendar tools bound.

    Args:
        tool_definitions: Tool schemas in OpenAI function format
        **kwargs: Passed to get_llm()

    Returns:
        Runnable whose invoke(messages) returns an AIMessage with tool_calls
    """
    return get_llm(**kwargs).bind_tools(list(tool_definitions), tool_choice="auto")


def get_analysis_llm(temperature: float = 0.2, **kwargs) -> ChatAnthropic:
    """Low-temperature model for structured extraction and classification."""
    kwargs.setdefault("model", ANALYSIS_MODEL)
    return get_llm(temperature=temperature, **kwargs)
