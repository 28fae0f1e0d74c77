"""
Calendar tools exposed to the language model.
"""

from messageai.tools.handlers import ToolContext
from messageai.tools.registry import DEFAULT_TOOL_SPECS, ToolName, ToolRegistry, ToolSpec

__all__ = [
    "DEFAULT_TOOL_SPECS",
    "ToolContext",
    "ToolName",
    "ToolRegistry",
    "ToolSpec",
]
