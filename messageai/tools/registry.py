"""
Tool registry.

Binds each tool name to its model-facing schema, argument model and
handler. The set of names is a closed enum and the registry refuses to
start unless every name is registered.

``ToolRegistry.execute`` never raises: any failure becomes
``{"success": False, "error": ..., "hint": ..., "error_type": ...}`` so the
language model can see what went wrong and tell the user.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Sequence, Type, Union

from pydantic import ValidationError

from messageai.exceptions import (
    AccessDeniedError,
    EventNotFoundError,
    EventValidationError,
    NotConnectedError,
    ProviderTransientError,
    SchedulerError,
)
from messageai.services.calendar_service import CalendarService
from messageai.services.conflicts import ConflictDetectionService
from messageai.tools.handlers import (
    ToolContext,
    create_calendar_event,
    detect_conflicts,
    get_calendar_events,
)
from messageai.tools.schemas import (
    CREATE_CALENDAR_EVENT_SCHEMA,
    DETECT_CONFLICTS_SCHEMA,
    GET_CALENDAR_EVENTS_SCHEMA,
    CreateCalendarEventArgs,
    DetectConflictsArgs,
    GetCalendarEventsArgs,
    ToolArguments,
)

logger = logging.getLogger(__name__)

HINT_CONNECT = "Please go to your profile and connect your Google Calendar."
HINT_RECONNECT = "Please go to your profile and reconnect your Google Calendar."
HINT_RETRY = "The calendar service is temporarily unavailable. Try again in a moment."
HINT_NOT_FOUND = "The event may have been deleted. Fetch the calendar again before retrying."
HINT_ARGUMENTS = "Use dates as YYYY-MM-DD, times as 24-hour HH:MM and durations in minutes."
HINT_GENERIC = "The calendar could not be reached. The user may need to reconnect their calendar."


class ToolName(str, Enum):
    GET_CALENDAR_EVENTS = "getCalendarEvents"
    CREATE_CALENDAR_EVENT = "createCalendarEvent"
    DETECT_CONFLICTS = "detectConflicts"


@dataclass(frozen=True)
class ToolSpec:
    name: ToolName
    schema: dict
    args_model: Type[ToolArguments]
    handler: Callable[[Any, ToolContext], dict]


DEFAULT_TOOL_SPECS: tuple[ToolSpec, ...] = (
    ToolSpec(
        name=ToolName.GET_CALENDAR_EVENTS,
        schema=GET_CALENDAR_EVENTS_SCHEMA,
        args_model=GetCalendarEventsArgs,
        handler=get_calendar_events,
    ),
    ToolSpec(
        name=ToolName.CREATE_CALENDAR_EVENT,
        schema=CREATE_CALENDAR_EVENT_SCHEMA,
        args_model=CreateCalendarEventArgs,
        handler=create_calendar_event,
    ),
    ToolSpec(
        name=ToolName.DETECT_CONFLICTS,
        schema=DETECT_CONFLICTS_SCHEMA,
        args_model=DetectConflictsArgs,
        handler=detect_conflicts,
    ),
)


def _failure(error: str, hint: str, error_type: str) -> dict[str, Any]:
    return {
        "success": False,
        "error": error,
        "hint": hint,
        "error_type": error_type,
    }


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail.get("loc", ())) or "arguments"
        problems.append(f"{location}: {detail.get('msg')}")
    return "Invalid arguments - " + "; ".join(problems)


class ToolRegistry:
    """
    Closed set of tools exposed to the language model.

    Args:
        calendar_service: Calendar Access Layer shared by all tools
        conflict_service: Conflict Detection Service
        specs: Tool specs (defaults to the three calendar tools)

    Raises:
        RuntimeError: If a ToolName has no spec or a schema name disagrees
    """

    def __init__(
        self,
        calendar_service: CalendarService,
        conflict_service: ConflictDetectionService,
        specs: Optional[Sequence[ToolSpec]] = None,
    ):
        self._calendar = calendar_service
        self._conflicts = conflict_service
        self._specs: dict[ToolName, ToolSpec] = {
            spec.name: spec for spec in (specs if specs is not None else DEFAULT_TOOL_SPECS)
        }

        missing = [name.value for name in ToolName if name not in self._specs]
        if missing:
            raise RuntimeError(f"Tool registry is missing handlers for: {', '.join(missing)}")

        for name, spec in self._specs.items():
            schema_name = spec.schema.get("function", {}).get("name")
            if schema_name != name.value:
                raise RuntimeError(
                    f"Tool schema name {schema_name!r} does not match registered name {name.value!r}"
                )

    @property
    def names(self) -> list[str]:
        return [name.value for name in self._specs]

    def definitions(self) -> list[dict]:
        """Model-facing schemas for every registered tool, in enum order."""
        return [self._specs[name].schema for name in ToolName]

    def execute(
        self,
        name: str,
        arguments: Union[Mapping[str, Any], str, None],
        user_id: str,
        timezone: str,
    ) -> dict[str, Any]:
        """
        Validate arguments and run a tool for a user.

        Args:
            name: Tool name as requested by the model
            arguments: Argument object, or its JSON text
            user_id: User the tool acts for
            timezone: IANA timezone dates and times are interpreted in

        Returns:
            The handler's result, or a failure dict with error and hint
        """
        try:
            tool_name = ToolName(name)
        except ValueError:
            logger.warning(f"Model requested unknown tool {name!r}")
            return _failure(
                f"Unknown tool: {name}",
                f"Available tools: {', '.join(self.names)}",
                "unknown_tool",
            )

        spec = self._specs[tool_name]
        logger.info(f"Executing tool {tool_name.value} for user {user_id}")

        try:
            if isinstance(arguments, str):
                arguments = json.loads(arguments) if arguments.strip() else {}
            args = spec.args_model.model_validate(arguments or {})
            ctx = ToolContext(
                user_id=user_id,
                timezone=timezone,
                calendar=self._calendar,
                conflicts=self._conflicts,
            )
            return spec.handler(args, ctx)

        except json.JSONDecodeError as e:
            logger.warning(f"Tool {tool_name.value} received malformed JSON arguments: {e}")
            return _failure(f"Arguments are not valid JSON: {e.msg}", HINT_ARGUMENTS, "validation_error")
        except ValidationError as e:
            logger.warning(f"Tool {tool_name.value} rejected arguments: {e.error_count()} error(s)")
            return _failure(_format_validation_error(e), HINT_ARGUMENTS, "validation_error")
        except NotConnectedError as e:
            return _failure(e.message, HINT_CONNECT, e.code)
        except AccessDeniedError as e:
            logger.warning(f"Tool {tool_name.value} denied calendar access for user {user_id}")
            return _failure(e.message, HINT_RECONNECT, e.code)
        except ProviderTransientError as e:
            logger.warning(f"Tool {tool_name.value} hit a transient provider failure: {e.message}")
            return _failure(e.message, HINT_RETRY, e.code)
        except EventNotFoundError as e:
            return _failure(e.message, HINT_NOT_FOUND, e.code)
        except EventValidationError as e:
            field = e.field or "arguments"
            return _failure(e.message, f"Correct the {field} value and try again.", e.code)
        except SchedulerError as e:
            logger.error(f"Tool {tool_name.value} failed: {e.message}")
            return _failure(e.message, HINT_GENERIC, e.code)
        except Exception as e:
            logger.error(f"Tool {tool_name.value} raised unexpectedly: {e}", exc_info=True)
            return _failure(str(e) or type(e).__name__, HINT_GENERIC, "internal_error")
