"""
Unit tests for the tool registry.

execute() must never raise; every failure comes back as a structured
result with an error and a hint.
"""

from dataclasses import replace

import pytest

from messageai.auth.token_storage import OAuthTokenRecord
from messageai.exceptions import AccessDeniedError, ProviderError, ProviderTransientError
from messageai.tools.registry import (
    DEFAULT_TOOL_SPECS,
    HINT_ARGUMENTS,
    HINT_CONNECT,
    HINT_GENERIC,
    HINT_RECONNECT,
    HINT_RETRY,
    ToolName,
    ToolRegistry,
)
from support import CHICAGO, USER_ID, local, make_event

RANGE_ARGS = {"startDate": "2026-01-15", "endDate": "2026-01-15"}


def assert_failure(result, error_type, hint=None):
    assert result["success"] is False
    assert result["error"]
    assert result["error_type"] == error_type
    if hint is not None:
        assert result["hint"] == hint


class TestRegistryConstruction:
    """Tests for registry startup checks."""

    def test_definitions_in_fixed_order(self, registry):
        names = [definition["function"]["name"] for definition in registry.definitions()]
        assert names == ["getCalendarEvents", "createCalendarEvent", "detectConflicts"]

    def test_missing_handler_refuses_to_start(self, calendar_service, conflict_service):
        with pytest.raises(RuntimeError, match="detectConflicts"):
            ToolRegistry(calendar_service, conflict_service, specs=DEFAULT_TOOL_SPECS[:2])

    def test_schema_name_mismatch(self, calendar_service, conflict_service):
        bad = replace(DEFAULT_TOOL_SPECS[0], schema={"function": {"name": "listEvents"}})

        with pytest.raises(RuntimeError, match="listEvents"):
            ToolRegistry(calendar_service, conflict_service, specs=(bad, *DEFAULT_TOOL_SPECS[1:]))


class TestExecute:
    """Tests for argument handling in execute()."""

    def test_success(self, registry, provider):
        provider.add(make_event("e1", "Soccer", local(2026, 1, 15, 14), local(2026, 1, 15, 15)))

        result = registry.execute("getCalendarEvents", RANGE_ARGS, USER_ID, CHICAGO)

        assert result["success"] is True
        assert result["eventCount"] == 1

    def test_arguments_as_json_text(self, registry):
        result = registry.execute(
            "getCalendarEvents",
            '{"startDate": "2026-01-15", "endDate": "2026-01-15"}',
            USER_ID,
            CHICAGO,
        )

        assert result["success"] is True

    def test_unknown_tool(self, registry):
        result = registry.execute("deleteEverything", {}, USER_ID, CHICAGO)

        assert_failure(result, "unknown_tool")
        assert "getCalendarEvents" in result["hint"]

    def test_malformed_json(self, registry):
        result = registry.execute("getCalendarEvents", "{not json", USER_ID, CHICAGO)
        assert_failure(result, "validation_error", HINT_ARGUMENTS)

    def test_missing_arguments(self, registry, provider):
        result = registry.execute("createCalendarEvent", {"title": "Dentist"}, USER_ID, CHICAGO)

        assert_failure(result, "validation_error", HINT_ARGUMENTS)
        assert "startTime" in result["error"]
        assert provider.calls["create_event"] == 0

    def test_none_arguments(self, registry):
        result = registry.execute("detectConflicts", None, USER_ID, CHICAGO)
        assert_failure(result, "validation_error")

    @pytest.mark.parametrize(
        "arguments",
        [
            {"date": "next Tuesday", "startTime": "14:00"},
            {"date": "2026-01-15", "startTime": "2pm"},
            {"date": "2026-01-15", "startTime": "14:00", "duration": 0},
        ],
    )
    def test_malformed_values(self, registry, arguments):
        result = registry.execute("detectConflicts", arguments, USER_ID, CHICAGO)
        assert_failure(result, "validation_error", HINT_ARGUMENTS)

    def test_reversed_range(self, registry):
        result = registry.execute(
            "getCalendarEvents",
            {"startDate": "2026-01-16", "endDate": "2026-01-15"},
            USER_ID,
            CHICAGO,
        )

        assert_failure(result, "validation_error")

    def test_unknown_timezone(self, registry):
        result = registry.execute("getCalendarEvents", RANGE_ARGS, USER_ID, "Not/AZone")

        assert_failure(result, "validation_error")
        assert "timezone" in result["hint"]


class TestExecuteFailures:
    """Tests for translating service errors into hints."""

    def test_not_connected(self, registry):
        result = registry.execute("getCalendarEvents", RANGE_ARGS, "stranger", CHICAGO)
        assert_failure(result, "calendar_not_connected", HINT_CONNECT)

    def test_access_denied(self, registry, provider):
        provider.fail_next("list_events", AccessDeniedError("Token has been revoked"))

        result = registry.execute("getCalendarEvents", RANGE_ARGS, USER_ID, CHICAGO)

        assert_failure(result, "calendar_access_denied", HINT_RECONNECT)

    def test_refresh_failed(self, registry, provider, token_store, clock):
        token_store.save_token(USER_ID, OAuthTokenRecord("old", "refresh-1", clock.now))
        provider.refresh_error = ProviderError("invalid_grant")

        result = registry.execute("getCalendarEvents", RANGE_ARGS, USER_ID, CHICAGO)

        assert_failure(result, "calendar_refresh_failed", HINT_RECONNECT)

    def test_transient(self, registry, provider):
        provider.fail_next(
            "list_events", *[ProviderTransientError("Rate limit exceeded") for _ in range(3)]
        )

        result = registry.execute("getCalendarEvents", RANGE_ARGS, USER_ID, CHICAGO)

        assert_failure(result, "calendar_unavailable", HINT_RETRY)

    def test_other_provider_error(self, registry, provider):
        provider.fail_next("create_event", ProviderError("Calendar API error: 400"))

        result = registry.execute(
            "createCalendarEvent",
            {"title": "Dentist", "date": "2026-01-15", "startTime": "14:00"},
            USER_ID,
            CHICAGO,
        )

        assert_failure(result, "calendar_error", HINT_GENERIC)

    def test_unexpected_exception(self, calendar_service, conflict_service):
        def explode(args, ctx):
            raise KeyError("items")

        specs = tuple(
            replace(spec, handler=explode) if spec.name is ToolName.GET_CALENDAR_EVENTS else spec
            for spec in DEFAULT_TOOL_SPECS
        )
        registry = ToolRegistry(calendar_service, conflict_service, specs=specs)

        result = registry.execute("getCalendarEvents", RANGE_ARGS, USER_ID, CHICAGO)

        assert_failure(result, "internal_error", HINT_GENERIC)
