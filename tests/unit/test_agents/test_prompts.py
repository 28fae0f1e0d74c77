"""
Unit tests for prompt templates and builders.
"""

from messageai.agents.prompts import (
    build_chat_system_prompt,
    build_decision_prompt,
    build_event_extraction_prompt,
    build_invitation_prompt,
    build_rsvp_prompt,
    describe_now,
    format_conversation,
)
from messageai.agents.prompts.analysis_prompts import describe_timeline
from support import CHICAGO, NEW_YORK, NOW


class TestChatPrompt:
    """Tests for the chat system prompt."""

    def test_describe_now_in_timezone(self):
        assert describe_now(CHICAGO, NOW) == ("Monday, January 12, 2026", "9:00 AM")
        assert describe_now(NEW_YORK, NOW) == ("Monday, January 12, 2026", "10:00 AM")

    def test_system_prompt_includes_current_date(self):
        prompt = build_chat_system_prompt(CHICAGO, NOW)

        assert "Monday, January 12, 2026 at 9:00 AM (America/Chicago)" in prompt
        assert "{" not in prompt

    def test_system_prompt_mentions_tool_hints(self):
        assert "hint" in build_chat_system_prompt(CHICAGO, NOW)


class TestAnalysisPrompts:
    """Tests for analyzer prompt builders."""

    def test_event_extraction_prompt(self):
        prompt = build_event_extraction_prompt(
            "Dentist tomorrow at 2pm", "Monday, January 12, 2026", CHICAGO
        )

        assert "Dentist tomorrow at 2pm" in prompt
        assert "CURRENT DATE: Monday, January 12, 2026" in prompt
        assert "USER TIMEZONE: America/Chicago" in prompt

    def test_invitation_prompt(self):
        prompt = build_invitation_prompt("Party Saturday!", "Monday, January 12, 2026", "9:00 AM")

        assert 'Message: "Party Saturday!"' in prompt
        assert "CURRENT TIME: 9:00 AM" in prompt

    def test_rsvp_prompt(self):
        prompt = build_rsvp_prompt("We'll be there!", "Party Saturday at 3")

        assert "We'll be there!" in prompt
        assert "Party Saturday at 3" in prompt

    def test_format_conversation_accepts_both_key_styles(self):
        text = format_conversation(
            [
                {"sender_name": "Alice", "text": "Pizza?"},
                {"senderName": "Bob", "text": "Yes"},
                {"text": "Anonymous"},
            ]
        )

        assert text == "Alice: Pizza?\nBob: Yes\nUnknown: Anonymous"

    def test_decision_prompt_without_timestamps(self):
        prompt = build_decision_prompt(
            [{"sender_name": "Alice", "text": "Pizza?"}], ["Alice", "Bob"], CHICAGO
        )

        assert "PARTICIPANTS: Alice, Bob" in prompt
        assert "TIMELINE INFO" not in prompt

    def test_decision_prompt_with_timeline(self):
        messages = [
            {"sender_name": "Alice", "text": "Pizza?", "timestamp": "2026-01-12T15:00:00Z"},
            {"sender_name": "Bob", "text": "Yes", "timestamp": "2026-01-12T15:25:00Z"},
        ]

        prompt = build_decision_prompt(messages, ["Alice", "Bob"], CHICAGO)

        assert "TIMELINE INFO" in prompt
        assert "- First message: 9:00 AM" in prompt
        assert "- Duration: 25 minutes" in prompt

    def test_timeline_needs_timezone(self):
        messages = [{"text": "hi", "timestamp": "2026-01-12T15:00:00Z"}]
        assert describe_timeline(messages, None) == ""

    def test_unparseable_timestamps_ignored(self):
        messages = [{"text": "hi", "timestamp": "yesterday-ish"}]
        assert describe_timeline(messages, CHICAGO) == ""
