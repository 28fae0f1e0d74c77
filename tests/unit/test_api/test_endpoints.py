"""
Unit tests for API endpoints.

The service container is wired with the in-memory calendar, a scripted
chat model and a mocked analysis model.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage

from messageai import __version__
from messageai.agents.analysis import (
    DecisionParticipants,
    DecisionSummary,
    EventExtraction,
    ExtractedEvent,
    InvitationDetection,
    RSVPDetection,
)
from messageai.api.dependencies import build_services, init_services, reset_services
from messageai.api.main import app, status_code_for
from messageai.exceptions import (
    AccessDeniedError,
    EventValidationError,
    LanguageModelError,
    NotConnectedError,
    ProviderTransientError,
    RefreshFailedError,
    SchedulerError,
)
from support import CHICAGO, USER_ID, ScriptedChatModel, local, make_event, tool_call_message


@pytest.fixture
def chat_model():
    return ScriptedChatModel()


@pytest.fixture
def analysis_llm():
    return MagicMock()


@pytest.fixture
def client(settings, token_store, calendar_service, chat_model, analysis_llm):
    container = build_services(
        settings,
        token_store,
        calendar_service,
        chat_model=chat_model,
        analysis_llm=analysis_llm,
    )
    init_services(container)
    with TestClient(app) as test_client:
        yield test_client
    reset_services()


@pytest.fixture
def soccer(provider):
    provider.add(
        make_event("soccer", "Soccer practice", local(2026, 1, 15, 14, 30), local(2026, 1, 15, 16, 30))
    )


def analyzer_returns(analysis_llm, output):
    analysis_llm.with_structured_output.return_value.invoke.return_value = output


def conflict_request(**overrides):
    body = {
        "userId": USER_ID,
        "timezone": CHICAGO,
        "proposedEvent": {"date": "2026-01-15", "startTime": "14:00", "duration": 60},
    }
    body.update(overrides)
    return body


class TestStatusCodes:
    """Tests for mapping errors to HTTP status codes."""

    @pytest.mark.parametrize(
        "error,status",
        [
            (NotConnectedError("x"), 409),
            (AccessDeniedError("x"), 401),
            (RefreshFailedError("x"), 401),
            (EventValidationError("x"), 422),
            (ProviderTransientError("x"), 503),
            (LanguageModelError("x"), 502),
            (SchedulerError("x"), 502),
        ],
    )
    def test_status_code_for(self, error, status):
        assert status_code_for(error) == status


class TestHealth:
    """Tests for the health endpoint."""

    def test_healthy(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": __version__, "servicesReady": True}

    def test_unhealthy_without_services(self):
        reset_services()
        response = TestClient(app).get("/health")

        assert response.json()["status"] == "unhealthy"

    def test_endpoints_unavailable_without_services(self):
        reset_services()
        response = TestClient(app).post("/ai/detect-conflicts", json=conflict_request())

        assert response.status_code == 503


class TestChat:
    """Tests for POST /ai/chat."""

    def test_plain_reply(self, client, chat_model):
        chat_model.script(AIMessage(content="Hi! How can I help?"))

        response = client.post("/ai/chat", json={"userId": USER_ID, "message": "hello"})

        assert response.status_code == 200
        body = response.json()
        assert body["reply"] == "Hi! How can I help?"
        assert body["toolsCalled"] == []
        assert body["status"] == "completed"
        assert body["conversationId"]

    def test_tool_round(self, client, chat_model, soccer):
        chat_model.script(
            tool_call_message(("detectConflicts", {"date": "2026-01-15", "startTime": "14:00"})),
            AIMessage(content="That overlaps soccer practice by 30 minutes."),
        )

        response = client.post(
            "/ai/chat",
            json={
                "userId": USER_ID,
                "message": "Can I book the dentist Thursday at 2?",
                "timezone": CHICAGO,
                "conversationHistory": [{"role": "user", "content": "Hi"}],
            },
        )

        body = response.json()
        assert body["toolsCalled"] == ["detectConflicts"]
        assert body["iterations"] == 1

    def test_model_failure_still_answers(self, client, chat_model):
        chat_model.script(RuntimeError("overloaded"))

        response = client.post("/ai/chat", json={"userId": USER_ID, "message": "hello"})

        assert response.status_code == 200
        assert response.json()["status"] == "failed"

    @pytest.mark.parametrize(
        "body",
        [
            {"userId": USER_ID, "message": "   "},
            {"userId": "", "message": "hello"},
            {"message": "hello"},
            {"userId": USER_ID, "message": "x" * 4001},
        ],
    )
    def test_invalid_request(self, client, body):
        assert client.post("/ai/chat", json=body).status_code == 422

    def test_unknown_timezone(self, client):
        response = client.post(
            "/ai/chat", json={"userId": USER_ID, "message": "hello", "timezone": "Mars/Base"}
        )

        assert response.status_code == 422
        assert response.json()["error_type"] == "validation_error"


class TestDetectConflicts:
    """Tests for POST /ai/detect-conflicts."""

    def test_conflict(self, client, soccer):
        response = client.post("/ai/detect-conflicts", json=conflict_request())

        assert response.status_code == 200
        body = response.json()
        assert body["hasConflict"] is True
        assert body["conflicts"][0]["title"] == "Soccer practice"
        assert body["conflicts"][0]["overlapMinutes"] == 30
        assert len(body["alternativeTimes"]) == 3
        assert body["alternativesDegraded"] is False

    def test_no_conflict(self, client, soccer):
        response = client.post(
            "/ai/detect-conflicts",
            json=conflict_request(proposedEvent={"date": "2026-01-15", "startTime": "10:00"}),
        )

        body = response.json()
        assert body["hasConflict"] is False
        assert body["alternativeTimes"] == []

    def test_not_connected(self, client):
        response = client.post("/ai/detect-conflicts", json=conflict_request(userId="stranger"))

        assert response.status_code == 409
        assert response.json()["error_type"] == "calendar_not_connected"

    def test_access_denied(self, client, provider):
        provider.fail_next("list_events", AccessDeniedError("revoked"))

        response = client.post("/ai/detect-conflicts", json=conflict_request())

        assert response.status_code == 401

    def test_provider_unavailable(self, client, provider):
        provider.fail_next(
            "list_events", *[ProviderTransientError("Rate limit") for _ in range(3)]
        )

        response = client.post("/ai/detect-conflicts", json=conflict_request())

        assert response.status_code == 503
        assert response.json()["retryable"] is True

    def test_bad_start_time(self, client):
        response = client.post(
            "/ai/detect-conflicts",
            json=conflict_request(proposedEvent={"date": "2026-01-15", "startTime": "2pm"}),
        )

        assert response.status_code == 422


class TestAnalysisEndpoints:
    """Tests for the message analysis endpoints."""

    def test_extract_event_with_calendar_check(self, client, analysis_llm, soccer):
        analyzer_returns(
            analysis_llm,
            EventExtraction(
                has_event=True,
                event=ExtractedEvent(title="Dentist", date="2026-01-15", time="14:00", confidence=0.9),
            ),
        )

        response = client.post(
            "/ai/extract-event",
            json={"text": "Dentist Thursday at 2", "userId": USER_ID, "timezone": CHICAGO},
        )

        body = response.json()
        assert body["hasEvent"] is True
        assert body["event"]["title"] == "Dentist"
        assert body["calendarChecked"] is True
        assert body["needsConfirmation"] is True
        assert body["conflicts"]["hasConflict"] is True

    def test_extract_event_without_user(self, client, analysis_llm, provider):
        analyzer_returns(
            analysis_llm,
            EventExtraction(
                has_event=True,
                event=ExtractedEvent(title="Dentist", date="2026-01-15", time="14:00", confidence=0.9),
            ),
        )

        body = client.post("/ai/extract-event", json={"text": "Dentist Thursday at 2"}).json()

        assert body["calendarChecked"] is False
        assert body["conflicts"] is None
        assert provider.calls["list_events"] == 0

    def test_extract_event_model_failure(self, client, analysis_llm):
        analysis_llm.with_structured_output.return_value.invoke.side_effect = RuntimeError("down")

        response = client.post("/ai/extract-event", json={"text": "Dentist Thursday at 2"})

        assert response.status_code == 502
        assert response.json()["error_type"] == "llm_error"

    def test_detect_invitation(self, client, analysis_llm):
        analyzer_returns(
            analysis_llm,
            InvitationDetection(is_invitation=True, invitation_type="party", confidence=0.9),
        )

        body = client.post("/ai/detect-invitation", json={"text": "Party Saturday!"}).json()

        assert body["is_invitation"] is True
        assert body["invitation_type"] == "party"

    def test_detect_rsvp(self, client, analysis_llm):
        analyzer_returns(analysis_llm, RSVPDetection(is_rsvp=True, rsvp_status="no", confidence=0.8))

        body = client.post(
            "/ai/detect-rsvp",
            json={"text": "Sorry, can't make it", "invitationText": "Party Saturday"},
        ).json()

        assert body["rsvp_status"] == "no"

    def test_summarize_decision(self, client, analysis_llm):
        analyzer_returns(
            analysis_llm,
            DecisionSummary(
                has_decision=True,
                final_decision="Pizza Friday",
                participants=DecisionParticipants(agreed=["Alice", "Bob"], neutral=["Cara"]),
            ),
        )

        body = client.post(
            "/ai/summarize-decision",
            json={
                "messages": [
                    {"senderName": "Alice", "text": "Pizza Friday?"},
                    {"senderName": "Bob", "text": "Yes!"},
                ],
                "participantNames": ["Alice", "Bob", "Cara"],
            },
        ).json()

        assert body["final_decision"] == "Pizza Friday"
        assert body["consensus_level"] == "moderate"
