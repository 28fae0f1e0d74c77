"""
FastAPI application for the MessageAI scheduling assistant.

Endpoints:
- Chat with the tool-calling assistant
- Direct conflict detection for a proposed event
- Message analysis (event extraction, invitations, RSVPs, decisions)
- Health
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from messageai import __version__
from messageai.agents.analysis import (
    DecisionSummary,
    InvitationDetection,
    RSVPDetection,
    detect_invitation,
    detect_rsvp,
    extract_event,
    summarize_decision,
)
from messageai.api.dependencies import (
    ServiceContainer,
    get_container,
    init_services,
    is_initialized,
)
from messageai.api.middleware import RequestLoggingMiddleware
from messageai.api.models import (
    ChatRequest,
    ChatResponse,
    DetectConflictsRequest,
    DetectConflictsResponse,
    DetectRSVPRequest,
    ExtractEventRequest,
    ExtractEventResponse,
    HealthResponse,
    SummarizeDecisionRequest,
    TextAnalysisRequest,
)
from messageai.config import get_settings
from messageai.exceptions import (
    AccessDeniedError,
    EventNotFoundError,
    EventValidationError,
    LanguageModelError,
    NotConnectedError,
    ProviderTransientError,
    SchedulerError,
)
from messageai.orchestrator import run_orchestration
from messageai.services.conflicts import ProposedEvent
from messageai.services.event_review import review_extraction
from messageai.services.intervals import get_zone
from messageai.tools.handlers import conflict_result_payload

logger = logging.getLogger(__name__)

# Most specific first: RefreshFailedError is an AccessDeniedError
ERROR_STATUS_CODES: tuple[tuple[type[SchedulerError], int], ...] = (
    (NotConnectedError, 409),
    (AccessDeniedError, 401),
    (EventValidationError, 422),
    (EventNotFoundError, 404),
    (ProviderTransientError, 503),
    (LanguageModelError, 502),
    (SchedulerError, 502),
)


def status_code_for(error: SchedulerError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_class):
            return status_code
    return 500


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting MessageAI API")
    if not is_initialized():
        try:
            init_services()
        except ValueError as e:
            # Health reports unhealthy and endpoints answer 503 until configured
            logger.error(f"Service initialization failed: {e}")
    logger.info("MessageAI API started")

    yield

    logger.info("Shutting down MessageAI API")


app = FastAPI(
    title="MessageAI Scheduling API",
    description="""
# MessageAI Scheduling API

Scheduling assistant for group chats, backed by the user's Google Calendar.

- **POST /ai/chat** - Chat with the assistant; it can read the calendar,
  detect conflicts and create events
- **POST /ai/detect-conflicts** - Check one proposed event and get alternatives
- **POST /ai/extract-event**, **/ai/detect-invitation**, **/ai/detect-rsvp**,
  **/ai/summarize-decision** - Message analysis

## Error Handling

**Conflicts are not errors** - a conflicting proposal returns 200.

- **401** - Calendar access denied; reconnect Google Calendar
- **404** - Event not found
- **409** - Calendar not connected
- **422** - Validation error
- **502** - Calendar or language model failure
- **503** - Calendar temporarily unavailable, or services not initialized
    """,
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(SchedulerError)
async def scheduler_exception_handler(request: Request, exc: SchedulerError):
    """Map the error taxonomy to HTTP status codes."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.warning(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={
            "error_type": exc.code,
            "message": exc.message,
            "retryable": exc.retryable,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_type": "http_error",
            "message": exc.detail,
            "retryable": exc.status_code >= 500,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error_type": "internal_error",
            "message": "An unexpected error occurred",
            "retryable": True,
        },
    )


def _resolve_timezone(timezone: Optional[str], container: ServiceContainer) -> str:
    tz_name = timezone or container.settings.default_timezone
    get_zone(tz_name)
    return tz_name


# =============================================================================
# System
# =============================================================================


@app.get("/health", response_model=HealthResponse, tags=["System"])
def health_check():
    ready = is_initialized()
    return HealthResponse(
        status="healthy" if ready else "unhealthy",
        version=__version__,
        services_ready=ready,
    )


# =============================================================================
# Chat
# =============================================================================


@app.post("/ai/chat", response_model=ChatResponse, tags=["Chat"])
def chat(request: ChatRequest, container: ServiceContainer = Depends(get_container)):
    """
    Run one chat turn.

    Tool failures and model failures are reported in the reply and
    ``status``; the endpoint answers 200 for any well-formed request.
    """
    tz_name = _resolve_timezone(request.timezone, container)
    result = run_orchestration(
        container.graph,
        user_id=request.user_id,
        message=request.message,
        conversation_history=request.conversation_history,
        timezone=tz_name,
        max_iterations=container.settings.max_tool_iterations,
    )
    return ChatResponse(
        reply=result.reply,
        tools_called=result.tools_called,
        status=result.status,
        iterations=result.iterations,
        conversation_id=result.conversation_id,
    )


# =============================================================================
# Conflict detection
# =============================================================================


@app.post("/ai/detect-conflicts", response_model=DetectConflictsResponse, tags=["Calendar"])
def detect_conflicts(
    request: DetectConflictsRequest,
    container: ServiceContainer = Depends(get_container),
):
    """Check a proposed event against the user's calendar."""
    tz_name = _resolve_timezone(request.timezone, container)
    proposed = ProposedEvent(
        date=request.proposed_event.date,
        start_time=request.proposed_event.start_time,
        duration_minutes=request.proposed_event.duration,
        title=request.proposed_event.title,
    )
    result = container.conflict_service.detect_conflicts(request.user_id, proposed, tz_name)
    return DetectConflictsResponse.model_validate(conflict_result_payload(result, tz_name))


# =============================================================================
# Message analysis
# =============================================================================


@app.post("/ai/extract-event", response_model=ExtractEventResponse, tags=["Analysis"])
def extract_event_endpoint(
    request: ExtractEventRequest,
    container: ServiceContainer = Depends(get_container),
):
    """Extract an event from a message; with userId, also check the calendar."""
    tz_name = _resolve_timezone(request.timezone, container)
    extraction = extract_event(request.text, tz_name, llm=container.analysis_llm)
    review = review_extraction(
        extraction,
        user_id=request.user_id or "",
        timezone=tz_name,
        conflict_service=container.conflict_service if request.user_id else None,
    )

    conflicts = None
    if review.conflicts is not None:
        conflicts = DetectConflictsResponse.model_validate(
            conflict_result_payload(review.conflicts, tz_name)
        )

    return ExtractEventResponse(
        has_event=extraction.has_event,
        event=extraction.event.model_dump() if extraction.event else None,
        ambiguous_fields=list(review.ambiguous_fields),
        needs_confirmation=review.needs_confirmation,
        calendar_checked=review.calendar_checked,
        conflicts=conflicts,
    )


@app.post("/ai/detect-invitation", response_model=InvitationDetection, tags=["Analysis"])
def detect_invitation_endpoint(
    request: TextAnalysisRequest,
    container: ServiceContainer = Depends(get_container),
):
    tz_name = _resolve_timezone(request.timezone, container)
    return detect_invitation(request.text, tz_name, llm=container.analysis_llm)


@app.post("/ai/detect-rsvp", response_model=RSVPDetection, tags=["Analysis"])
def detect_rsvp_endpoint(
    request: DetectRSVPRequest,
    container: ServiceContainer = Depends(get_container),
):
    return detect_rsvp(request.text, request.invitation_text, llm=container.analysis_llm)


@app.post("/ai/summarize-decision", response_model=DecisionSummary, tags=["Analysis"])
def summarize_decision_endpoint(
    request: SummarizeDecisionRequest,
    container: ServiceContainer = Depends(get_container),
):
    tz_name = _resolve_timezone(request.timezone, container)
    return summarize_decision(
        [message.model_dump() for message in request.messages],
        request.participant_names,
        timezone=tz_name,
        llm=container.analysis_llm,
    )


def run_server(host: Optional[str] = None, port: Optional[int] = None, reload: Optional[bool] = None):
    """Run the API server with Uvicorn."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "messageai.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=settings.api_reload if reload is None else reload,
    )


if __name__ == "__main__":
    run_server()
