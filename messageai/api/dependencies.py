"""
FastAPI dependency providers.

Holds the service container built at startup: token store, Calendar
Access Layer, conflict detection, tool registry and the compiled
orchestrator graph.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import HTTPException

from messageai.agents.llm import get_tool_calling_llm
from messageai.auth.google_oauth import GoogleOAuthFlow
from messageai.auth.token_storage import SQLAlchemyTokenStore, TokenStore
from messageai.config import Settings, get_settings
from messageai.database import SessionLocal, init_db
from messageai.integrations.google_calendar import GoogleCalendarProvider
from messageai.orchestrator import build_orchestrator_graph
from messageai.services.calendar_service import CalendarService
from messageai.services.conflicts import ConflictDetectionService
from messageai.services.free_slots import FreeSlotFinder
from messageai.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    token_store: TokenStore
    calendar_service: CalendarService
    conflict_service: ConflictDetectionService
    registry: ToolRegistry
    graph: Any
    analysis_llm: Optional[Any] = None


_container: Optional[ServiceContainer] = None


def build_services(
    settings: Settings,
    token_store: TokenStore,
    calendar_service: CalendarService,
    chat_model=None,
    analysis_llm=None,
) -> ServiceContainer:
    """
    Wire services around a Calendar Access Layer.

    Args:
        settings: Application settings
        token_store: Credential storage
        calendar_service: Calendar Access Layer
        chat_model: Model with tools bound (Anthropic by default)
        analysis_llm: Model for the message analyzers (Anthropic by default)
    """
    conflict_service = ConflictDetectionService(
        calendar_service,
        FreeSlotFinder(calendar_service, settings),
    )
    registry = ToolRegistry(calendar_service, conflict_service)
    model = chat_model or get_tool_calling_llm(registry.definitions())

    return ServiceContainer(
        settings=settings,
        token_store=token_store,
        calendar_service=calendar_service,
        conflict_service=conflict_service,
        registry=registry,
        graph=build_orchestrator_graph(model, registry),
        analysis_llm=analysis_llm,
    )


def build_default_services(settings: Optional[Settings] = None) -> ServiceContainer:
    """Production wiring: SQL token store and Google Calendar."""
    settings = settings or get_settings()
    settings.validate_production_config()

    init_db()
    token_store = SQLAlchemyTokenStore(SessionLocal)
    provider = GoogleCalendarProvider(
        calendar_id=settings.google_calendar_id,
        oauth_flow=GoogleOAuthFlow(
            client_id=settings.google_oauth_client_id,
            client_secret=settings.google_oauth_client_secret,
        ),
    )
    calendar_service = CalendarService(token_store, provider, settings=settings)
    return build_services(settings, token_store, calendar_service)


def init_services(container: Optional[ServiceContainer] = None) -> ServiceContainer:
    """Install the service container (built from settings when omitted)."""
    global _container
    _container = container or build_default_services()
    logger.info("Services initialized")
    return _container


def reset_services() -> None:
    global _container
    _container = None


def is_initialized() -> bool:
    return _container is not None


def get_container() -> ServiceContainer:
    """
    Dependency injection for the service container.

    Raises:
        HTTPException: If services are not initialized
    """
    if _container is None:
        logger.error("Services not initialized")
        raise HTTPException(
            status_code=503,
            detail="Service temporarily unavailable - services not initialized",
        )
    return _container
