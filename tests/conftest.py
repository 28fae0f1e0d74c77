"""
Pytest configuration and fixtures for MessageAI tests.

Wires the fakes from support.py into the real services: calendar access,
free-slot search, conflict detection and the tool registry.
"""

from datetime import timedelta

import pytest
from tenacity import wait_none

from messageai.auth.token_storage import InMemoryTokenStore, OAuthTokenRecord
from messageai.config import Settings
from messageai.services.calendar_service import CalendarService
from messageai.services.conflicts import ConflictDetectionService
from messageai.services.event_cache import EventCache
from messageai.services.free_slots import FreeSlotFinder
from messageai.tools.registry import ToolRegistry
from support import CHICAGO, USER_ID, FakeCalendarProvider, FixedClock


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        anthropic_api_key="test-key",
        default_timezone=CHICAGO,
        event_cache_ttl_seconds=300,
        provider_retry_attempts=3,
        business_hours_start=8,
        business_hours_end=20,
        slot_increment_minutes=30,
        max_tool_iterations=5,
    )


@pytest.fixture
def token_record(clock: FixedClock) -> OAuthTokenRecord:
    return OAuthTokenRecord(
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at=clock.now + timedelta(hours=1),
    )


@pytest.fixture
def token_store(token_record: OAuthTokenRecord) -> InMemoryTokenStore:
    return InMemoryTokenStore({USER_ID: token_record})


@pytest.fixture
def provider() -> FakeCalendarProvider:
    return FakeCalendarProvider()


@pytest.fixture
def cache(clock: FixedClock, settings: Settings) -> EventCache:
    return EventCache(ttl_seconds=settings.event_cache_ttl_seconds, clock=clock)


@pytest.fixture
def calendar_service(
    token_store: InMemoryTokenStore,
    provider: FakeCalendarProvider,
    cache: EventCache,
    settings: Settings,
) -> CalendarService:
    return CalendarService(
        token_store,
        provider,
        cache=cache,
        settings=settings,
        retry_wait=wait_none(),
    )


@pytest.fixture
def slot_finder(calendar_service: CalendarService, settings: Settings) -> FreeSlotFinder:
    return FreeSlotFinder(calendar_service, settings)


@pytest.fixture
def conflict_service(
    calendar_service: CalendarService,
    slot_finder: FreeSlotFinder,
) -> ConflictDetectionService:
    return ConflictDetectionService(calendar_service, slot_finder)


@pytest.fixture
def registry(
    calendar_service: CalendarService,
    conflict_service: ConflictDetectionService,
) -> ToolRegistry:
    return ToolRegistry(calendar_service, conflict_service)
