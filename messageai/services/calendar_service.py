"""
Calendar Access Layer.

Owns per-user credentials (with transparent refresh), the event cache and
every call to the calendar provider. Nothing above this layer ever sees an
OAuth token.

Credential lifecycle per user:
    VALID    -> used as-is
    EXPIRED  -> refreshed; success persists the new token, failure raises
                RefreshFailedError (user must re-authenticate)
    UNLINKED -> NotConnectedError
"""

import logging
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from messageai.auth.token_storage import OAuthTokenRecord, TokenStore
from messageai.config import Settings, get_settings
from messageai.exceptions import (
    AccessDeniedError,
    EventValidationError,
    NotConnectedError,
    RefreshFailedError,
    SchedulerError,
)
from messageai.integrations.base import CalendarEvent, CalendarProvider, CreateEventRequest
from messageai.services.event_cache import CalendarHandle, Clock, EventCache
from messageai.services.intervals import (
    BusyBlock,
    TimeInterval,
    get_zone,
    parse_date,
    parse_time,
    resolve_local_interval,
)

logger = logging.getLogger(__name__)

DEFAULT_EVENT_DURATION_MINUTES = 60


class CredentialState(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    UNLINKED = "unlinked"


def credential_state(record: Optional[OAuthTokenRecord], now: datetime) -> CredentialState:
    """Classify a stored credential at a point in time."""
    if record is None:
        return CredentialState.UNLINKED
    if record.is_expired(now):
        return CredentialState.EXPIRED
    return CredentialState.VALID


def _is_transient(exception: BaseException) -> bool:
    """Check if a provider failure should trigger a retry."""
    return isinstance(exception, SchedulerError) and exception.retryable


class CalendarService:
    """
    Per-user calendar operations over a CalendarProvider.

    Args:
        token_store: Credential storage collaborator
        provider: External calendar provider
        cache: Event cache (created from settings when omitted)
        settings: Application settings
        clock: Current-time source used when a cache is created here
        retry_wait: tenacity wait strategy between transient retries
    """

    def __init__(
        self,
        token_store: TokenStore,
        provider: CalendarProvider,
        cache: Optional[EventCache] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        self._settings = settings or get_settings()
        self._token_store = token_store
        self._provider = provider
        self._cache = cache or EventCache(
            ttl_seconds=self._settings.event_cache_ttl_seconds,
            clock=clock,
        )
        self._retry_attempts = self._settings.provider_retry_attempts
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)

    @property
    def cache(self) -> EventCache:
        return self._cache

    # =========================================================================
    # Credentials
    # =========================================================================

    def _resolve_credential(self, user_id: str) -> OAuthTokenRecord:
        record = self._token_store.get_token(user_id)
        state = credential_state(record, self._cache.now())

        if state is CredentialState.UNLINKED:
            raise NotConnectedError(
                "Calendar not connected. Please connect your Google Calendar first."
            )
        if state is CredentialState.EXPIRED:
            return self._refresh(user_id, record)
        return record

    def _refresh(self, user_id: str, record: OAuthTokenRecord) -> OAuthTokenRecord:
        if not record.refresh_token:
            logger.warning(f"Token expired and no refresh token for user {user_id}")
            raise RefreshFailedError(
                "Calendar access expired. Please re-authenticate your Google Calendar."
            )

        try:
            refreshed = self._provider.refresh_access_token(record.refresh_token)
        except SchedulerError as e:
            logger.error(f"Failed to refresh token for user {user_id}: {e}")
            raise RefreshFailedError(
                "Failed to refresh calendar access. Please re-authenticate your Google Calendar.",
                original_error=e,
            ) from e

        if not refreshed.refresh_token:
            refreshed = replace(refreshed, refresh_token=record.refresh_token)

        self._token_store.save_token(user_id, refreshed)
        logger.info(f"Refreshed calendar credentials for user {user_id}")
        return refreshed

    def _get_handle(self, user_id: str) -> CalendarHandle:
        handle = self._cache.get_handle(user_id)
        if handle is not None:
            return handle

        generation = self._cache.generation(user_id)
        record = self._resolve_credential(user_id)
        handle = CalendarHandle(
            access_token=record.access_token,
            expires_at=record.expires_at,
            session=self._provider.open_session(record.access_token),
        )
        self._cache.put_handle(user_id, handle, generation)
        return handle

    def _call(
        self,
        user_id: str,
        operation: Callable[..., Any],
        *args: Any,
        retry_transient: bool = True,
    ) -> Any:
        """
        Run a provider operation with the user's session.

        Transient failures are retried (unless disabled); auth failures drop
        the cached handle and propagate without retry.
        """
        handle = self._get_handle(user_id)
        retrying = Retrying(
            stop=stop_after_attempt(self._retry_attempts if retry_transient else 1),
            wait=self._retry_wait,
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        try:
            return retrying(operation, handle.session, *args)
        except AccessDeniedError:
            logger.warning(f"Calendar provider rejected credentials for user {user_id}")
            self._cache.drop_handle(user_id)
            raise

    # =========================================================================
    # Reads
    # =========================================================================

    def list_events(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        retry_transient: bool = True,
        force_refresh: bool = False,
    ) -> list[CalendarEvent]:
        """
        List events in [start, end), served from cache while fresh.

        ``force_refresh`` skips the cached copy; the fresh result replaces it.

        Raises:
            NotConnectedError, AccessDeniedError, RefreshFailedError,
            ProviderTransientError, ProviderError
        """
        TimeInterval(start, end)

        cached = None if force_refresh else self._cache.get(user_id, start, end)
        if cached is not None:
            logger.debug(f"Cache hit for user {user_id} [{start.isoformat()} - {end.isoformat()}]")
            return cached

        generation = self._cache.generation(user_id)
        events = list(
            self._call(
                user_id,
                self._provider.list_events,
                start,
                end,
                retry_transient=retry_transient,
            )
        )
        self._cache.put(user_id, start, end, events, generation)
        logger.debug(f"Fetched {len(events)} events for user {user_id}")
        return events

    def get_busy_blocks(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        retry_transient: bool = True,
    ) -> list[BusyBlock]:
        """Busy blocks in a range, sorted by start."""
        events = self.list_events(user_id, start, end, retry_transient=retry_transient)
        blocks = [block for block in map(BusyBlock.from_event, events) if block is not None]
        return sorted(blocks, key=lambda block: block.start)

    def get_event(self, user_id: str, event_id: str) -> CalendarEvent:
        return self._call(user_id, self._provider.get_event, event_id)

    # =========================================================================
    # Mutations
    # =========================================================================

    def create_event(
        self,
        user_id: str,
        details: Mapping[str, Any],
        timezone: str,
    ) -> CalendarEvent:
        """
        Create an event from wall-clock details in the user's timezone.

        Args:
            user_id: Calendar owner
            details: title, date (YYYY-MM-DD), start_time (HH:MM) required;
                duration_minutes (default 60), description, location optional
            timezone: IANA zone the date/time are expressed in

        Raises:
            EventValidationError: Before any provider call, naming the bad field
        """
        title = (details.get("title") or "").strip()
        if not title:
            raise EventValidationError("Missing required field: title", field="title")

        day = parse_date(details.get("date"), field="date")
        start_time = parse_time(details.get("start_time"), field="start_time")
        duration = details.get("duration_minutes")
        if duration is None:
            duration = DEFAULT_EVENT_DURATION_MINUTES

        interval = resolve_local_interval(day, start_time, duration, timezone)
        request = CreateEventRequest(
            title=title,
            start_time=interval.start,
            end_time=interval.end,
            timezone=timezone,
            description=details.get("description"),
            location=details.get("location"),
        )

        created = self._call(user_id, self._provider.create_event, request)
        self._cache.invalidate_user(user_id)
        logger.info(f"Created event {created.id} for user {user_id}")
        return created

    def update_event(
        self,
        user_id: str,
        event_id: str,
        updates: Mapping[str, Any],
        timezone: str,
    ) -> CalendarEvent:
        """
        Merge updates into an existing event.

        Any of date / start_time / duration_minutes recomputes the event
        times; parts not supplied are taken from the existing event as seen
        in ``timezone``.
        """
        changes: dict[str, Any] = {
            key: updates[key]
            for key in ("title", "description", "location")
            if key in updates
        }
        if "title" in changes and not (changes["title"] or "").strip():
            raise EventValidationError("Title cannot be empty", field="title")

        if any(key in updates for key in ("date", "start_time", "duration_minutes")):
            existing = self.get_event(user_id, event_id)
            local_start = existing.start_time.astimezone(get_zone(timezone))
            day = parse_date(updates.get("date") or local_start.date())
            start_time = parse_time(
                updates.get("start_time") or local_start.time().replace(second=0, microsecond=0)
            )
            duration = updates.get("duration_minutes") or existing.duration_minutes
            interval = resolve_local_interval(day, start_time, duration, timezone)
            changes.update(
                start_time=interval.start,
                end_time=interval.end,
                timezone=timezone,
            )

        if not changes:
            raise EventValidationError("No supported fields to update", field="updates")

        updated = self._call(user_id, self._provider.update_event, event_id, changes)
        self._cache.invalidate_user(user_id)
        logger.info(f"Updated event {event_id} for user {user_id}")
        return updated

    def delete_event(self, user_id: str, event_id: str) -> None:
        """
        Delete an event.

        Raises:
            EventNotFoundError: If the event does not exist
        """
        self._call(user_id, self._provider.delete_event, event_id)
        self._cache.invalidate_user(user_id)
        logger.info(f"Deleted event {event_id} for user {user_id}")

    def invalidate_user(self, user_id: str) -> None:
        """Forget every cached range and the client handle for a user."""
        self._cache.invalidate_user(user_id)
