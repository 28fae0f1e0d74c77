"""
Time-boxed cache for calendar reads and per-user client handles.

Entries are keyed by (user_id, range_start, range_end) and live for a
fixed TTL measured on an injectable clock. Invalidation is per user and
drops every range and the client handle. Each invalidation bumps a
per-user generation; a fetch that started before the invalidation
cannot write its (stale) result back afterwards.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Sequence

from messageai.integrations.base import CalendarEvent

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CachedEventSet:
    """Events fetched for one range, and when."""

    events: tuple[CalendarEvent, ...]
    fetched_at: datetime


@dataclass(frozen=True)
class CalendarHandle:
    """Authenticated provider session for one user."""

    access_token: str
    expires_at: Optional[datetime]
    session: Any

    def is_usable(self, now: datetime) -> bool:
        return self.expires_at is None or now < self.expires_at


CacheKey = tuple[str, datetime, datetime]


class EventCache:
    """
    Thread-safe event range cache with explicit invalidation.

    Args:
        ttl_seconds: Maximum age of a cached range
        clock: Returns the current time; injectable for tests
    """

    def __init__(self, ttl_seconds: int = 300, clock: Optional[Clock] = None):
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or utc_now
        self._lock = threading.RLock()
        self._entries: dict[CacheKey, CachedEventSet] = {}
        self._handles: dict[str, CalendarHandle] = {}
        self._generations: dict[str, int] = {}

    @staticmethod
    def _key(user_id: str, start: datetime, end: datetime) -> CacheKey:
        return (user_id, start.astimezone(timezone.utc), end.astimezone(timezone.utc))

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def __len__(self) -> int:
        """Number of stored ranges, expired or not."""
        with self._lock:
            return len(self._entries)

    def now(self) -> datetime:
        return self._clock()

    def generation(self, user_id: str) -> int:
        """Current invalidation generation for a user."""
        with self._lock:
            return self._generations.get(user_id, 0)

    def get(self, user_id: str, start: datetime, end: datetime) -> Optional[list[CalendarEvent]]:
        """Return cached events for the exact range, or None on miss/expiry."""
        key = self._key(user_id, start, end)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.fetched_at >= self._ttl:
                del self._entries[key]
                return None
            return list(entry.events)

    def put(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        events: Sequence[CalendarEvent],
        generation: int,
    ) -> bool:
        """
        Store a fetched range, evicting expired ranges of every user.

        Args:
            generation: Value of generation(user_id) read before the fetch

        Returns:
            False when the user was invalidated since the fetch began
        """
        key = self._key(user_id, start, end)
        with self._lock:
            if generation != self._generations.get(user_id, 0):
                logger.debug(f"Discarding stale cache write for user {user_id}")
                return False
            now = self._clock()
            self._prune_expired(now)
            self._entries[key] = CachedEventSet(events=tuple(events), fetched_at=now)
            return True

    def _prune_expired(self, now: datetime) -> None:
        # Caller holds the lock
        expired = [
            key for key, entry in self._entries.items() if now - entry.fetched_at >= self._ttl
        ]
        for key in expired:
            del self._entries[key]

    def get_handle(self, user_id: str) -> Optional[CalendarHandle]:
        with self._lock:
            handle = self._handles.get(user_id)
            if handle is not None and not handle.is_usable(self._clock()):
                del self._handles[user_id]
                return None
            return handle

    def put_handle(self, user_id: str, handle: CalendarHandle, generation: int) -> bool:
        with self._lock:
            if generation != self._generations.get(user_id, 0):
                return False
            self._handles[user_id] = handle
            return True

    def drop_handle(self, user_id: str) -> None:
        with self._lock:
            self._handles.pop(user_id, None)

    def invalidate_user(self, user_id: str) -> int:
        """
        Drop every cached range and the client handle for a user.

        Returns:
            Number of cached ranges removed
        """
        with self._lock:
            self._generations[user_id] = self._generations.get(user_id, 0) + 1
            self._handles.pop(user_id, None)
            stale = [key for key in self._entries if key[0] == user_id]
            for key in stale:
                del self._entries[key]
        logger.debug(f"Invalidated {len(stale)} cached ranges for user {user_id}")
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            for user_id in {key[0] for key in self._entries} | set(self._handles):
                self._generations[user_id] = self._generations.get(user_id, 0) + 1
            self._entries.clear()
            self._handles.clear()
