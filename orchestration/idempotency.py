"""Idempotency cache - IdempotencyEntry, IdempotencyCache, InMemoryIdempotencyCache."""

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol

from core.infrastructure.logging import get_logger

from .models import WorkflowResult

Clock = Callable[[], datetime]

DEFAULT_TTL = timedelta(minutes=5)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def cache_key(workflow_name: str, scope_id: str, idempotency_key: str) -> str:
    """Namespace a caller key by workflow and scope."""
    return f"{workflow_name}:{scope_id}:{idempotency_key}"


@dataclass(frozen=True)
class IdempotencyEntry:
    """A recorded terminal outcome for one idempotency key."""

    key: str
    result: WorkflowResult
    recorded_at: datetime
    ttl: timedelta

    @property
    def expires_at(self) -> datetime:
        return self.recorded_at + self.ttl

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class IdempotencyCache(Protocol):
    """Protocol for idempotency cache implementations."""

    async def get(self, key: str) -> WorkflowResult | None:
        """Return the cached result for ``key`` or None if absent or expired."""
        ...

    async def put(self, key: str, result: WorkflowResult, ttl: timedelta | None = None) -> None:
        """Record the terminal result for ``key``."""
        ...


class InMemoryIdempotencyCache(IdempotencyCache):
    """Process-wide, lock-guarded idempotency cache.

    Expiry is checked on read; expired entries are evicted lazily.
    Safe to share between threads and between tasks of one event loop.
    """

    def __init__(self, ttl: timedelta = DEFAULT_TTL, clock: Clock = utc_now) -> None:
        """Initialize the cache.

        Args:
            ttl: Default time-to-live for entries
            clock: Source of the current time

        Raises:
            ValueError: If ``ttl`` is not positive
        """
        if ttl <= timedelta(0):
            raise ValueError(f"Idempotency TTL must be positive, got {ttl}")
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, IdempotencyEntry] = {}
        self._lock = threading.Lock()
        self._logger = get_logger("orchestration.idempotency")

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    async def get(self, key: str) -> WorkflowResult | None:
        entry = self.get_entry(key)
        return entry.result if entry else None

    def get_entry(self, key: str) -> IdempotencyEntry | None:
        """Return the live entry for ``key``, evicting it if expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[key]
                self._logger.debug(f"Evicted expired idempotency entry {key}")
                return None
            return entry

    async def put(self, key: str, result: WorkflowResult, ttl: timedelta | None = None) -> None:
        entry_ttl = self._ttl if ttl is None else ttl
        if entry_ttl <= timedelta(0):
            raise ValueError(f"Idempotency TTL must be positive, got {entry_ttl}")
        entry = IdempotencyEntry(key=key, result=result, recorded_at=self._clock(), ttl=entry_ttl)
        with self._lock:
            self._entries[key] = entry
        self._logger.debug(f"Recorded idempotency entry {key} (success={result.success})")

    def purge_expired(self) -> int:
        """Drop every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
