"""Burst protection for AI provider calls.

Independent from plan quotas: quotas are business entitlements, this only
keeps a single user from hammering the providers. Counters live in a
``RateLimitStore``; the in-memory store is per process, so limits are not
shared between instances.
"""
import asyncio
import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterator, Optional, Protocol, Tuple

from pydantic import BaseModel

from app.errors import RateLimitExceeded

logger = logging.getLogger(__name__)

MINUTE = timedelta(minutes=1)
HOUR = timedelta(hours=1)
DAY = timedelta(days=1)


class RateLimitConfig(BaseModel):
    max_requests_per_minute: int = 10
    max_requests_per_hour: int = 100
    max_requests_per_day: int = 1000


class RateLimitEntry(BaseModel):
    count: int
    reset_time: datetime
    hourly_count: int
    hourly_reset_time: datetime
    daily_count: int
    daily_reset_time: datetime


class RateLimitResult(BaseModel):
    allowed: bool
    remaining: int
    reset_time: datetime
    retry_after: Optional[int] = None


class RateLimitStore(Protocol):
    def get(self, key: str) -> Optional[RateLimitEntry]: ...
    def set(self, key: str, entry: RateLimitEntry) -> None: ...
    def delete(self, key: str) -> None: ...
    def items(self) -> Iterator[Tuple[str, RateLimitEntry]]: ...


class MemoryRateLimitStore:
    """Process-local store backed by a dict."""

    def __init__(self):
        self._entries: Dict[str, RateLimitEntry] = {}

    def get(self, key: str) -> Optional[RateLimitEntry]:
        return self._entries.get(key)

    def set(self, key: str, entry: RateLimitEntry) -> None:
        self._entries[key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def items(self) -> Iterator[Tuple[str, RateLimitEntry]]:
        return iter(list(self._entries.items()))

    def __len__(self):
        return len(self._entries)


class AiRateLimiter:
    def __init__(
        self,
        store: Optional[RateLimitStore] = None,
        limits: Optional[RateLimitConfig] = None,
        sweep_interval: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.store = store if store is not None else MemoryRateLimitStore()
        self.limits = limits or RateLimitConfig()
        self.sweep_interval = sweep_interval
        self.clock = clock
        self._last_sweep = clock()

    def check(self, user_id: str, operation: str) -> RateLimitResult:
        """Count one request for (user, operation) and report whether it may proceed."""
        now = self.clock()
        if now - self._last_sweep >= self.sweep_interval:
            self.cleanup_expired_entries()

        key = f"{user_id}:{operation}"
        result = self._check_entry(key, now)
        if not result.allowed:
            logger.warning(
                "Rate limit exceeded for user %s on %s (retry after %ss)",
                user_id, operation, result.retry_after
            )
        return result

    def enforce(self, user_id: str, operation: str):
        """Like ``check`` but raises RateLimitExceeded when the request is refused."""
        result = self.check(user_id, operation)
        if not result.allowed:
            raise RateLimitExceeded(operation, result.retry_after or 1)

    def _check_entry(self, key: str, now: datetime) -> RateLimitResult:
        limits = self.limits
        entry = self.store.get(key)
        if entry is None:
            entry = RateLimitEntry(
                count=0,
                reset_time=now + MINUTE,
                hourly_count=0,
                hourly_reset_time=now + HOUR,
                daily_count=0,
                daily_reset_time=now + DAY,
            )

        # Each window rolls over on its own
        if now >= entry.reset_time:
            entry.count, entry.reset_time = 0, now + MINUTE
        if now >= entry.hourly_reset_time:
            entry.hourly_count, entry.hourly_reset_time = 0, now + HOUR
        if now >= entry.daily_reset_time:
            entry.daily_count, entry.daily_reset_time = 0, now + DAY

        for count, maximum, reset in (
            (entry.count, limits.max_requests_per_minute, entry.reset_time),
            (entry.hourly_count, limits.max_requests_per_hour, entry.hourly_reset_time),
            (entry.daily_count, limits.max_requests_per_day, entry.daily_reset_time),
        ):
            if count >= maximum:
                self.store.set(key, entry)
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_time=reset,
                    retry_after=max(1, math.ceil((reset - now).total_seconds())),
                )

        entry.count += 1
        entry.hourly_count += 1
        entry.daily_count += 1
        self.store.set(key, entry)

        remaining = min(
            limits.max_requests_per_minute - entry.count,
            limits.max_requests_per_hour - entry.hourly_count,
            limits.max_requests_per_day - entry.daily_count,
        )
        return RateLimitResult(allowed=True, remaining=remaining, reset_time=entry.reset_time)

    def reset(self, user_id: str, operation: str):
        self.store.delete(f"{user_id}:{operation}")
        logger.info("Rate limit reset for user %s on %s", user_id, operation)

    def cleanup_expired_entries(self) -> int:
        """Drop entries whose longest window has passed. Returns how many were removed."""
        now = self.clock()
        removed = 0
        for key, entry in self.store.items():
            if now >= entry.daily_reset_time:
                self.store.delete(key)
                removed += 1
        self._last_sweep = now
        if removed:
            logger.debug("Reaped %s expired rate limit entries", removed)
        return removed

    async def run_sweeper(self, interval_seconds: float):
        """Reap expired entries until cancelled. Started from the app lifespan."""
        while True:
            await asyncio.sleep(interval_seconds)
            self.cleanup_expired_entries()
