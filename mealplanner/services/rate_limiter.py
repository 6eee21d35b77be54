# mealplanner/services/rate_limiter.py
"""
Fixed-window request limiter for the generation entry points.

Counters live behind a small store interface so the concurrency and
eviction policy can change (e.g. a shared cache) without touching callers.
The limiter is advisory: it rejects, it never queues or delays.
"""
from __future__ import annotations

import collections
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, ContextManager, Optional, Protocol

from mealplanner.config.settings import Settings, settings as default_settings
from mealplanner.services.errors import RateLimitError

logger = logging.getLogger(__name__)


@dataclass
class RateLimitRecord:
    key: str
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitStatus:
    allowed: bool
    remaining: int
    limit: int
    reset_at: float


class RateLimitStore(Protocol):
    def lock(self) -> ContextManager:
        ...

    def get(self, key: str) -> Optional[RateLimitRecord]:
        ...

    def increment(self, key: str) -> RateLimitRecord:
        ...

    def reset(self, key: str, reset_at: float) -> RateLimitRecord:
        ...


class InMemoryRateLimitStore:
    """
    Process-local store with bounded size.

    When the map grows past ``max_keys`` expired windows are swept first,
    then the records reset longest ago are dropped until under the cap.
    """

    def __init__(self, max_keys: int = 10000, clock: Callable[[], float] = time.monotonic) -> None:
        self._max_keys = int(max_keys)
        self._clock = clock
        self._records: "collections.OrderedDict[str, RateLimitRecord]" = collections.OrderedDict()
        self._lock = threading.RLock()

    def lock(self) -> ContextManager:
        return self._lock

    def get(self, key: str) -> Optional[RateLimitRecord]:
        with self._lock:
            return self._records.get(key)

    def increment(self, key: str) -> RateLimitRecord:
        with self._lock:
            record = self._records[key]
            record.count += 1
            return record

    def reset(self, key: str, reset_at: float) -> RateLimitRecord:
        with self._lock:
            record = RateLimitRecord(key=key, count=1, reset_at=reset_at)
            self._records[key] = record
            self._records.move_to_end(key)
            if len(self._records) > self._max_keys:
                self._evict()
            return record

    def _evict(self) -> None:
        now = self._clock()
        expired = [k for k, r in self._records.items() if now > r.reset_at]
        for k in expired:
            del self._records[k]
        while len(self._records) > self._max_keys:
            self._records.popitem(last=False)
        logger.debug("Rate limit store evicted; expired=%d size=%d", len(expired), len(self._records))

    def count(self) -> int:
        return len(self._records)

    @property
    def capacity(self) -> int:
        return self._max_keys


class RateLimiter:

    def __init__(
        self,
        limit: Optional[int] = None,
        window_seconds: Optional[float] = None,
        store: Optional[RateLimitStore] = None,
        clock: Callable[[], float] = time.monotonic,
        config: Optional[Settings] = None,
    ) -> None:
        self.settings = config or default_settings
        self.limit = int(limit if limit is not None else self.settings.rate_limit_rpm)
        self.window_seconds = float(
            window_seconds if window_seconds is not None else self.settings.rate_limit_window_seconds
        )
        self.clock = clock
        self.store = store or InMemoryRateLimitStore(self.settings.rate_limit_max_keys, clock=clock)

    def check(self, key: str) -> RateLimitStatus:
        """Count one request for ``key`` and report whether it is allowed."""
        now = self.clock()
        with self.store.lock():
            current = self.store.get(key)
            if current is None or now > current.reset_at:
                record = self.store.reset(key, now + self.window_seconds)
                return RateLimitStatus(True, self.limit - 1, self.limit, record.reset_at)
            if current.count >= self.limit:
                return RateLimitStatus(False, 0, self.limit, current.reset_at)
            record = self.store.increment(key)
            return RateLimitStatus(True, self.limit - record.count, self.limit, record.reset_at)

    def enforce(self, key: str, operation: str = "rate_limit") -> RateLimitStatus:
        status = self.check(key)
        if not status.allowed:
            logger.warning("Rate limit exceeded key=%s operation=%s", key, operation)
            raise RateLimitError(
                "Rate limit exceeded",
                operation=operation,
                remaining=0,
                reset_at=status.reset_at,
                context={"key": key, "limit": self.limit},
            )
        return status


def rate_limit_key(
    user_id: Optional[str],
    forwarded_for: Optional[str] = None,
    client_host: Optional[str] = None,
    scope: str = "meal-generation",
) -> str:
    """Caller identity first, then the first forwarded address, then the socket peer."""
    if user_id and user_id.strip():
        return f"{scope}:user:{user_id.strip()}"
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return f"{scope}:ip:{first}"
    return f"{scope}:ip:{client_host or '127.0.0.1'}"
