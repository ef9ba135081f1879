"""Short-lived memoization of full resolution passes."""

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, TypeVar

from next_actions_mcp.enums import EvaluationFilter

logger = logging.getLogger(__name__)

T = TypeVar("T")

CacheKey = tuple[str, bool, int, str]


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    invalidations: int = 0


@dataclass
class _Entry(Generic[T]):
    value: T
    stored_at: float


class EvaluationCache:
    """
    TTL cache for resolution passes.

    Keys are (tag scope, include-completed flag, time bucket, filter); the
    time bucket quantizes the evaluation time to the TTL so calls within one
    window share a result. Entries expire by elapsed monotonic time only and
    are dropped wholesale by `invalidate()` after a known write.
    """

    def __init__(self, ttl_seconds: float = 1.5, clock: Callable[[], float] = time.monotonic):
        if not math.isfinite(ttl_seconds) or ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be a positive number, got {ttl_seconds}")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[CacheKey, _Entry[Any]] = {}
        self.stats = CacheStats()

    def make_key(
        self,
        tag: str,
        include_completed: bool,
        now: datetime,
        evaluation_filter: EvaluationFilter = EvaluationFilter.ALL,
    ) -> CacheKey:
        bucket = math.floor(now.timestamp() / self.ttl_seconds)
        return (tag, include_completed, bucket, EvaluationFilter(evaluation_filter).value)

    def get(self, key: CacheKey) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            self.stats.misses += 1
            return None
        if self._clock() - entry.stored_at >= self.ttl_seconds:
            del self._entries[key]
            self.stats.misses += 1
            return None
        self.stats.hits += 1
        logger.debug("Evaluation cache hit for %s", key)
        return entry.value

    def set(self, key: CacheKey, value: T) -> T:
        self._prune()
        self._entries[key] = _Entry(value=value, stored_at=self._clock())
        return value

    def invalidate(self) -> None:
        self._entries.clear()
        self.stats.invalidations += 1
        logger.debug("Evaluation cache invalidated")

    def _prune(self) -> None:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now - e.stored_at >= self.ttl_seconds]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)
