"""
Provider Performance Tracking

Tracks per-provider success counts, running mean latency and user ratings.
"""

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

from pydantic import BaseModel, Field

from quorum.observability.logging import get_logger
from quorum.observability.metrics import set_gauge

logger = get_logger(__name__)

DEFAULT_MAX_RATINGS = 100


class ProviderStats(BaseModel):
    """
    Snapshot of one provider's observed performance.

    Attributes:
        provider_name: Provider name
        total_queries: Recorded attempts
        success_count: Successful attempts
        avg_latency_ms: Running mean latency in milliseconds
        ratings: User ratings (1-5), oldest first

    Example:
        >>> stats = tracker.get("groq")
        >>> print(f"{stats.success_rate:.0%} over {stats.total_queries} calls")
    """

    provider_name: str = Field(..., description="Provider name", min_length=1)
    total_queries: int = Field(0, description="Recorded attempts", ge=0)
    success_count: int = Field(0, description="Successful attempts", ge=0)
    avg_latency_ms: float = Field(0.0, description="Mean latency ms", ge=0.0)
    ratings: List[int] = Field(default_factory=list, description="User ratings")

    @property
    def success_rate(self) -> float:
        if self.total_queries == 0:
            return 0.0
        return self.success_count / self.total_queries


@dataclass
class _Entry:
    total_queries: int = 0
    success_count: int = 0
    avg_latency_ms: float = 0.0
    ratings: Deque[int] = field(default_factory=deque)


class PerformanceTracker:
    """
    Process-wide record of provider performance.

    Written by every completed dispatch task and by explicit feedback;
    all updates happen under one lock so concurrent fan-outs never lose
    an update to ``total_queries`` or ``avg_latency_ms``.

    Ratings are kept in a ring buffer of ``max_ratings`` entries (oldest
    dropped first); pass ``max_ratings=None`` to keep every rating.

    Example:
        >>> tracker = PerformanceTracker()
        >>> tracker.record("groq", True, 420)
        >>> tracker.record("groq", False, 1800, rating=2)
        >>> tracker.get("groq").avg_latency_ms
        1110.0
    """

    def __init__(self, max_ratings: Optional[int] = DEFAULT_MAX_RATINGS):
        if max_ratings is not None and max_ratings < 1:
            raise ValueError("max_ratings must be positive or None")
        self._max_ratings = max_ratings
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    @property
    def max_ratings(self) -> Optional[int]:
        return self._max_ratings

    def record(
        self,
        provider_name: str,
        success: bool,
        latency_ms: float,
        rating: Optional[int] = None,
    ) -> ProviderStats:
        """
        Record one observed attempt.

        Args:
            provider_name: Provider name
            success: Whether the attempt produced a usable answer
            latency_ms: Observed latency in milliseconds
            rating: Optional user rating (1-5)

        Returns:
            Updated stats snapshot

        Raises:
            ValueError: If latency is negative or rating is outside 1-5
        """
        if latency_ms < 0:
            raise ValueError("latency_ms must be non-negative")
        if rating is not None and not (1 <= rating <= 5):
            raise ValueError(f"rating must be between 1 and 5, got {rating}")

        with self._lock:
            entry = self._entries.get(provider_name)
            if entry is None:
                entry = _Entry(ratings=deque(maxlen=self._max_ratings))
                self._entries[provider_name] = entry

            entry.total_queries += 1
            if success:
                entry.success_count += 1
            n = entry.total_queries
            entry.avg_latency_ms = (entry.avg_latency_ms * (n - 1) + latency_ms) / n
            if rating is not None:
                entry.ratings.append(rating)

            snapshot = self._snapshot(provider_name, entry)

        set_gauge(
            "provider_avg_latency_ms",
            snapshot.avg_latency_ms,
            labels={"provider": provider_name},
        )
        set_gauge(
            "provider_success_rate",
            snapshot.success_rate,
            labels={"provider": provider_name},
        )
        logger.debug(
            "provider_performance_recorded",
            provider=provider_name,
            success=success,
            latency_ms=latency_ms,
            rating=rating,
            total_queries=snapshot.total_queries,
        )
        return snapshot

    def get_stats(self) -> List[ProviderStats]:
        """Snapshot of every tracked provider, in first-seen order."""
        with self._lock:
            return [
                self._snapshot(name, entry) for name, entry in self._entries.items()
            ]

    def get(self, provider_name: str) -> Optional[ProviderStats]:
        with self._lock:
            entry = self._entries.get(provider_name)
            return self._snapshot(provider_name, entry) if entry else None

    def get_average_rating(self, provider_name: str) -> Optional[float]:
        """
        Mean user rating, or None when the provider has no ratings.
        """
        with self._lock:
            entry = self._entries.get(provider_name)
            if entry is None or not entry.ratings:
                return None
            return sum(entry.ratings) / len(entry.ratings)

    def clear(self) -> None:
        """Forget every provider."""
        with self._lock:
            self._entries.clear()

    @staticmethod
    def _snapshot(provider_name: str, entry: _Entry) -> ProviderStats:
        return ProviderStats(
            provider_name=provider_name,
            total_queries=entry.total_queries,
            success_count=entry.success_count,
            avg_latency_ms=entry.avg_latency_ms,
            ratings=list(entry.ratings),
        )


__all__ = ["PerformanceTracker", "ProviderStats", "DEFAULT_MAX_RATINGS"]
