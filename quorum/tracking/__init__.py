"""
Performance Tracking

Per-provider success, latency and user-rating statistics.
"""

from quorum.tracking.performance import (
    DEFAULT_MAX_RATINGS,
    PerformanceTracker,
    ProviderStats,
)

__all__ = ["PerformanceTracker", "ProviderStats", "DEFAULT_MAX_RATINGS"]
