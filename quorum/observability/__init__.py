"""Observability for the consensus engine.

Components:
    - logging: Structured logging with structlog and dispatch correlation IDs
    - metrics: Prometheus counters, histograms and gauges

Usage:
    from quorum.observability import get_logger, increment_counter

    logger = get_logger(__name__)
    logger.info("dispatch_started", mode="fan_out", providers=3)
"""

from quorum.observability.logging import (
    configure_logging,
    get_logger,
    set_correlation_id,
    clear_correlation_id,
    get_correlation_id,
)
from quorum.observability.metrics import (
    increment_counter,
    record_histogram,
    set_gauge,
    get_metrics_output,
    get_metrics_content_type,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "set_correlation_id",
    "clear_correlation_id",
    "get_correlation_id",
    "increment_counter",
    "record_histogram",
    "set_gauge",
    "get_metrics_output",
    "get_metrics_content_type",
]
