"""Prometheus metrics for provider dispatch and consensus.

Metrics live on a private CollectorRegistry so several engines (or test
runs) in one process never collide with the global default registry.

Usage:
    from quorum.observability.metrics import increment_counter, record_histogram

    increment_counter("provider_requests_total", labels={"provider": "groq", "outcome": "success"})
    record_histogram("provider_latency_seconds", 0.41, labels={"provider": "groq"})
"""

from typing import Any, Dict, Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


_registry = CollectorRegistry()

# Dispatch Metrics
provider_requests_total = Counter(
    "quorum_provider_requests_total",
    "Provider calls by outcome",
    ["provider", "outcome"],
    registry=_registry,
)

provider_latency_seconds = Histogram(
    "quorum_provider_latency_seconds",
    "Wall-clock latency of provider calls in seconds",
    ["provider"],
    registry=_registry,
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, float("inf")),
)

dispatch_total = Counter(
    "quorum_dispatch_total",
    "Dispatches by mode and result",
    ["mode", "result"],
    registry=_registry,
)

# Consensus Metrics
consensus_total = Counter(
    "quorum_consensus_total",
    "Consensus results by agreement level",
    ["agreement"],
    registry=_registry,
)

consensus_confidence = Histogram(
    "quorum_consensus_confidence",
    "Confidence of produced consensus results",
    registry=_registry,
    buckets=(0.0, 0.25, 0.5, 0.6, 0.7, 0.8, 0.9, 0.95, 1.0),
)

# Performance Tracker Gauges
provider_avg_latency_ms = Gauge(
    "quorum_provider_avg_latency_ms",
    "Running mean latency per provider in milliseconds",
    ["provider"],
    registry=_registry,
)

provider_success_rate = Gauge(
    "quorum_provider_success_rate",
    "Fraction of successful calls per provider",
    ["provider"],
    registry=_registry,
)


def increment_counter(
    metric_name: str,
    value: float = 1.0,
    labels: Optional[Dict[str, str]] = None,
) -> None:
    """Increment a counter metric.

    Example:
        >>> increment_counter("dispatch_total", labels={"mode": "fan_out", "result": "ok"})
    """
    metric = _get_metric(metric_name)
    if isinstance(metric, Counter):
        if labels:
            metric.labels(**labels).inc(value)
        else:
            metric.inc(value)


def record_histogram(
    metric_name: str,
    value: float,
    labels: Optional[Dict[str, str]] = None,
) -> None:
    """Record a histogram observation."""
    metric = _get_metric(metric_name)
    if isinstance(metric, Histogram):
        if labels:
            metric.labels(**labels).observe(value)
        else:
            metric.observe(value)


def set_gauge(
    metric_name: str,
    value: float,
    labels: Optional[Dict[str, str]] = None,
) -> None:
    """Set a gauge metric value."""
    metric = _get_metric(metric_name)
    if isinstance(metric, Gauge):
        if labels:
            metric.labels(**labels).set(value)
        else:
            metric.set(value)


def get_metrics_output() -> bytes:
    """Prometheus exposition-format snapshot of all quorum metrics."""
    return generate_latest(_registry)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST


def _get_metric(metric_name: str) -> Any:
    """Look a metric up by name, with or without the ``quorum_`` prefix."""
    if metric_name.startswith("quorum_"):
        metric_name = metric_name[len("quorum_"):]
    return _METRICS.get(metric_name)


_METRICS: Dict[str, Any] = {
    "provider_requests_total": provider_requests_total,
    "provider_latency_seconds": provider_latency_seconds,
    "dispatch_total": dispatch_total,
    "consensus_total": consensus_total,
    "consensus_confidence": consensus_confidence,
    "provider_avg_latency_ms": provider_avg_latency_ms,
    "provider_success_rate": provider_success_rate,
}


__all__ = [
    "increment_counter",
    "record_histogram",
    "set_gauge",
    "get_metrics_output",
    "get_metrics_content_type",
    "provider_requests_total",
    "provider_latency_seconds",
    "dispatch_total",
    "consensus_total",
    "consensus_confidence",
    "provider_avg_latency_ms",
    "provider_success_rate",
]
