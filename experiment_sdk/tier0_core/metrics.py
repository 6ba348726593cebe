"""
experiment_sdk.tier0_core.metrics
──────────────────────────────────
Counters and histograms with standard naming and labels.

Minimal stack: prometheus-client
Configure via: EXPERIMENT_METRICS_ENABLED=true|false
"""
from __future__ import annotations

import os
from typing import Callable

from prometheus_client import Counter, Histogram

from experiment_sdk.tier0_core.config import get_config

# Standard labels applied to every metric
_DEFAULT_LABELS = ["service", "env"]
_SERVICE = os.getenv("APP_NAME", "experiment-sdk")
_ENV = os.getenv("APP_ENV", "development")
_DEFAULT_LABEL_VALUES = [_SERVICE, _ENV]


def _default_labels() -> dict[str, str]:
    # prometheus-client rejects mixed positional and keyword label values
    return dict(zip(_DEFAULT_LABELS, _DEFAULT_LABEL_VALUES))


def counter(name: str, description: str, labels: list[str] | None = None) -> Callable:
    """
    Create a counter with standard labels.

    Usage:
        decisions_total = counter("experiment_decisions_total", "Decisions", ["source"])
        decisions_total(source="bucketed").inc()
    """
    all_labels = _DEFAULT_LABELS + (labels or [])
    c = Counter(name, description, all_labels)

    def _counter(**extra_labels: str) -> Counter:
        return c.labels(**_default_labels(), **extra_labels)

    return _counter


def histogram(
    name: str,
    description: str,
    labels: list[str] | None = None,
    buckets: tuple = (0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
) -> Callable:
    """Create a histogram with standard labels."""
    all_labels = _DEFAULT_LABELS + (labels or [])
    h = Histogram(name, description, all_labels, buckets=buckets)

    def _histogram(**extra_labels: str) -> Histogram:
        return h.labels(**_default_labels(), **extra_labels)

    return _histogram


# ── Engine metrics ────────────────────────────────────────────────────────────

decisions_total = counter(
    "experiment_decisions_total",
    "Variation decisions by the step that produced them",
    ["source"],
)
profile_faults_total = counter(
    "experiment_user_profile_faults_total",
    "User profile service failures absorbed by the adapter",
    ["operation"],
)
decision_seconds = histogram(
    "experiment_decision_seconds",
    "Wall time of one get_variation call",
)


def enabled() -> bool:
    return get_config().metrics_enabled


def record_decision(source: str, elapsed: float) -> None:
    if not enabled():
        return
    decisions_total(source=source).inc()
    decision_seconds().observe(elapsed)


def record_profile_fault(operation: str) -> None:
    if not enabled():
        return
    profile_faults_total(operation=operation).inc()


__sdk_export__ = {
    "surface": "service",
    "exports": ["counter", "histogram", "record_decision", "record_profile_fault"],
    "description": "Prometheus counters for decisions and profile faults",
    "tier": "tier0_core",
    "module": "metrics",
}
