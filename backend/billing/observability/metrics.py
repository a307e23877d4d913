"""Prometheus metrics helpers for numbering, usage and audit domains."""
from __future__ import annotations

from prometheus_client import Counter, Histogram

SEQUENCE_ALLOCATION_COUNT = Counter(
    "numbering_allocation_total",
    "Number of document numbers issued",
    labelnames=("document_type",),
)

SEQUENCE_ALLOCATION_LATENCY = Histogram(
    "numbering_allocation_duration_seconds",
    "Latency of atomic document number allocation",
    labelnames=("document_type",),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1),
)

SEQUENCE_CONFLICT_COUNT = Counter(
    "numbering_conflict_total",
    "Store-level conflicts hit while allocating a document number",
    labelnames=("document_type", "outcome"),
)

USAGE_DECISION_COUNT = Counter(
    "billing_usage_decision_total",
    "Quota reservations by metric and outcome",
    labelnames=("metric", "outcome"),
)

USAGE_PERIOD_RESET_COUNT = Counter(
    "billing_usage_period_reset_total",
    "Usage counter rows rolled over into a new monthly period",
    labelnames=("source",),
)

AUDIT_WRITE_FAILURE_COUNT = Counter(
    "audit_write_failure_total",
    "Audit entries that could not be persisted",
    labelnames=("action",),
)
