"""Structured audit logging and the metrics read from it."""

from .audit import AuditEvent, JsonlAuditLogger, sanitize_arguments, utc_timestamp
from .metrics import (
    DEFAULT_WINDOW_HOURS,
    METRICS_EVENT,
    OperationStats,
    aggregate_metrics,
    metrics_metadata,
    window_start,
)

__all__ = [
    "AuditEvent",
    "DEFAULT_WINDOW_HOURS",
    "JsonlAuditLogger",
    "METRICS_EVENT",
    "OperationStats",
    "aggregate_metrics",
    "metrics_metadata",
    "sanitize_arguments",
    "utc_timestamp",
    "window_start",
]
