"""Per-operation cost and timing aggregated from audit ``metrics`` events."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from instant_decision.logging.audit import utc_timestamp

METRICS_EVENT = "metrics"
DEFAULT_WINDOW_HOURS = 24.0


@dataclass(slots=True, frozen=True)
class OperationStats:
    """Averages for one operation over a time window."""

    operation: str
    operations: int
    total_cost: int
    avg_cost: float
    avg_duration_ms: float
    avg_cache_hit_ratio: float


def metrics_metadata(
    operation: str, *, cost: int, duration_ms: int, cache_hits: int, units: int
) -> dict[str, object]:
    """Audit metadata for one finished operation."""
    return {
        "operation": operation,
        "cost": cost,
        "duration_ms": duration_ms,
        "units": units,
        "cache_hit_ratio": round(cache_hits / max(1, units), 6),
    }


def window_start(hours: float, now: datetime | None = None) -> str:
    """Audit timestamp ``hours`` before ``now``, comparable as a string."""
    return utc_timestamp((now or datetime.now(tz=UTC)) - timedelta(hours=hours))


def aggregate_metrics(records: Iterable[dict[str, object]]) -> list[OperationStats]:
    """Group ``metrics`` audit records by operation, sorted by operation name.

    Records of other events and records with missing or non-numeric fields
    are skipped.
    """
    totals: dict[str, list[float]] = {}
    for record in records:
        if record.get("event") != METRICS_EVENT:
            continue
        metadata = record.get("metadata")
        if not isinstance(metadata, dict) or not isinstance(metadata.get("operation"), str):
            continue
        values = [metadata.get(key) for key in ("cost", "duration_ms", "cache_hit_ratio")]
        if not all(_is_number(value) for value in values):
            continue
        bucket = totals.setdefault(metadata["operation"], [0, 0.0, 0.0, 0.0])
        bucket[0] += 1
        for index, value in enumerate(values, start=1):
            bucket[index] += value

    stats = []
    for operation, (count, cost, duration, ratio) in sorted(totals.items()):
        stats.append(
            OperationStats(
                operation=operation,
                operations=int(count),
                total_cost=int(cost),
                avg_cost=round(cost / count, 3),
                avg_duration_ms=round(duration / count, 3),
                avg_cache_hit_ratio=round(ratio / count, 6),
            )
        )
    return stats


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
