"""Typed models for the decision cache."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class CacheEntry:
    """A resolved decision stored under its context fingerprint."""

    key: str
    decision: str
    rationale: str
    confidence: float
    created_at: float
    expires_at: float
    hit_count: int = 0

    def is_live(self, now: float) -> bool:
        """Return True while the entry has not reached its expiry time."""
        return self.expires_at > now


@dataclass(slots=True, frozen=True)
class CacheStats:
    """Aggregate counters over the stored entries."""

    total_entries: int
    live_entries: int
    expired_entries: int
    total_hits: int
    average_confidence: float
