"""Typed models for tiered classification."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from instant_decision.changes.models import ChangeRecord

TIER_EXACT = 0
TIER_PATTERN = 1
TIER_CACHE = 2
TIER_HEURISTIC = 3
TIER_ANALYZER = 4

METHOD_EXACT = "exact_table"
METHOD_PATTERN = "pattern_signature"
METHOD_CACHE = "cache"
METHOD_HEURISTIC = "heuristic"
METHOD_ANALYZER = "analyzer"
METHOD_UNKNOWN = "unknown"

UNKNOWN_DECISION = "unknown"

EXACT_CONFIDENCE = 0.95
PATTERN_CONFIDENCE = 0.85
HEURISTIC_CONFIDENCE = 0.7
CATCH_ALL_CONFIDENCE = 0.3


@dataclass(slots=True, frozen=True)
class WorkUnit:
    """One file-level unit of work to classify."""

    path: str
    kind: str | None = None
    magnitude: str | None = None
    content_hash: str | None = None
    content: str | None = None

    @classmethod
    def from_change(cls, change: ChangeRecord, content: str | None = None) -> WorkUnit:
        """Build a unit from a detected change."""
        return cls(
            path=change.path,
            kind=change.kind,
            magnitude=change.magnitude,
            content_hash=change.content_hash,
            content=content,
        )

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def extension(self) -> str:
        return PurePosixPath(self.path).suffix.lower()

    @property
    def directory(self) -> str:
        return PurePosixPath(self.path).parent.as_posix()

    def context(self) -> dict[str, object]:
        """Decision context whose fingerprint keys the cache."""
        return {
            "path": self.path,
            "kind": self.kind,
            "magnitude": self.magnitude,
            "content_hash": self.content_hash,
        }


@dataclass(slots=True, frozen=True)
class ClassificationResult:
    """Decision for one unit with its provenance and cost."""

    path: str
    decision: str
    confidence: float
    method: str
    tier: int | None
    cost: int
    rationale: str
    cache_key: str | None = None
    trail: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class ExactEntry:
    """Tier 0 table value for an exact file name."""

    decision: str
    rationale: str = ""
    confidence: float = EXACT_CONFIDENCE


@dataclass(slots=True, frozen=True)
class PatternSignature:
    """Tier 1 labeled signature; every pattern given must match."""

    label: str
    decision: str
    path_pattern: re.Pattern[str] | None = None
    content_pattern: re.Pattern[str] | None = None
    confidence: float = PATTERN_CONFIDENCE

    def __post_init__(self) -> None:
        if self.path_pattern is None and self.content_pattern is None:
            raise ValueError(f"Signature '{self.label}' needs a path or content pattern.")

    @property
    def needs_content(self) -> bool:
        return self.content_pattern is not None

    def matches(self, path: str, content: str | None) -> bool:
        """Return True when the unit satisfies every configured pattern."""
        if self.path_pattern is not None and not self.path_pattern.search(path):
            return False
        if self.content_pattern is not None:
            if content is None:
                return False
            if not self.content_pattern.search(content):
                return False
        return True


@dataclass(slots=True, frozen=True)
class HeuristicRule:
    """Tier 3 extension/directory rule; empty selectors match everything."""

    decision: str
    rationale: str
    extensions: tuple[str, ...] = ()
    directory_markers: tuple[str, ...] = ()
    confidence: float = HEURISTIC_CONFIDENCE

    def matches(self, unit: WorkUnit) -> bool:
        if self.extensions and unit.extension not in self.extensions:
            return False
        if self.directory_markers:
            parts = PurePosixPath(unit.directory).parts
            if not any(marker in parts for marker in self.directory_markers):
                return False
        return True


@dataclass(slots=True, frozen=True)
class AnalyzerVerdict:
    """Decision proposed by the external analyzer."""

    decision: str
    rationale: str
    confidence: float


@dataclass(slots=True, frozen=True)
class AnalyzerRequest:
    """Compressed summary of one batch of similar unresolved units."""

    units: tuple[WorkUnit, ...]
    pattern: str
    file_types: tuple[str, ...]
    directories: tuple[str, ...]
    count: int


@dataclass(slots=True, frozen=True)
class AnalyzerResponse:
    """Per-unit verdicts keyed by path, with an optional batch-wide verdict."""

    per_unit: Mapping[str, AnalyzerVerdict] = field(default_factory=dict)
    batch: AnalyzerVerdict | None = None

    def verdict_for(self, path: str) -> AnalyzerVerdict | None:
        return self.per_unit.get(path, self.batch)


class AnalyzerError(Exception):
    """Raised by analyzers that could not classify a batch."""
