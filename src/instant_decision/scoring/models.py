"""Typed models for multi-factor category scoring."""

from __future__ import annotations

from dataclasses import dataclass

KEYWORD = "keyword"
EXTENSION = "extension"
TASK_TYPE = "task_type"
ERROR_PATTERN = "error_pattern"
OVERRIDE = "override"
RECENCY = "recency"

RULE_KINDS = (KEYWORD, EXTENSION, TASK_TYPE, ERROR_PATTERN, OVERRIDE, RECENCY)


@dataclass(slots=True, frozen=True)
class ScoreSignals:
    """Observations about a unit of work that rules are evaluated against."""

    keywords: frozenset[str] = frozenset()
    extensions: frozenset[str] = frozenset()
    task_type: str | None = None
    error_patterns: frozenset[str] = frozenset()
    overrides: frozenset[str] = frozenset()
    recent: frozenset[str] = frozenset()

    def to_public_dict(self) -> dict[str, object]:
        return {
            "keywords": sorted(self.keywords),
            "extensions": sorted(self.extensions),
            "task_type": self.task_type,
            "error_patterns": sorted(self.error_patterns),
            "overrides": sorted(self.overrides),
            "recent": sorted(self.recent),
        }


@dataclass(slots=True, frozen=True)
class ScoringRule:
    """Weighted rule that fires when any of its values is observed."""

    name: str
    kind: str
    weight: float
    values: tuple[str, ...]

    def __post_init__(self) -> None:
        if self.kind not in RULE_KINDS:
            raise ValueError(f"Unknown rule kind '{self.kind}' for rule '{self.name}'.")

    def matches(self, signals: ScoreSignals) -> bool:
        if self.kind == TASK_TYPE:
            return signals.task_type is not None and signals.task_type in self.values
        observed = {
            KEYWORD: signals.keywords,
            EXTENSION: signals.extensions,
            ERROR_PATTERN: signals.error_patterns,
            OVERRIDE: signals.overrides,
            RECENCY: signals.recent,
        }[self.kind]
        return any(value in observed for value in self.values)


@dataclass(slots=True, frozen=True)
class Category:
    """Candidate label with its ordered rule set."""

    name: str
    rules: tuple[ScoringRule, ...]
    description: str = ""


@dataclass(slots=True, frozen=True)
class CategoryScore:
    category: str
    score: float
    triggered_rules: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class ScoreResult:
    """Ranking of every category plus the selected one."""

    selected: str
    confidence: float
    ranking: tuple[CategoryScore, ...]
    reasoning: str

    def to_public_dict(self) -> dict[str, object]:
        return {
            "selected": self.selected,
            "confidence": self.confidence,
            "ranking": [
                {
                    "category": item.category,
                    "score": item.score,
                    "triggered_rules": list(item.triggered_rules),
                }
                for item in self.ranking
            ],
            "reasoning": self.reasoning,
        }
