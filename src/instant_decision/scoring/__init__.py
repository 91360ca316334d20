"""Context scoring package."""

from .models import (
    ERROR_PATTERN,
    EXTENSION,
    KEYWORD,
    OVERRIDE,
    RECENCY,
    RULE_KINDS,
    TASK_TYPE,
    Category,
    CategoryScore,
    ScoreResult,
    ScoreSignals,
    ScoringRule,
)
from .personas import DEFAULT_PERSONAS, persona
from .scorer import DEFAULT_MAX_ACHIEVABLE_SCORE, ContextScorer
from .signals import classify_task_type, detect_error_patterns, extract_signals, path_extensions

__all__ = [
    "Category",
    "CategoryScore",
    "ContextScorer",
    "DEFAULT_MAX_ACHIEVABLE_SCORE",
    "DEFAULT_PERSONAS",
    "ERROR_PATTERN",
    "EXTENSION",
    "KEYWORD",
    "OVERRIDE",
    "RECENCY",
    "RULE_KINDS",
    "ScoreResult",
    "ScoreSignals",
    "ScoringRule",
    "TASK_TYPE",
    "classify_task_type",
    "detect_error_patterns",
    "extract_signals",
    "path_extensions",
    "persona",
]
