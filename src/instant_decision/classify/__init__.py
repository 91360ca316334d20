"""Tiered classification package."""

from .analyzer import Analyzer, build_request, detect_batch_pattern, group_similar_units
from .classifier import FAILURE_PENALTY, TieredClassifier
from .models import (
    CATCH_ALL_CONFIDENCE,
    EXACT_CONFIDENCE,
    HEURISTIC_CONFIDENCE,
    METHOD_ANALYZER,
    METHOD_CACHE,
    METHOD_EXACT,
    METHOD_HEURISTIC,
    METHOD_PATTERN,
    METHOD_UNKNOWN,
    PATTERN_CONFIDENCE,
    TIER_ANALYZER,
    TIER_CACHE,
    TIER_EXACT,
    TIER_HEURISTIC,
    TIER_PATTERN,
    UNKNOWN_DECISION,
    AnalyzerError,
    AnalyzerRequest,
    AnalyzerResponse,
    AnalyzerVerdict,
    ClassificationResult,
    ExactEntry,
    HeuristicRule,
    PatternSignature,
    WorkUnit,
)
from .tables import DEFAULT_EXACT_TABLE, DEFAULT_HEURISTICS, DEFAULT_SIGNATURES

__all__ = [
    "Analyzer",
    "AnalyzerError",
    "AnalyzerRequest",
    "AnalyzerResponse",
    "AnalyzerVerdict",
    "CATCH_ALL_CONFIDENCE",
    "ClassificationResult",
    "DEFAULT_EXACT_TABLE",
    "DEFAULT_HEURISTICS",
    "DEFAULT_SIGNATURES",
    "EXACT_CONFIDENCE",
    "ExactEntry",
    "FAILURE_PENALTY",
    "HEURISTIC_CONFIDENCE",
    "HeuristicRule",
    "METHOD_ANALYZER",
    "METHOD_CACHE",
    "METHOD_EXACT",
    "METHOD_HEURISTIC",
    "METHOD_PATTERN",
    "METHOD_UNKNOWN",
    "PATTERN_CONFIDENCE",
    "PatternSignature",
    "TIER_ANALYZER",
    "TIER_CACHE",
    "TIER_EXACT",
    "TIER_HEURISTIC",
    "TIER_PATTERN",
    "TieredClassifier",
    "UNKNOWN_DECISION",
    "WorkUnit",
    "build_request",
    "detect_batch_pattern",
    "group_similar_units",
]
