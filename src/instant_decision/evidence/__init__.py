"""Evidence gate package."""

from .facts import Fact, FactStore, verification_level
from .gate import (
    DEFAULT_CONTRADICTION_WEIGHT,
    DEFAULT_HEDGING_PENALTY,
    DEFAULT_MIN_CONFIDENCE,
    DEFAULT_SPECIFICITY_BONUS,
    DEFAULT_SUPPORT_WEIGHT,
    EvidenceGate,
    required_evidence_for,
)
from .models import (
    ACCEPT,
    NEEDS_EVIDENCE,
    REJECT,
    ConstraintViolation,
    ConstraintViolationError,
    EvidenceClaim,
    GateVerdict,
    HardConstraint,
)
from .rules import DEFAULT_CONSTRAINTS, DIRECT_EVIDENCE, HEDGING_TERMS

__all__ = [
    "ACCEPT",
    "ConstraintViolation",
    "ConstraintViolationError",
    "DEFAULT_CONSTRAINTS",
    "DEFAULT_CONTRADICTION_WEIGHT",
    "DEFAULT_HEDGING_PENALTY",
    "DEFAULT_MIN_CONFIDENCE",
    "DEFAULT_SPECIFICITY_BONUS",
    "DEFAULT_SUPPORT_WEIGHT",
    "DIRECT_EVIDENCE",
    "EvidenceClaim",
    "EvidenceGate",
    "Fact",
    "FactStore",
    "GateVerdict",
    "HEDGING_TERMS",
    "HardConstraint",
    "NEEDS_EVIDENCE",
    "REJECT",
    "required_evidence_for",
    "verification_level",
]
