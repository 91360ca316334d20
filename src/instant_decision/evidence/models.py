"""Typed models for claim validation."""

from __future__ import annotations

import re
from dataclasses import dataclass

ACCEPT = "accept"
NEEDS_EVIDENCE = "needs_evidence"
REJECT = "reject"


@dataclass(slots=True, frozen=True)
class EvidenceClaim:
    """Proposed decision statement awaiting validation."""

    statement: str
    supporting_signals: tuple[str, ...] = ()
    violated_constraint: str | None = None
    confidence: float = 0.5


@dataclass(slots=True, frozen=True)
class HardConstraint:
    """Rule that rejects any triggering claim lacking its required evidence."""

    name: str
    rule: str
    severity: str
    trigger: re.Pattern[str] | None
    required_evidence: tuple[str, ...] = ()

    def triggered_by(self, statement: str) -> bool:
        return self.trigger is not None and self.trigger.search(statement) is not None


@dataclass(slots=True, frozen=True)
class ConstraintViolation:
    constraint: str
    rule: str
    severity: str
    missing_evidence: tuple[str, ...]

    def to_public_dict(self) -> dict[str, object]:
        return {
            "constraint": self.constraint,
            "rule": self.rule,
            "severity": self.severity,
            "missing_evidence": list(self.missing_evidence),
        }


@dataclass(slots=True, frozen=True)
class GateVerdict:
    """Outcome of validating one claim."""

    status: str
    violations: tuple[ConstraintViolation, ...]
    adjusted_confidence: float
    missing_evidence: tuple[str, ...]
    trail: tuple[str, ...]
    supporting_facts: tuple[str, ...] = ()
    contradicting_facts: tuple[str, ...] = ()

    @property
    def accepted(self) -> bool:
        return self.status != REJECT

    def to_public_dict(self) -> dict[str, object]:
        return {
            "status": self.status,
            "violations": [violation.to_public_dict() for violation in self.violations],
            "adjusted_confidence": self.adjusted_confidence,
            "missing_evidence": list(self.missing_evidence),
            "trail": list(self.trail),
            "supporting_facts": list(self.supporting_facts),
            "contradicting_facts": list(self.contradicting_facts),
        }


@dataclass(slots=True, frozen=True)
class ConstraintViolationError(Exception):
    """Raised by ``EvidenceGate.enforce`` when a claim is rejected."""

    violations: tuple[ConstraintViolation, ...]

    def __str__(self) -> str:
        names = ", ".join(violation.constraint for violation in self.violations)
        return f"Claim violates hard constraints: {names}"
