"""Evidence gate validating proposed decisions before they are committed."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from instant_decision.evidence.facts import FactStore
from instant_decision.evidence.models import (
    ACCEPT,
    NEEDS_EVIDENCE,
    REJECT,
    ConstraintViolation,
    ConstraintViolationError,
    EvidenceClaim,
    GateVerdict,
    HardConstraint,
)
from instant_decision.evidence.rules import (
    DEFAULT_CONSTRAINTS,
    DIRECT_EVIDENCE,
    EVIDENCE_REQUIREMENTS,
    HEDGING_TERMS,
    SPECIFICITY_PATTERNS,
)

DEFAULT_HEDGING_PENALTY = 0.2
DEFAULT_SPECIFICITY_BONUS = 0.1
DEFAULT_MIN_CONFIDENCE = 0.7
DEFAULT_SUPPORT_WEIGHT = 0.3
DEFAULT_CONTRADICTION_WEIGHT = 0.4


class EvidenceGate:
    """Applies hard constraints, then adjusts confidence.

    Adjustments, in order: recorded facts named in the statement (each adds
    ``support_weight`` or subtracts ``contradiction_weight``, scaled by the
    fact's weight), a penalty for hedging language and a bonus for specific
    statements. The result is clamped to [0, 1].
    """

    def __init__(
        self,
        constraints: Sequence[HardConstraint] = DEFAULT_CONSTRAINTS,
        *,
        hedging_terms: Sequence[str] = HEDGING_TERMS,
        hedging_penalty: float = DEFAULT_HEDGING_PENALTY,
        specificity_bonus: float = DEFAULT_SPECIFICITY_BONUS,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        facts: FactStore | None = None,
        support_weight: float = DEFAULT_SUPPORT_WEIGHT,
        contradiction_weight: float = DEFAULT_CONTRADICTION_WEIGHT,
    ) -> None:
        self._constraints = tuple(constraints)
        self._hedging = tuple(
            (term, re.compile(rf"(?i)\b{re.escape(term)}\b")) for term in hedging_terms
        )
        self._hedging_penalty = hedging_penalty
        self._specificity_bonus = specificity_bonus
        self._min_confidence = min_confidence
        self._facts = facts if facts is not None else FactStore()
        self._support_weight = support_weight
        self._contradiction_weight = contradiction_weight

    @property
    def facts(self) -> FactStore:
        return self._facts

    def validate(self, claim: EvidenceClaim, evidence: Iterable[str] = ()) -> GateVerdict:
        """Return the verdict for ``claim`` given the evidence collected so far."""
        available = set(claim.supporting_signals)
        available.update(evidence)
        trail: list[str] = []

        violations = self._violations(claim, available)
        if violations:
            trail.extend(f"violated:{violation.constraint}" for violation in violations)
            missing: list[str] = []
            for violation in violations:
                missing.extend(item for item in violation.missing_evidence if item not in missing)
            return GateVerdict(
                status=REJECT,
                violations=tuple(violations),
                adjusted_confidence=0.0,
                missing_evidence=tuple(missing),
                trail=tuple(trail),
            )

        confidence = claim.confidence
        supporting: list[str] = []
        contradicting: list[str] = []
        for fact in self._facts.matching(claim.statement):
            label = f"{fact.category}:{fact.key}"
            if fact.holds:
                delta = round(self._support_weight * fact.weight, 6)
                supporting.append(label)
                trail.append(f"fact:{label} +{delta:g}")
            else:
                delta = -round(self._contradiction_weight * fact.weight, 6)
                contradicting.append(label)
                trail.append(f"fact:{label} {delta:g}")
            confidence += delta
        hedges = self.hedging_terms_in(claim.statement)
        if hedges:
            confidence -= self._hedging_penalty
            trail.append(f"hedging:{','.join(hedges)} -{self._hedging_penalty:g}")
        if self.is_specific(claim.statement):
            confidence += self._specificity_bonus
            trail.append(f"specific +{self._specificity_bonus:g}")
        confidence = round(min(1.0, max(0.0, confidence)), 6)

        if confidence >= self._min_confidence:
            return GateVerdict(
                status=ACCEPT,
                violations=(),
                adjusted_confidence=confidence,
                missing_evidence=(),
                trail=tuple(trail),
                supporting_facts=tuple(supporting),
                contradicting_facts=tuple(contradicting),
            )
        missing_evidence = tuple(
            category
            for category in required_evidence_for(claim.statement)
            if category not in available
        ) or (DIRECT_EVIDENCE,)
        trail.append(f"below {self._min_confidence:g}")
        return GateVerdict(
            status=NEEDS_EVIDENCE,
            violations=(),
            adjusted_confidence=confidence,
            missing_evidence=missing_evidence,
            trail=tuple(trail),
            supporting_facts=tuple(supporting),
            contradicting_facts=tuple(contradicting),
        )

    def enforce(self, claim: EvidenceClaim, evidence: Iterable[str] = ()) -> GateVerdict:
        """Validate and raise ``ConstraintViolationError`` on reject."""
        verdict = self.validate(claim, evidence)
        if verdict.status == REJECT:
            raise ConstraintViolationError(violations=verdict.violations)
        return verdict

    def hedging_terms_in(self, statement: str) -> list[str]:
        return [term for term, pattern in self._hedging if pattern.search(statement)]

    @staticmethod
    def is_specific(statement: str) -> bool:
        return any(pattern.search(statement) for pattern in SPECIFICITY_PATTERNS)

    def _violations(self, claim: EvidenceClaim, available: set[str]) -> list[ConstraintViolation]:
        violations: list[ConstraintViolation] = []
        named = claim.violated_constraint
        for constraint in self._constraints:
            missing = tuple(item for item in constraint.required_evidence if item not in available)
            if constraint.name == named:
                violations.append(_violation(constraint, missing))
                continue
            if missing and constraint.triggered_by(claim.statement):
                violations.append(_violation(constraint, missing))
        if named is not None and not any(item.constraint == named for item in violations):
            violations.append(
                ConstraintViolation(
                    constraint=named,
                    rule="constraint reported by claim",
                    severity="critical",
                    missing_evidence=(),
                )
            )
        return violations


def required_evidence_for(statement: str) -> tuple[str, ...]:
    """Evidence categories implied by the wording of ``statement``."""
    return tuple(
        category for pattern, category in EVIDENCE_REQUIREMENTS if pattern.search(statement)
    )


def _violation(constraint: HardConstraint, missing: tuple[str, ...]) -> ConstraintViolation:
    return ConstraintViolation(
        constraint=constraint.name,
        rule=constraint.rule,
        severity=constraint.severity,
        missing_evidence=missing,
    )
