"""Additive weighted scoring across candidate categories."""

from __future__ import annotations

from collections.abc import Sequence

from instant_decision.scoring.models import Category, CategoryScore, ScoreResult, ScoreSignals
from instant_decision.scoring.personas import DEFAULT_PERSONAS

DEFAULT_MAX_ACHIEVABLE_SCORE = 10.0


class ContextScorer:
    """Ranks categories by the plain sum of their matching rule weights."""

    def __init__(
        self,
        categories: Sequence[Category] = DEFAULT_PERSONAS,
        max_achievable_score: float = DEFAULT_MAX_ACHIEVABLE_SCORE,
    ) -> None:
        if max_achievable_score <= 0:
            raise ValueError("max_achievable_score must be > 0.")
        self._categories = tuple(categories)
        self._max_achievable_score = float(max_achievable_score)

    @property
    def categories(self) -> tuple[Category, ...]:
        return self._categories

    def score(
        self,
        signals: ScoreSignals,
        categories: Sequence[Category] | None = None,
    ) -> ScoreResult:
        """Score every category and select the top one.

        Ties at the top go to the category declared first.
        """
        table = self._categories if categories is None else tuple(categories)
        if not table:
            raise ValueError("Category table must not be empty.")

        scored: list[tuple[int, CategoryScore]] = []
        for order, category in enumerate(table):
            triggered = [rule for rule in category.rules if rule.matches(signals)]
            scored.append(
                (
                    order,
                    CategoryScore(
                        category=category.name,
                        score=float(sum(rule.weight for rule in triggered)),
                        triggered_rules=tuple(rule.name for rule in triggered),
                    ),
                )
            )
        scored.sort(key=lambda item: (-item[1].score, item[0]))
        ranking = tuple(item for _, item in scored)
        top = ranking[0]
        confidence = round(min(top.score / self._max_achievable_score, 1.0), 6)
        return ScoreResult(
            selected=top.category,
            confidence=confidence,
            ranking=ranking,
            reasoning=self._reasoning(ranking, signals, confidence),
        )

    def _reasoning(
        self,
        ranking: tuple[CategoryScore, ...],
        signals: ScoreSignals,
        confidence: float,
    ) -> str:
        top = ranking[0]
        parts = [
            f"Selected {top.category} with score {top.score:g} "
            f"of {self._max_achievable_score:g} (confidence {confidence:.2f})",
            f"task type: {signals.task_type or 'none'}",
            f"triggered: {', '.join(top.triggered_rules) or 'none'}",
        ]
        if len(ranking) > 1:
            runner_up = ranking[1]
            parts.append(f"runner-up: {runner_up.category} ({runner_up.score:g})")
        return "; ".join(parts)
