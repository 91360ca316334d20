"""Escalating multi-tier classifier."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace

from instant_decision.cache import DecisionCache, context_fingerprint
from instant_decision.changes.models import DELETED
from instant_decision.classify.analyzer import Analyzer, build_request, group_similar_units
from instant_decision.classify.models import (
    METHOD_ANALYZER,
    METHOD_CACHE,
    METHOD_EXACT,
    METHOD_HEURISTIC,
    METHOD_PATTERN,
    METHOD_UNKNOWN,
    TIER_ANALYZER,
    TIER_CACHE,
    TIER_EXACT,
    TIER_HEURISTIC,
    TIER_PATTERN,
    UNKNOWN_DECISION,
    AnalyzerRequest,
    AnalyzerResponse,
    ClassificationResult,
    ExactEntry,
    HeuristicRule,
    PatternSignature,
    WorkUnit,
)
from instant_decision.classify.tables import (
    DEFAULT_EXACT_TABLE,
    DEFAULT_HEURISTICS,
    DEFAULT_SIGNATURES,
)
from instant_decision.config import CacheTtlConfig, ClassifierConfig

FAILURE_PENALTY = 0.1

ContentReader = Callable[[str], str]
_Submitted = tuple[AnalyzerRequest, list["_Pending"], Future[AnalyzerResponse], float]

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Pending:
    """Unit that tiers 0-3 left below the confidence threshold."""

    index: int
    unit: WorkUnit
    best: ClassificationResult


class TieredClassifier:
    """Resolves units through cheap tiers first, escalating only when needed.

    Tier order: exact table, pattern signatures, decision cache, heuristics,
    then the injected analyzer. Resolution stops at the first tier whose
    confidence meets ``config.confidence_threshold``.
    """

    def __init__(
        self,
        cache: DecisionCache,
        *,
        exact_table: Mapping[str, ExactEntry] = DEFAULT_EXACT_TABLE,
        signatures: Sequence[PatternSignature] = DEFAULT_SIGNATURES,
        heuristics: Sequence[HeuristicRule] = DEFAULT_HEURISTICS,
        analyzer: Analyzer | None = None,
        config: ClassifierConfig | None = None,
        ttls: CacheTtlConfig | None = None,
        read_content: ContentReader | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache = cache
        self._exact_table = exact_table
        self._signatures = tuple(signatures)
        self._heuristics = tuple(heuristics)
        self._analyzer = analyzer
        self._config = config or ClassifierConfig()
        self._ttls = ttls or CacheTtlConfig()
        self._read_content = read_content
        self._monotonic = monotonic
        self._cheap_executor: ThreadPoolExecutor | None = None
        self._analyzer_executor: ThreadPoolExecutor | None = None

    @property
    def threshold(self) -> float:
        return self._config.confidence_threshold

    def classify(
        self,
        unit: WorkUnit,
        *,
        deadline: float | None = None,
        write_back: bool = True,
    ) -> ClassificationResult:
        """Classify a single unit."""
        return self.classify_many([unit], deadline=deadline, write_back=write_back)[0]

    def classify_many(
        self,
        units: Sequence[WorkUnit],
        *,
        deadline: float | None = None,
        write_back: bool = True,
    ) -> list[ClassificationResult]:
        """Classify units, sending only unresolved ones to the analyzer in batches.

        ``deadline`` is a value of the monotonic clock after which the analyzer
        tier is no longer entered.
        """
        if len(units) > 1:
            cheap = list(self._cheap_pool().map(self._resolve_or_unknown, units))
        else:
            cheap = [self._resolve_or_unknown(unit) for unit in units]

        results: list[ClassificationResult | None] = [None] * len(units)
        pending: list[_Pending] = []
        for index, (unit, (best, resolved)) in enumerate(zip(units, cheap, strict=True)):
            if resolved:
                results[index] = best
                if write_back:
                    self.commit(best)
                continue
            pending.append(_Pending(index=index, unit=unit, best=best))

        for item, result in self._escalate(pending, deadline):
            results[item.index] = result
            if write_back and result.method == METHOD_ANALYZER:
                self.commit(result)
        return [result for result in results if result is not None]

    def commit(self, result: ClassificationResult) -> bool:
        """Write a result into the cache with its tier's TTL; return whether it was written."""
        ttl = self._ttl_for(result.method)
        if ttl is None or result.cache_key is None:
            return False
        self._cache.put(
            result.cache_key,
            result.decision,
            result.rationale,
            min(1.0, max(0.0, result.confidence)),
            ttl,
        )
        return True

    def close(self) -> None:
        """Release both worker pools without waiting for stuck analyzer calls."""
        for executor in (self._cheap_executor, self._analyzer_executor):
            if executor is not None:
                executor.shutdown(wait=False, cancel_futures=True)
        self._cheap_executor = None
        self._analyzer_executor = None

    def __enter__(self) -> TieredClassifier:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _ttl_for(self, method: str) -> float | None:
        if method == METHOD_PATTERN:
            return self._ttls.pattern_ttl_seconds
        if method == METHOD_HEURISTIC:
            return self._ttls.heuristic_ttl_seconds
        if method == METHOD_ANALYZER:
            return self._ttls.analyzer_ttl_seconds
        return None

    def _cheap_pool(self) -> ThreadPoolExecutor:
        if self._cheap_executor is None:
            self._cheap_executor = ThreadPoolExecutor(
                max_workers=self._config.max_workers,
                thread_name_prefix="instant-decision-tiers",
            )
        return self._cheap_executor

    def _analyzer_pool(self) -> ThreadPoolExecutor:
        # A timed-out call keeps its thread; only later analyzer batches can queue behind it.
        if self._analyzer_executor is None:
            self._analyzer_executor = ThreadPoolExecutor(
                max_workers=self._config.max_workers,
                thread_name_prefix="instant-decision-analyzer",
            )
        return self._analyzer_executor

    def _resolve_or_unknown(self, unit: WorkUnit) -> tuple[ClassificationResult, bool]:
        try:
            return self._resolve_cheap(unit)
        except OSError as error:
            logger.warning("Could not read %s, marking unknown: %s", unit.path, error)
            return _unknown_result(unit, f"io failure: {error}"), True

    def _resolve_cheap(self, unit: WorkUnit) -> tuple[ClassificationResult, bool]:
        """Run tiers 0-3; return the best result and whether it met the threshold."""
        trail: list[str] = []
        best: ClassificationResult | None = None
        cache_key = context_fingerprint(unit.context())

        entry = self._exact_table.get(unit.name)
        if entry is not None:
            result = ClassificationResult(
                path=unit.path,
                decision=entry.decision,
                confidence=entry.confidence,
                method=METHOD_EXACT,
                tier=TIER_EXACT,
                cost=0,
                rationale=_exact_rationale(unit.name, entry),
                cache_key=cache_key,
            )
            trail.append(f"tier0:{entry.decision}@{entry.confidence:.2f}")
            best = result
            if result.confidence >= self.threshold:
                return replace(result, trail=tuple(trail)), True
        else:
            trail.append("tier0:miss")

        content = self._content_for(unit)
        for signature in self._signatures:
            if not signature.matches(unit.path, content):
                continue
            result = ClassificationResult(
                path=unit.path,
                decision=signature.decision,
                confidence=signature.confidence,
                method=METHOD_PATTERN,
                tier=TIER_PATTERN,
                cost=0,
                rationale=f"pattern match: {signature.label} -> {signature.decision}",
                cache_key=cache_key,
            )
            trail.append(f"tier1:{signature.label}@{signature.confidence:.2f}")
            best = _better(best, result)
            if result.confidence >= self.threshold:
                return replace(result, trail=tuple(trail)), True
            break
        else:
            trail.append("tier1:miss")

        cached = self._cache.get(cache_key)
        if cached is not None:
            result = ClassificationResult(
                path=unit.path,
                decision=cached.decision,
                confidence=cached.confidence,
                method=METHOD_CACHE,
                tier=TIER_CACHE,
                cost=0,
                rationale=cached.rationale,
                cache_key=cache_key,
            )
            trail.append(f"tier2:hit#{cached.hit_count}@{cached.confidence:.2f}")
            best = _better(best, result)
            if result.confidence >= self.threshold:
                return replace(result, trail=tuple(trail)), True
        else:
            trail.append("tier2:miss")

        for rule in self._heuristics:
            if not rule.matches(unit):
                continue
            result = ClassificationResult(
                path=unit.path,
                decision=rule.decision,
                confidence=rule.confidence,
                method=METHOD_HEURISTIC,
                tier=TIER_HEURISTIC,
                cost=0,
                rationale=f"heuristic: {rule.rationale}",
                cache_key=cache_key,
            )
            trail.append(f"tier3:{rule.decision}@{rule.confidence:.2f}")
            best = _better(best, result)
            if result.confidence >= self.threshold:
                return replace(result, trail=tuple(trail)), True
            break
        else:
            trail.append("tier3:miss")

        if best is None:
            best = _unknown_result(unit, "no tier produced a decision", cache_key=cache_key)
        return replace(best, trail=tuple(trail)), False

    def _content_for(self, unit: WorkUnit) -> str | None:
        if unit.content is not None:
            return unit.content
        if unit.kind == DELETED or self._read_content is None:
            return None
        if not any(signature.needs_content for signature in self._signatures):
            return None
        return self._read_content(unit.path)

    def _escalate(
        self,
        pending: list[_Pending],
        deadline: float | None,
    ) -> list[tuple[_Pending, ClassificationResult]]:
        if not pending:
            return []
        if self._analyzer is None:
            return [(item, _note(item.best, "tier4:not_configured")) for item in pending]

        by_path: dict[str, list[_Pending]] = {}
        for item in pending:
            by_path.setdefault(item.unit.path, []).append(item)

        output: list[tuple[_Pending, ClassificationResult]] = []
        submitted: list[_Submitted] = []
        for batch in group_similar_units([item.unit for item in pending]):
            request = build_request(batch)
            batch_items = [item for unit in _unique(batch) for item in by_path[unit.path]]
            timeout = self._remaining(deadline)
            if timeout <= 0:
                output.extend(
                    (item, _note(item.best, "tier4:skipped deadline exhausted"))
                    for item in batch_items
                )
                continue
            future = self._analyzer_pool().submit(self._analyzer, request)
            submitted.append((request, batch_items, future, self._monotonic() + timeout))

        for request, batch_items, future, expires in submitted:
            try:
                response = self._await_response(future, expires)
            except TimeoutError:
                reason = "analyzer timed out"
                logger.warning("Analyzer timed out for batch of %d units", request.count)
                output.extend((item, _degrade(item.best, reason)) for item in batch_items)
                continue
            except Exception as error:
                reason = f"analyzer failed: {type(error).__name__}: {error}"
                logger.warning("Analyzer failed for batch of %d units: %s", request.count, error)
                output.extend((item, _degrade(item.best, reason)) for item in batch_items)
                continue
            output.extend((item, self._from_response(item, response)) for item in batch_items)
        return output

    def _from_response(self, item: _Pending, response: AnalyzerResponse) -> ClassificationResult:
        verdict = response.verdict_for(item.unit.path)
        if verdict is None:
            return _degrade(item.best, "analyzer returned no verdict")
        confidence = min(1.0, max(0.0, float(verdict.confidence)))
        return ClassificationResult(
            path=item.unit.path,
            decision=verdict.decision,
            confidence=confidence,
            method=METHOD_ANALYZER,
            tier=TIER_ANALYZER,
            cost=self._config.analyzer_cost_per_unit,
            rationale=verdict.rationale,
            cache_key=item.best.cache_key,
            trail=(*item.best.trail, f"tier4:{verdict.decision}@{confidence:.2f}"),
        )

    def _remaining(self, deadline: float | None) -> float:
        """Seconds the analyzer may block, bounded by the configured timeout."""
        timeout = self._config.analyzer_timeout_seconds
        if deadline is None:
            return timeout
        return min(timeout, deadline - self._monotonic())

    def _await_response(
        self, future: Future[AnalyzerResponse], expires: float
    ) -> AnalyzerResponse:
        try:
            response = future.result(timeout=max(0.0, expires - self._monotonic()))
        except TimeoutError:
            future.cancel()
            raise
        if not isinstance(response, AnalyzerResponse):
            raise TypeError(f"analyzer returned {type(response).__name__}, not AnalyzerResponse")
        return response


def _better(
    current: ClassificationResult | None, candidate: ClassificationResult
) -> ClassificationResult:
    """Keep the higher confidence result; earlier tiers win ties."""
    if current is None or candidate.confidence > current.confidence:
        return candidate
    return current


def _exact_rationale(name: str, entry: ExactEntry) -> str:
    if entry.rationale:
        return f"exact table match for {name}: {entry.rationale}"
    return f"exact table match for {name}"


def _note(result: ClassificationResult, entry: str) -> ClassificationResult:
    return replace(result, trail=(*result.trail, entry))


def _degrade(result: ClassificationResult, reason: str) -> ClassificationResult:
    """Fall back to a lower-tier result with reduced confidence."""
    return replace(
        result,
        confidence=max(0.0, round(result.confidence - FAILURE_PENALTY, 6)),
        rationale=f"{result.rationale}; {reason}",
        trail=(*result.trail, f"tier4:failed {reason}"),
    )


def _unknown_result(
    unit: WorkUnit, reason: str, cache_key: str | None = None
) -> ClassificationResult:
    return ClassificationResult(
        path=unit.path,
        decision=UNKNOWN_DECISION,
        confidence=0.0,
        method=METHOD_UNKNOWN,
        tier=None,
        cost=0,
        rationale=reason,
        cache_key=cache_key,
        trail=(reason,),
    )


def _unique(units: Sequence[WorkUnit]) -> list[WorkUnit]:
    seen: set[str] = set()
    output: list[WorkUnit] = []
    for unit in units:
        if unit.path in seen:
            continue
        seen.add(unit.path)
        output.append(unit)
    return output
