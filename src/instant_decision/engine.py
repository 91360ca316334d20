"""Decision pipeline: detect changes, classify, gate, then commit."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass

from instant_decision.cache import CacheStats, DecisionCache
from instant_decision.changes import (
    ChangeRecord,
    FileFingerprint,
    SnapshotStore,
    discover_paths,
    fingerprint_file,
    scan,
)
from instant_decision.classify import (
    METHOD_ANALYZER,
    METHOD_CACHE,
    Analyzer,
    ClassificationResult,
    TieredClassifier,
    WorkUnit,
)
from instant_decision.config import EngineConfig
from instant_decision.evidence import (
    ACCEPT,
    REJECT,
    EvidenceClaim,
    EvidenceGate,
    Fact,
    FactStore,
    GateVerdict,
)
from instant_decision.logging import (
    DEFAULT_WINDOW_HOURS,
    METRICS_EVENT,
    JsonlAuditLogger,
    OperationStats,
    aggregate_metrics,
    metrics_metadata,
    window_start,
)
from instant_decision.scoring import ContextScorer, ScoreResult, extract_signals
from instant_decision.security import confine_to_root

CACHE_FILE = ("cache", "decisions.json")
AUDIT_FILE = "audit.jsonl"
FACTS_FILE = "facts.json"


@dataclass(slots=True, frozen=True)
class UnitOutcome:
    """Classification and gate verdict for one detected change."""

    change: ChangeRecord
    result: ClassificationResult
    verdict: GateVerdict
    committed: bool

    def to_public_dict(self) -> dict[str, object]:
        return {
            "path": self.change.path,
            "kind": self.change.kind,
            "magnitude": self.change.magnitude,
            "decision": self.result.decision,
            "confidence": self.result.confidence,
            "method": self.result.method,
            "tier": self.result.tier,
            "cost": self.result.cost,
            "rationale": self.result.rationale,
            "trail": list(self.result.trail),
            "gate": self.verdict.to_public_dict(),
            "committed": self.committed,
        }


@dataclass(slots=True, frozen=True)
class RunReport:
    """Summary of one pipeline pass."""

    timestamp: str
    scanned: int
    unreadable: tuple[str, ...]
    outcomes: tuple[UnitOutcome, ...]
    total_cost: int
    cache_hits: int
    analyzer_units: int
    committed: int
    rejected: int
    needs_evidence: int
    category: ScoreResult | None
    duration_ms: int

    def to_public_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp,
            "scanned": self.scanned,
            "unreadable": list(self.unreadable),
            "changes": [outcome.to_public_dict() for outcome in self.outcomes],
            "total_cost": self.total_cost,
            "cache_hits": self.cache_hits,
            "analyzer_units": self.analyzer_units,
            "committed": self.committed,
            "rejected": self.rejected,
            "needs_evidence": self.needs_evidence,
            "category": self.category.to_public_dict() if self.category is not None else None,
            "duration_ms": self.duration_ms,
        }


class DecisionEngine:
    """Runs Change Detector -> Tiered Classifier -> Evidence Gate -> cache commit."""

    def __init__(
        self,
        config: EngineConfig,
        analyzer: Analyzer | None = None,
        *,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
        gate: EvidenceGate | None = None,
        scorer: ContextScorer | None = None,
    ) -> None:
        self._config = config
        self._monotonic = monotonic
        self._snapshots = SnapshotStore(config.data_dir)
        self._cache = DecisionCache(config.data_dir.joinpath(*CACHE_FILE), clock=clock)
        self._classifier = TieredClassifier(
            self._cache,
            analyzer=analyzer,
            config=config.classifier,
            ttls=config.cache,
            read_content=self._read_content,
            monotonic=monotonic,
        )
        if gate is None:
            gate = EvidenceGate(facts=FactStore(config.data_dir / FACTS_FILE, clock=clock))
        self._gate = gate
        self._scorer = scorer or ContextScorer()
        self._audit = JsonlAuditLogger(config.data_dir / AUDIT_FILE)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def cache(self) -> DecisionCache:
        return self._cache

    @property
    def audit(self) -> JsonlAuditLogger:
        return self._audit

    def close(self) -> None:
        self._classifier.close()

    def status(self) -> dict[str, object]:
        """Return snapshot, cache and configuration status."""
        snapshot = self._snapshots.status()
        return {
            "project_root": str(self._config.project_root),
            "snapshot_status": snapshot.snapshot_status,
            "last_scan_timestamp": snapshot.last_scan_timestamp,
            "tracked_file_count": snapshot.tracked_file_count,
            "cache": asdict(self._cache.stats()),
            "cache_load_warnings": list(self._cache.load_warnings),
            "effective_config": self._config.to_public_dict(),
        }

    def run(
        self,
        paths: Iterable[str] | None = None,
        *,
        force: bool = False,
        deadline_seconds: float | None = None,
    ) -> RunReport:
        """Scan for changes, classify each changed file and commit accepted decisions.

        With explicit ``paths`` only those paths are rescanned; every other
        stored fingerprint is carried over untouched. ``force`` accepts a
        snapshot stored under another schema version and rebuilds it.
        """
        started = time.perf_counter()
        deadline = None
        if deadline_seconds is not None:
            deadline = self._monotonic() + deadline_seconds
        root = self._config.project_root
        prior = self._snapshots.load(allow_schema_mismatch=force)
        profile: dict[str, object] = {}

        snapshot: dict[str, FileFingerprint]
        if paths is None:
            scan_paths = self._without_internal(discover_paths(root, self._config.discovery))
            changes, snapshot = scan(root, scan_paths, prior, self._config.changes, profile)
        else:
            scan_paths = sorted({confine_to_root(root, path) for path in paths})
            selected = set(scan_paths)
            subset = {path: prior[path] for path in scan_paths if path in prior}
            changes, rescanned = scan(root, scan_paths, subset, self._config.changes, profile)
            snapshot = {path: value for path, value in prior.items() if path not in selected}
            snapshot.update(rescanned)

        units = [WorkUnit.from_change(change) for change in changes]
        results = self._classifier.classify_many(units, deadline=deadline, write_back=False)
        outcomes = tuple(
            self._gate_and_commit(change, result)
            for change, result in zip(changes, results, strict=True)
        )
        timestamp = self._snapshots.save(snapshot)

        category = None
        if changes:
            category = self._scorer.score(
                extract_signals("", file_paths=[change.path for change in changes])
            )
        unreadable = profile.get("unreadable", ())
        report = RunReport(
            timestamp=timestamp,
            scanned=len(scan_paths),
            unreadable=tuple(unreadable) if isinstance(unreadable, (list, tuple)) else (),
            outcomes=outcomes,
            total_cost=sum(outcome.result.cost for outcome in outcomes),
            cache_hits=sum(1 for outcome in outcomes if outcome.result.method == METHOD_CACHE),
            analyzer_units=sum(
                1 for outcome in outcomes if outcome.result.method == METHOD_ANALYZER
            ),
            committed=sum(1 for outcome in outcomes if outcome.committed),
            rejected=sum(1 for outcome in outcomes if outcome.verdict.status == REJECT),
            needs_evidence=sum(
                1 for outcome in outcomes if outcome.verdict.status not in {ACCEPT, REJECT}
            ),
            category=category,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        self._record_metrics(
            "run",
            cost=report.total_cost,
            duration_ms=report.duration_ms,
            cache_hits=report.cache_hits,
            units=len(outcomes),
        )
        return report

    def classify_path(
        self,
        path: str,
        *,
        kind: str | None = None,
        magnitude: str | None = None,
        content: str | None = None,
        deadline_seconds: float | None = None,
        write_back: bool = True,
    ) -> ClassificationResult:
        """Classify one path on demand, outside of a scan."""
        started = time.perf_counter()
        relative = confine_to_root(self._config.project_root, path)
        try:
            content_hash = fingerprint_file(self._config.project_root, relative).content_hash
        except OSError:
            content_hash = None
        deadline = None
        if deadline_seconds is not None:
            deadline = self._monotonic() + deadline_seconds
        unit = WorkUnit(
            path=relative,
            kind=kind,
            magnitude=magnitude,
            content_hash=content_hash,
            content=content,
        )
        result = self._classifier.classify(unit, deadline=deadline, write_back=write_back)
        self._record_metrics(
            "classify",
            cost=result.cost,
            duration_ms=int((time.perf_counter() - started) * 1000),
            cache_hits=int(result.method == METHOD_CACHE),
            units=1,
        )
        return result

    def select_category(
        self,
        text: str,
        file_paths: Iterable[str] = (),
        overrides: Iterable[str] = (),
        recent: Iterable[str] = (),
    ) -> ScoreResult:
        signals = extract_signals(text, file_paths=file_paths, overrides=overrides, recent=recent)
        return self._scorer.score(signals)

    def validate_claim(self, claim: EvidenceClaim, evidence: Iterable[str] = ()) -> GateVerdict:
        return self._gate.validate(claim, evidence)

    def record_fact(
        self,
        category: str,
        key: str,
        *,
        holds: bool = True,
        evidence: Iterable[str] = (),
    ) -> Fact:
        """Record a fact the gate weighs into every claim whose statement names ``key``."""
        fact = self._gate.facts.record(category, key, holds=holds, evidence=evidence)
        self._audit.record(
            "fact.record",
            metadata={
                "category": fact.category,
                "key": fact.key,
                "holds": fact.holds,
                "verification_level": fact.verification_level,
            },
        )
        return fact

    def performance_stats(self, hours: float = DEFAULT_WINDOW_HOURS) -> list[OperationStats]:
        """Per-operation averages over audit metrics from the last ``hours``."""
        return aggregate_metrics(self._audit.events(window_start(hours)))

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    def sweep_cache(self) -> int:
        removed = self._cache.sweep()
        self._audit.record("cache.sweep", metadata={"removed": removed})
        return removed

    def _gate_and_commit(self, change: ChangeRecord, result: ClassificationResult) -> UnitOutcome:
        claim = EvidenceClaim(
            statement=f"{change.kind} file classified as {result.decision} by {result.method}",
            supporting_signals=("filesystem_check",),
            confidence=result.confidence,
        )
        verdict = self._gate.validate(claim)
        committed = verdict.status == ACCEPT and self._classifier.commit(result)
        self._audit.record(
            f"decision.{verdict.status}",
            ok=verdict.status != REJECT,
            error_code="CONSTRAINT_VIOLATION" if verdict.status == REJECT else None,
            metadata={
                "path": change.path,
                "kind": change.kind,
                "decision": result.decision,
                "method": result.method,
                "confidence": result.confidence,
                "cost": result.cost,
                "committed": committed,
                "violations": [violation.constraint for violation in verdict.violations],
            },
        )
        return UnitOutcome(change=change, result=result, verdict=verdict, committed=committed)

    def _record_metrics(
        self, operation: str, *, cost: int, duration_ms: int, cache_hits: int, units: int
    ) -> None:
        metadata = metrics_metadata(
            operation, cost=cost, duration_ms=duration_ms, cache_hits=cache_hits, units=units
        )
        self._audit.record(METRICS_EVENT, metadata=metadata)

    def _without_internal(self, paths: list[str]) -> list[str]:
        """Drop files stored under a data directory that lives inside the project."""
        root = self._config.project_root
        data_dir = self._config.data_dir
        if not data_dir.is_relative_to(root):
            return paths
        prefix = data_dir.relative_to(root).as_posix()
        return [path for path in paths if path != prefix and not path.startswith(f"{prefix}/")]

    def _read_content(self, relative_path: str) -> str:
        full_path = self._config.project_root / relative_path
        return full_path.read_text(encoding="utf-8", errors="replace")
