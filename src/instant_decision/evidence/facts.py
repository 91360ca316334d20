"""Recorded facts that raise or lower confidence in claims mentioning them."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass
from pathlib import Path
from threading import Lock

FACTS_SCHEMA_VERSION = 1

# Checked in order; the first evidence type present sets the level.
VERIFICATION_LEVELS: tuple[tuple[str, str], ...] = (
    ("filesystem_check", "verified"),
    ("runtime_test", "high"),
    ("source_analysis", "medium"),
)
VERIFIED_WEIGHT = 1.0
UNVERIFIED_WEIGHT = 0.7

logger = logging.getLogger(__name__)


def verification_level(evidence: Iterable[str]) -> str:
    """Grade a fact by the strongest kind of evidence behind it."""
    kinds = set(evidence)
    if not kinds:
        return "unverified"
    for kind, level in VERIFICATION_LEVELS:
        if kind in kinds:
            return level
    return "low"


@dataclass(slots=True, frozen=True)
class Fact:
    """Something known about the project, true when ``holds`` is set."""

    category: str
    key: str
    holds: bool
    evidence: tuple[str, ...]
    verification_level: str
    updated_at: float

    @property
    def weight(self) -> float:
        return VERIFIED_WEIGHT if self.verification_level == "verified" else UNVERIFIED_WEIGHT

    def to_public_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["evidence"] = list(self.evidence)
        payload["weight"] = self.weight
        return payload


class FactStore:
    """Facts keyed by ``(category, key)``, optionally persisted as JSON."""

    def __init__(self, path: Path | None = None, clock: Callable[[], float] = time.time) -> None:
        self._path = path
        self._clock = clock
        self._lock = Lock()
        self._facts: dict[tuple[str, str], Fact] = self._load()

    def record(
        self,
        category: str,
        key: str,
        *,
        holds: bool = True,
        evidence: Iterable[str] = (),
    ) -> Fact:
        """Insert or replace one fact and return it."""
        if not category or not key:
            raise ValueError("fact category and key must be non-empty")
        kinds = tuple(dict.fromkeys(evidence))
        fact = Fact(category, key, holds, kinds, verification_level(kinds), self._clock())
        with self._lock:
            self._facts[(category, key)] = fact
            self._save([asdict(item) for _, item in sorted(self._facts.items())])
        return fact

    def matching(self, statement: str) -> list[Fact]:
        """Facts whose key appears verbatim in ``statement``, in key order."""
        with self._lock:
            facts = sorted(self._facts.items())
        return [fact for _, fact in facts if fact.key in statement]

    def __len__(self) -> int:
        with self._lock:
            return len(self._facts)

    def _load(self) -> dict[tuple[str, str], Fact]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as error:
            logger.warning("Fact store unreadable, starting empty: %s", error)
            return {}
        if not isinstance(payload, dict):
            payload = {}
        rows = payload.get("facts")
        if payload.get("schema_version") != FACTS_SCHEMA_VERSION or not isinstance(rows, list):
            logger.warning("Fact store has an unsupported layout, starting empty.")
            return {}
        facts = [fact for fact in map(_fact_from_row, rows) if fact is not None]
        return {(fact.category, fact.key): fact for fact in facts}

    def _save(self, rows: list[dict[str, object]]) -> None:
        if self._path is None:
            return
        text = json.dumps({"schema_version": FACTS_SCHEMA_VERSION, "facts": rows}, sort_keys=True)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            staging = self._path.with_name(f"{self._path.name}.tmp")
            staging.write_text(text + "\n", encoding="utf-8")
            staging.replace(self._path)
        except OSError as error:
            logger.warning("Fact store could not be written, keeping it in memory: %s", error)


def _fact_from_row(row: object) -> Fact | None:
    if not isinstance(row, dict):
        return None
    category, key, holds = row.get("category"), row.get("key"), row.get("holds")
    evidence, updated_at = row.get("evidence"), row.get("updated_at")
    if not isinstance(category, str) or not isinstance(key, str) or not isinstance(holds, bool):
        return None
    if not isinstance(evidence, list) or not all(isinstance(item, str) for item in evidence):
        return None
    if not isinstance(updated_at, (int, float)):
        return None
    kinds = tuple(evidence)
    return Fact(category, key, holds, kinds, verification_level(kinds), float(updated_at))
