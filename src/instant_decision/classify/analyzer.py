"""Batching helpers for the external analyzer tier."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import PurePosixPath
from typing import Protocol

from instant_decision.classify.models import AnalyzerRequest, AnalyzerResponse, WorkUnit

MIN_PATTERN_AFFIX = 3


class Analyzer(Protocol):
    """External classifier invoked only for units cheaper tiers could not settle."""

    def __call__(self, request: AnalyzerRequest) -> AnalyzerResponse:
        """Return verdicts for the batch; raise to signal failure."""


def group_similar_units(units: Sequence[WorkUnit]) -> list[list[WorkUnit]]:
    """Group units sharing extension and directory, in first-appearance order."""
    batches: dict[tuple[str, str], list[WorkUnit]] = {}
    for unit in units:
        batches.setdefault((unit.extension, unit.directory), []).append(unit)
    return list(batches.values())


def build_request(batch: Sequence[WorkUnit]) -> AnalyzerRequest:
    """Compress a batch into the summary sent to the analyzer."""
    return AnalyzerRequest(
        units=tuple(batch),
        pattern=detect_batch_pattern([unit.path for unit in batch]),
        file_types=tuple(sorted({unit.extension for unit in batch})),
        directories=tuple(sorted({unit.directory for unit in batch})),
        count=len(batch),
    )


def detect_batch_pattern(paths: Sequence[str]) -> str:
    """Describe a shared stem prefix or suffix, else ``mixed``."""
    stems = [PurePosixPath(path).stem for path in paths]
    prefix = common_prefix(stems)
    if len(prefix) >= MIN_PATTERN_AFFIX:
        return f"prefix_{prefix}"
    suffix = common_suffix(stems)
    if len(suffix) >= MIN_PATTERN_AFFIX:
        return f"suffix_{suffix}"
    return "mixed"


def common_prefix(values: Sequence[str]) -> str:
    if not values:
        return ""
    prefix = values[0]
    for value in values[1:]:
        while prefix and not value.startswith(prefix):
            prefix = prefix[:-1]
    return prefix


def common_suffix(values: Sequence[str]) -> str:
    if not values:
        return ""
    suffix = values[0]
    for value in values[1:]:
        while suffix and not value.endswith(suffix):
            suffix = suffix[1:]
    return suffix
