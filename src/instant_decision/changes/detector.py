"""Content-addressed fingerprinting and change classification."""

from __future__ import annotations

import hashlib
import time
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from pathlib import Path

from instant_decision.changes.models import (
    ADDED,
    DELETED,
    MAJOR,
    MINOR,
    MODERATE,
    MODIFIED,
    ChangeRecord,
    FileFingerprint,
    Snapshot,
)
from instant_decision.config import MagnitudeThresholds

_READ_CHUNK_BYTES = 1024 * 128


@dataclass(slots=True, frozen=True)
class ScanProfile:
    """Deterministic diagnostics for one scan pass."""

    scanned: int
    hashed_files: int
    unreadable: tuple[str, ...]
    added: int
    modified: int
    deleted: int
    hash_seconds: float
    total_seconds: float


def scan(
    project_root: Path,
    paths: Iterable[str],
    prior: Snapshot,
    thresholds: MagnitudeThresholds | None = None,
    profile: dict[str, object] | None = None,
) -> tuple[list[ChangeRecord], dict[str, FileFingerprint]]:
    """Fingerprint paths and classify them against a prior snapshot.

    The returned snapshot is a new mapping; ``prior`` is never mutated.
    Unreadable paths keep their prior fingerprint and produce no change record.
    """
    started = time.perf_counter()
    limits = thresholds or MagnitudeThresholds()
    root = project_root.resolve()
    scan_set = sorted({normalize_relative_path(path) for path in paths})

    changes: list[ChangeRecord] = []
    snapshot: dict[str, FileFingerprint] = {}
    unreadable: list[str] = []
    missing: set[str] = set()
    hash_seconds = 0.0
    hashed_files = 0

    for rel in scan_set:
        previous = prior.get(rel)
        hash_started = time.perf_counter()
        try:
            current = fingerprint_file(root, rel)
        except FileNotFoundError:
            missing.add(rel)
            continue
        except OSError:
            unreadable.append(rel)
            if previous is not None:
                snapshot[rel] = previous
            continue
        finally:
            hash_seconds += time.perf_counter() - hash_started
        hashed_files += 1
        snapshot[rel] = current
        if previous is None:
            changes.append(ChangeRecord(kind=ADDED, path=rel, new_fingerprint=current))
            continue
        if previous.content_hash == current.content_hash:
            continue
        changes.append(
            ChangeRecord(
                kind=MODIFIED,
                path=rel,
                old_fingerprint=previous,
                new_fingerprint=current,
                magnitude=classify_magnitude(previous, current, limits),
            )
        )

    scanned = set(scan_set)
    for rel, previous in prior.items():
        if rel in scanned and rel not in missing:
            continue
        changes.append(ChangeRecord(kind=DELETED, path=rel, old_fingerprint=previous))

    changes.sort(key=lambda record: record.path)

    if profile is not None:
        payload = ScanProfile(
            scanned=len(scan_set),
            hashed_files=hashed_files,
            unreadable=tuple(unreadable),
            added=sum(1 for record in changes if record.kind == ADDED),
            modified=sum(1 for record in changes if record.kind == MODIFIED),
            deleted=sum(1 for record in changes if record.kind == DELETED),
            hash_seconds=hash_seconds,
            total_seconds=time.perf_counter() - started,
        )
        profile.update(asdict(payload))
    return changes, snapshot


def classify_magnitude(
    old: FileFingerprint,
    new: FileFingerprint,
    thresholds: MagnitudeThresholds,
) -> str:
    """Threshold byte and line deltas into minor, moderate or major."""
    size_delta = abs(new.size - old.size)
    line_delta = abs(new.line_count - old.line_count)
    if size_delta > thresholds.major_bytes or line_delta > thresholds.major_lines:
        return MAJOR
    if size_delta < thresholds.minor_bytes and line_delta < thresholds.minor_lines:
        return MINOR
    return MODERATE


def fingerprint_file(project_root: Path, relative_path: str) -> FileFingerprint:
    """Hash file content in chunked reads and capture its metadata."""
    full_path = project_root / relative_path
    stat = full_path.stat()
    digest = hashlib.sha256()
    line_count = 0
    trailing = b""
    with full_path.open("rb") as handle:
        while True:
            chunk = handle.read(_READ_CHUNK_BYTES)
            if not chunk:
                break
            digest.update(chunk)
            line_count += chunk.count(b"\n")
            trailing = chunk[-1:]
    if trailing and trailing != b"\n":
        line_count += 1
    return FileFingerprint(
        path=relative_path,
        content_hash=digest.hexdigest(),
        size=stat.st_size,
        mtime_ns=stat.st_mtime_ns,
        line_count=line_count,
    )


def normalize_relative_path(path: str) -> str:
    """Normalize separators and leading ./ for snapshot keys."""
    normalized = path.replace("\\", "/").strip()
    while "//" in normalized:
        normalized = normalized.replace("//", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized
