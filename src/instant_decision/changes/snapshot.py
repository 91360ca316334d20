"""Persistent snapshot storage with atomic replacement."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

from instant_decision.changes.models import FileFingerprint

SNAPSHOT_SCHEMA_VERSION = 1

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SnapshotStatus:
    """Manifest summary reported by the status tool."""

    snapshot_status: str
    last_scan_timestamp: str | None
    tracked_file_count: int


@dataclass(slots=True, frozen=True)
class SnapshotSchemaUnsupportedError(Exception):
    """Stored snapshot was written under a different schema version."""

    found: int
    expected: int


class SnapshotStore:
    """Loads and atomically replaces the last scanned fingerprint set."""

    def __init__(self, data_dir: Path) -> None:
        self._snapshot_dir = data_dir.resolve() / "snapshot"
        self._manifest_path = self._snapshot_dir / "manifest.json"
        self._files_path = self._snapshot_dir / "files.jsonl"

    def status(self) -> SnapshotStatus:
        """Summarize the manifest without reading the fingerprint rows."""
        manifest = self._read_manifest()
        if manifest is None:
            return SnapshotStatus("not_scanned", None, 0)
        if manifest.get("schema_version") != SNAPSHOT_SCHEMA_VERSION:
            return SnapshotStatus("schema_mismatch", None, 0)
        timestamp = manifest.get("last_scan_timestamp")
        count = manifest.get("tracked_file_count")
        return SnapshotStatus(
            "ready",
            timestamp if isinstance(timestamp, str) else None,
            count if isinstance(count, int) else 0,
        )

    def load(self, allow_schema_mismatch: bool = False) -> dict[str, FileFingerprint]:
        """Load the stored snapshot; a missing or corrupt store loads as empty.

        A manifest from another schema version raises
        ``SnapshotSchemaUnsupportedError`` unless ``allow_schema_mismatch`` is
        set, in which case the stale snapshot is ignored.
        """
        manifest = self._read_manifest()
        if manifest is None:
            return {}
        schema = manifest.get("schema_version")
        if schema != SNAPSHOT_SCHEMA_VERSION:
            if allow_schema_mismatch:
                return {}
            found = schema if isinstance(schema, int) else -1
            raise SnapshotSchemaUnsupportedError(found=found, expected=SNAPSHOT_SCHEMA_VERSION)
        try:
            return {
                fingerprint.path: fingerprint
                for fingerprint in map(_fingerprint_from_row, _iter_rows(self._files_path))
                if fingerprint is not None
            }
        except FileNotFoundError:
            return {}
        except OSError as error:
            logger.warning("Snapshot file unreadable, starting from empty snapshot: %s", error)
            return {}

    def save(self, snapshot: Mapping[str, FileFingerprint]) -> str:
        """Replace the stored snapshot atomically and return the scan timestamp.

        Fingerprints are written before the manifest, each through a temporary
        sibling, so an interrupted save never leaves a manifest describing
        rows that were not written.
        """
        self._snapshot_dir.mkdir(parents=True, exist_ok=True)
        timestamp = utc_now_iso()
        lines = [json.dumps(asdict(snapshot[path]), sort_keys=True) for path in sorted(snapshot)]
        _replace_text(self._files_path, "".join(f"{line}\n" for line in lines))
        manifest = {
            "schema_version": SNAPSHOT_SCHEMA_VERSION,
            "last_scan_timestamp": timestamp,
            "tracked_file_count": len(lines),
        }
        _replace_text(self._manifest_path, json.dumps(manifest, sort_keys=True) + "\n")
        return timestamp

    def _read_manifest(self) -> dict[str, object] | None:
        try:
            payload = json.loads(self._manifest_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as error:
            logger.warning("Snapshot manifest corrupt, starting from empty snapshot: %s", error)
            return None
        return payload if isinstance(payload, dict) else None


def utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _iter_rows(path: Path) -> Iterator[dict[str, object]]:
    with path.open("r", encoding="utf-8") as handle:
        for line in handle:
            if not line.strip():
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(row, dict):
                yield row


def _fingerprint_from_row(row: dict[str, object]) -> FileFingerprint | None:
    path = row.get("path")
    content_hash = row.get("content_hash")
    numbers = [row.get(name) for name in ("size", "mtime_ns", "line_count")]
    if not isinstance(path, str) or not isinstance(content_hash, str):
        return None
    size, mtime_ns, line_count = numbers
    if not (isinstance(size, int) and isinstance(mtime_ns, int) and isinstance(line_count, int)):
        return None
    return FileFingerprint(path, content_hash, size, mtime_ns, line_count)


def _replace_text(path: Path, text: str) -> None:
    """Write ``text`` beside ``path`` and atomically swap it in."""
    staging = path.with_name(f"{path.name}.tmp")
    staging.write_text(text, encoding="utf-8")
    staging.replace(path)
