"""Typed models for change detection state."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

ADDED = "added"
MODIFIED = "modified"
DELETED = "deleted"

MINOR = "minor"
MODERATE = "moderate"
MAJOR = "major"


@dataclass(slots=True, frozen=True)
class FileFingerprint:
    """One content version of a tracked file."""

    path: str
    content_hash: str
    size: int
    mtime_ns: int
    line_count: int


@dataclass(slots=True, frozen=True)
class ChangeRecord:
    """Difference between two snapshots for one path."""

    kind: str
    path: str
    old_fingerprint: FileFingerprint | None = None
    new_fingerprint: FileFingerprint | None = None
    magnitude: str | None = None

    @property
    def content_hash(self) -> str | None:
        """Hash of the newest known content for this path."""
        if self.new_fingerprint is not None:
            return self.new_fingerprint.content_hash
        if self.old_fingerprint is not None:
            return self.old_fingerprint.content_hash
        return None


Snapshot = Mapping[str, FileFingerprint]
