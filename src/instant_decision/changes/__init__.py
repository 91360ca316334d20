"""Change detection package."""

from .detector import (
    ScanProfile,
    classify_magnitude,
    fingerprint_file,
    normalize_relative_path,
    scan,
)
from .discovery import discover_paths, should_exclude
from .models import (
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
from .snapshot import (
    SNAPSHOT_SCHEMA_VERSION,
    SnapshotSchemaUnsupportedError,
    SnapshotStatus,
    SnapshotStore,
)

__all__ = [
    "ADDED",
    "ChangeRecord",
    "DELETED",
    "FileFingerprint",
    "MAJOR",
    "MINOR",
    "MODERATE",
    "MODIFIED",
    "SNAPSHOT_SCHEMA_VERSION",
    "ScanProfile",
    "Snapshot",
    "SnapshotSchemaUnsupportedError",
    "SnapshotStatus",
    "SnapshotStore",
    "classify_magnitude",
    "discover_paths",
    "fingerprint_file",
    "normalize_relative_path",
    "scan",
    "should_exclude",
]
