"""Append-only JSONL audit trail for tool calls and decisions."""

from __future__ import annotations

import json
import threading
from collections import deque
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

# Values of these keys are identifiers or switches, safe to persist verbatim.
PLAIN_STRING_KEYS = frozenset({"path", "kind", "magnitude", "since", "violated_constraint"})


@dataclass(slots=True, frozen=True)
class AuditEvent:
    """One audit record; ``metadata`` is expected to be sanitized already."""

    timestamp: str
    event: str
    ok: bool
    error_code: str | None
    metadata: dict[str, object]


def utc_timestamp(moment: datetime | None = None) -> str:
    moment = moment or datetime.now(tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_arguments(arguments: dict[str, object]) -> dict[str, object]:
    """Reduce tool arguments to values safe to persist.

    Scalars and allow-listed identifiers are kept. Any other string, such as
    request text or a claim statement, is replaced by its length; lists by
    their length; objects by their key names.
    """
    sanitized: dict[str, object] = {}
    for key in sorted(arguments):
        sanitized.update(_sanitize_value(key, arguments[key]))
    return sanitized


def _sanitize_value(key: str, value: object) -> dict[str, object]:
    if isinstance(value, str):
        if key in PLAIN_STRING_KEYS:
            return {key: value}
        return {f"{key}_present": True, f"{key}_length": len(value)}
    if isinstance(value, bool):
        return {key: value}
    if value is None or isinstance(value, (int, float)):
        return {key: value}
    if isinstance(value, list):
        return {f"{key}_type": "list", f"{key}_length": len(value)}
    if isinstance(value, dict):
        return {f"{key}_type": "dict", f"{key}_keys": sorted(str(name) for name in value)}
    return {f"{key}_type": type(value).__name__}


class JsonlAuditLogger:
    """Thread-safe JSONL appender with a bounded tail reader."""

    def __init__(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self._path = path
        self._write_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: AuditEvent) -> None:
        line = json.dumps(asdict(event), sort_keys=True) + "\n"
        with self._write_lock, self._path.open("a", encoding="utf-8") as handle:
            handle.write(line)

    def record(
        self,
        event: str,
        *,
        ok: bool = True,
        error_code: str | None = None,
        metadata: dict[str, object] | None = None,
    ) -> AuditEvent:
        """Stamp, append and return one event."""
        entry = AuditEvent(utc_timestamp(), event, ok, error_code, dict(metadata or {}))
        self.append(entry)
        return entry

    def read(self, since: str | None = None, limit: int = 50) -> list[dict[str, object]]:
        """Return up to ``limit`` newest events stamped at or after ``since``, oldest first."""
        if limit < 1:
            return []
        return list(deque(self.events(since), maxlen=limit))

    def events(self, since: str | None = None) -> Iterator[dict[str, object]]:
        """Yield every event stamped at or after ``since``, oldest first."""
        for record in self._records():
            stamp = record.get("timestamp")
            if since is not None and (not isinstance(stamp, str) or stamp < since):
                continue
            yield record

    def _records(self) -> Iterator[dict[str, object]]:
        """Yield parsed lines, skipping blanks and lines that are not JSON objects."""
        if not self._path.exists():
            return
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                if not line.strip():
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if isinstance(record, dict):
                    yield record
