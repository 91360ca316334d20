from __future__ import annotations

import json
from pathlib import Path

from instant_decision.logging import AuditEvent, JsonlAuditLogger, sanitize_arguments


def test_sanitize_keeps_plain_fields_and_hides_free_text() -> None:
    sanitized = sanitize_arguments(
        {
            "path": "src/app.py",
            "force": True,
            "statement": "the password is hunter2",
            "confidence": 0.4,
            "evidence": ["backup_exists"],
            "options": {"b": 1, "a": 2},
            "deadline_seconds": None,
        }
    )

    assert sanitized == {
        "confidence": 0.4,
        "deadline_seconds": None,
        "evidence_length": 1,
        "evidence_type": "list",
        "force": True,
        "options_keys": ["a", "b"],
        "options_type": "dict",
        "path": "src/app.py",
        "statement_length": 23,
        "statement_present": True,
    }
    assert "hunter2" not in json.dumps(sanitized)


def test_unknown_string_keys_are_reduced_to_length() -> None:
    assert sanitize_arguments({"note": "abc"}) == {"note_present": True, "note_length": 3}


def test_record_appends_one_json_line_per_event(tmp_path: Path) -> None:
    audit = JsonlAuditLogger(tmp_path / "nested" / "audit.jsonl")

    first = audit.record("decision.accept", metadata={"path": "a.py"})
    audit.record("decision.reject", ok=False, error_code="CONSTRAINT_VIOLATION")

    lines = audit.path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    event = json.loads(lines[0])
    assert set(event) == {"error_code", "event", "metadata", "ok", "timestamp"}
    assert event["event"] == "decision.accept"
    assert event["metadata"] == {"path": "a.py"}
    assert isinstance(first, AuditEvent)
    assert first.timestamp.endswith("Z")
    assert json.loads(lines[1])["error_code"] == "CONSTRAINT_VIOLATION"


def test_read_filters_by_since_and_keeps_latest(tmp_path: Path) -> None:
    audit = JsonlAuditLogger(tmp_path / "audit.jsonl")
    for index, stamp in enumerate(
        ["2026-01-01T00:00:00.000Z", "2026-01-02T00:00:00.000Z", "2026-01-03T00:00:00.000Z"]
    ):
        audit.append(AuditEvent(stamp, f"event-{index}", True, None, {}))
    with audit.path.open("a", encoding="utf-8") as handle:
        handle.write("not json\n\n")

    assert [entry["event"] for entry in audit.read()] == ["event-0", "event-1", "event-2"]
    assert [entry["event"] for entry in audit.read(since="2026-01-02")] == ["event-1", "event-2"]
    assert [entry["event"] for entry in audit.read(limit=1)] == ["event-2"]
    assert audit.read(limit=0) == []


def test_read_missing_file_is_empty(tmp_path: Path) -> None:
    audit = JsonlAuditLogger(tmp_path / "audit.jsonl")

    assert audit.read() == []
