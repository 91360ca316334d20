from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from instant_decision.server import create_server, main


def _call(name: str, arguments: dict[str, object], request_id: str) -> dict[str, object]:
    return {
        "id": request_id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments},
    }


def _seed(root: Path) -> None:
    (root / "src").mkdir()
    (root / "src" / "app.py").write_text("print('app')\n", encoding="utf-8")
    (root / "package.json").write_text('{"name": "demo"}\n', encoding="utf-8")


def test_stdio_server_routes_multiple_requests(tmp_path: Path) -> None:
    _seed(tmp_path)
    server = create_server(project_root=tmp_path)
    in_stream = io.StringIO(
        "\n".join(
            [
                json.dumps({"id": "req-1", "method": "decide.status", "params": {}}),
                json.dumps(_call("decide.run", {}, "req-2")),
                "{not json",
                json.dumps(_call("decide.score", {"text": "fix this bug error"}, "req-3")),
            ]
        )
        + "\n"
    )
    out_stream = io.StringIO()

    server.serve(in_stream=in_stream, out_stream=out_stream)
    responses = [json.loads(line) for line in out_stream.getvalue().splitlines() if line]

    assert [response["request_id"] for response in responses] == [
        "req-1",
        "req-2",
        "req-000001",
        "req-3",
    ]
    status, run, invalid, score = responses
    assert status["ok"] is True
    assert status["result"]["snapshot_status"] == "not_scanned"
    assert run["ok"] is True
    assert [item["path"] for item in run["result"]["changes"]] == ["package.json", "src/app.py"]
    assert invalid["ok"] is False
    assert invalid["error"]["code"] == "INVALID_JSON"
    assert score["result"]["selected"] == "analyzer"
    assert score["result"]["signals"]["task_type"] == "debugging"


def test_tools_list_reports_builtin_tools_in_order(tmp_path: Path) -> None:
    server = create_server(project_root=tmp_path)

    response = server.handle_payload({"id": "req-list", "method": "tools/list", "params": {}})

    names = [tool["name"] for tool in response["result"]["tools"]]
    assert names == [
        "decide.status",
        "decide.run",
        "decide.classify",
        "decide.score",
        "decide.validate",
        "decide.record_fact",
        "decide.cache_stats",
        "decide.sweep_cache",
        "decide.audit_log",
        "decide.performance_stats",
    ]


def test_error_envelopes(tmp_path: Path) -> None:
    server = create_server(project_root=tmp_path)

    unknown = server.handle_payload(_call("decide.nope", {}, "req-a"))
    missing_path = server.handle_payload(_call("decide.classify", {}, "req-b"))
    bad_kind = server.handle_payload(_call("decide.classify", {"path": "a.py", "kind": "x"}, "r"))
    not_object = server.handle_payload(["decide.status"])
    bad_params = server.handle_payload({"id": 7, "method": "decide.status", "params": []})

    assert unknown["error"]["code"] == "UNKNOWN_TOOL"
    assert unknown["result"] == {}
    assert missing_path["error"]["code"] == "INVALID_PARAMS"
    assert "kind must be one of" in bad_kind["error"]["message"]
    assert not_object["error"]["code"] == "INVALID_REQUEST"
    assert bad_params["request_id"] == "7"
    assert bad_params["error"]["code"] == "INVALID_PARAMS"


def test_paths_escaping_the_project_are_invalid_params(tmp_path: Path) -> None:
    root = tmp_path / "project"
    root.mkdir()
    _seed(root)
    server = create_server(project_root=root)

    run = server.handle_payload(_call("decide.run", {"paths": ["../x.py"]}, "req-p1"))
    classify = server.handle_payload(_call("decide.classify", {"path": "/etc/passwd"}, "req-p2"))

    assert run["error"]["code"] == "INVALID_PARAMS"
    assert "Path traversal is blocked" in run["error"]["message"]
    assert classify["error"]["code"] == "INVALID_PARAMS"
    assert "outside the project root" in classify["error"]["message"]
    assert server.engine.status()["snapshot_status"] == "not_scanned"

def test_validate_and_classify_tools(tmp_path: Path) -> None:
    _seed(tmp_path)
    server = create_server(project_root=tmp_path)

    hedged = server.handle_payload(
        _call("decide.validate", {"statement": "this will probably work"}, "req-v1")
    )
    rejected = server.handle_payload(
        _call("decide.validate", {"statement": "delete the logs", "confidence": 0.9}, "req-v2")
    )
    bad_confidence = server.handle_payload(
        _call("decide.validate", {"statement": "ok", "confidence": 2}, "req-v3")
    )
    classified = server.handle_payload(
        _call("decide.classify", {"path": "package.json"}, "req-c1")
    )

    assert hedged["result"]["status"] == "needs_evidence"
    assert hedged["result"]["adjusted_confidence"] == 0.3
    assert hedged["result"]["missing_evidence"] == ["direct_evidence"]
    assert rejected["result"]["status"] == "reject"
    assert rejected["result"]["violations"][0]["constraint"] == "never_delete_without_backup"
    assert bad_confidence["error"]["code"] == "INVALID_PARAMS"
    assert classified["result"]["method"] == "exact_table"
    assert classified["result"]["trail"] == ["tier0:update_dependencies@0.95"]


def test_unreadable_paths_surface_as_warnings(tmp_path: Path) -> None:
    _seed(tmp_path)
    server = create_server(project_root=tmp_path)
    server.handle_payload(_call("decide.run", {}, "req-1"))
    (tmp_path / "src" / "app.py").unlink()
    (tmp_path / "src" / "app.py").mkdir()

    response = server.handle_payload(_call("decide.run", {"paths": ["src/app.py"]}, "req-2"))
    server.engine.close()

    assert response["ok"] is True
    assert response["result"]["unreadable"] == ["src/app.py"]
    assert response["result"]["changes"] == []
    assert "__warnings__" not in response["result"]
    assert response["warnings"] == [
        "Unreadable file kept at its previous fingerprint: src/app.py"
    ]


def test_schema_mismatch_requires_forced_run(tmp_path: Path) -> None:
    _seed(tmp_path)
    server = create_server(project_root=tmp_path)
    server.handle_payload(_call("decide.run", {}, "req-1"))
    manifest_path = tmp_path / ".instant_decision" / "snapshot" / "manifest.json"
    manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    manifest["schema_version"] = 999
    manifest_path.write_text(json.dumps(manifest), encoding="utf-8")

    blocked = server.handle_payload(_call("decide.run", {}, "req-2"))
    status = server.handle_payload({"id": "req-3", "method": "decide.status", "params": {}})
    forced = server.handle_payload(_call("decide.run", {"force": True}, "req-4"))
    server.engine.close()

    assert blocked["ok"] is False
    assert blocked["error"]["code"] == "SNAPSHOT_SCHEMA_UNSUPPORTED"
    assert status["result"]["snapshot_status"] == "schema_mismatch"
    assert forced["ok"] is True
    assert [item["kind"] for item in forced["result"]["changes"]] == ["added", "added"]


def test_tool_calls_are_audited_without_free_text(tmp_path: Path) -> None:
    server = create_server(project_root=tmp_path)
    server.handle_payload(
        _call("decide.score", {"text": "my password is hunter2"}, "req-audit")
    )

    response = server.handle_payload(_call("decide.audit_log", {"limit": 1}, "req-log"))
    entries = response["result"]["entries"]

    assert len(entries) == 1
    entry = entries[0]
    assert entry["event"] == "tool_call"
    assert entry["ok"] is True
    assert entry["metadata"]["request_id"] == "req-audit"
    assert entry["metadata"]["tool"] == "decide.score"
    assert entry["metadata"]["arguments"] == {"text_length": 22, "text_present": True}
    assert "hunter2" not in json.dumps(entries)


def test_recorded_facts_change_later_verdicts(tmp_path: Path) -> None:
    server = create_server(project_root=tmp_path)
    claim = {"statement": "the orders endpoint returns paged results", "confidence": 0.5}

    before = server.handle_payload(_call("decide.validate", claim, "req-f1"))
    recorded = server.handle_payload(
        _call(
            "decide.record_fact",
            {"category": "api", "key": "orders endpoint", "evidence": ["runtime_test"]},
            "req-f2",
        )
    )
    after = server.handle_payload(_call("decide.validate", claim, "req-f3"))
    missing_key = server.handle_payload(_call("decide.record_fact", {"category": "api"}, "r"))

    assert before["result"]["status"] == "needs_evidence"
    assert recorded["result"]["verification_level"] == "high"
    assert recorded["result"]["weight"] == 0.7
    assert after["result"]["status"] == "accept"
    assert after["result"]["adjusted_confidence"] == 0.71
    assert after["result"]["supporting_facts"] == ["api:orders endpoint"]
    assert "fact:api:orders endpoint +0.21" in after["result"]["trail"]
    assert missing_key["error"]["code"] == "INVALID_PARAMS"


def test_performance_stats_summarize_runs(tmp_path: Path) -> None:
    _seed(tmp_path)
    server = create_server(project_root=tmp_path)
    server.handle_payload(_call("decide.run", {}, "req-r1"))
    server.handle_payload(_call("decide.run", {}, "req-r2"))

    response = server.handle_payload(_call("decide.performance_stats", {"hours": 1}, "req-p"))
    bad_hours = server.handle_payload(_call("decide.performance_stats", {"hours": -1}, "r"))

    assert response["ok"] is True
    assert response["result"]["hours"] == 1.0
    [run] = response["result"]["operations"]
    assert run["operation"] == "run"
    assert run["operations"] == 2
    assert run["total_cost"] == 0
    assert bad_hours["error"]["code"] == "INVALID_PARAMS"


def test_main_rejects_invalid_configuration(tmp_path: Path) -> None:
    (tmp_path / "instant_decision.toml").write_text(
        "[classifier]\nconfidence_threshold = 3\n", encoding="utf-8"
    )

    with pytest.raises(SystemExit) as excinfo:
        main(["--project-root", str(tmp_path)])

    assert excinfo.value.code == 2
