from __future__ import annotations

from pathlib import Path

from instant_decision.changes import ADDED, DELETED, MINOR, MODIFIED, scan


def _write(root: Path, relative: str, content: str) -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_scan_reports_modified_and_added_but_not_unchanged(tmp_path: Path) -> None:
    _write(tmp_path, "a.json", '{"name": "demo"}\n')
    _write(tmp_path, "b.js", "x")
    _, prior = scan(tmp_path, ["a.json", "b.js"], {})

    _write(tmp_path, "b.js", "y")
    _write(tmp_path, "c.js", "const c = 1;\n")
    changes, _ = scan(tmp_path, ["a.json", "b.js", "c.js"], prior)

    assert [(record.kind, record.path, record.magnitude) for record in changes] == [
        (MODIFIED, "b.js", MINOR),
        (ADDED, "c.js", None),
    ]


def test_scanning_twice_without_edits_yields_no_records(tmp_path: Path) -> None:
    _write(tmp_path, "src/alpha.py", "print('alpha')\n")
    _write(tmp_path, "src/beta.py", "print('beta')\n")
    paths = ["src/alpha.py", "src/beta.py"]

    first, snapshot = scan(tmp_path, paths, {})
    second, again = scan(tmp_path, paths, snapshot)

    assert [record.kind for record in first] == [ADDED, ADDED]
    assert second == []
    assert again == snapshot


def test_path_missing_from_scan_set_is_deleted(tmp_path: Path) -> None:
    _write(tmp_path, "keep.py", "keep\n")
    _write(tmp_path, "gone.py", "gone\n")
    _, prior = scan(tmp_path, ["keep.py", "gone.py"], {})

    changes, snapshot = scan(tmp_path, ["keep.py"], prior)

    assert [(record.kind, record.path) for record in changes] == [(DELETED, "gone.py")]
    assert changes[0].old_fingerprint == prior["gone.py"]
    assert changes[0].magnitude is None
    assert "gone.py" not in snapshot


def test_path_in_scan_set_but_removed_from_disk_is_deleted(tmp_path: Path) -> None:
    _write(tmp_path, "gone.py", "gone\n")
    _, prior = scan(tmp_path, ["gone.py"], {})
    (tmp_path / "gone.py").unlink()

    changes, snapshot = scan(tmp_path, ["gone.py"], prior)

    assert [(record.kind, record.path) for record in changes] == [(DELETED, "gone.py")]
    assert snapshot == {}


def test_unreadable_file_keeps_prior_fingerprint_and_is_not_deleted(tmp_path: Path) -> None:
    _write(tmp_path, "locked.py", "secret\n")
    _, prior = scan(tmp_path, ["locked.py"], {})
    (tmp_path / "locked.py").unlink()
    (tmp_path / "locked.py").mkdir()

    profile: dict[str, object] = {}
    changes, snapshot = scan(tmp_path, ["locked.py"], prior, profile=profile)

    assert changes == []
    assert snapshot["locked.py"] == prior["locked.py"]
    assert profile["unreadable"] == ("locked.py",)


def test_scan_does_not_mutate_prior_snapshot(tmp_path: Path) -> None:
    _write(tmp_path, "a.py", "one\n")
    _, prior = scan(tmp_path, ["a.py"], {})
    frozen = dict(prior)

    _write(tmp_path, "a.py", "two\n")
    _write(tmp_path, "b.py", "new\n")
    scan(tmp_path, ["a.py", "b.py"], prior)

    assert prior == frozen


def test_records_are_ordered_by_path(tmp_path: Path) -> None:
    for name in ("zeta.py", "alpha.py", "mid/beta.py"):
        _write(tmp_path, name, name)

    changes, _ = scan(tmp_path, ["zeta.py", "mid/beta.py", "alpha.py"], {})

    assert [record.path for record in changes] == ["alpha.py", "mid/beta.py", "zeta.py"]


def test_scan_profile_counts(tmp_path: Path) -> None:
    _write(tmp_path, "a.py", "a\n")
    _write(tmp_path, "b.py", "b\n")
    _, prior = scan(tmp_path, ["a.py", "b.py"], {})
    _write(tmp_path, "a.py", "a changed\n")

    profile: dict[str, object] = {}
    scan(tmp_path, ["a.py", "./c.py"], prior, profile=profile)

    assert profile["scanned"] == 2
    assert profile["hashed_files"] == 1
    assert profile["added"] == 0
    assert profile["modified"] == 1
    assert profile["deleted"] == 1
    assert profile["unreadable"] == ()
    assert isinstance(profile["total_seconds"], float)
