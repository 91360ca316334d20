from __future__ import annotations

from pathlib import Path

import pytest

from instant_decision.security import PathBlockedError, confine_to_root


def test_relative_paths_are_normalized_to_keys(tmp_path: Path) -> None:
    assert confine_to_root(tmp_path, "./src//pkg\\mod.py") == "src/pkg/mod.py"
    assert confine_to_root(tmp_path, "missing/yet.py") == "missing/yet.py"


def test_traversal_is_blocked(tmp_path: Path) -> None:
    with pytest.raises(PathBlockedError) as error:
        confine_to_root(tmp_path, "../outside.py")

    assert error.value.reason == "Path traversal is blocked"
    assert error.value.path == "../outside.py"


def test_absolute_path_outside_root_is_blocked(tmp_path: Path) -> None:
    outside = (tmp_path.parent / "elsewhere.py").as_posix()

    with pytest.raises(PathBlockedError) as error:
        confine_to_root(tmp_path / "project", outside)

    assert error.value.reason == "Absolute path is outside the project root"


def test_absolute_path_inside_root_becomes_relative(tmp_path: Path) -> None:
    target = tmp_path / "src" / "app.py"

    assert confine_to_root(tmp_path, target.as_posix()) == "src/app.py"


def test_symlink_escape_is_blocked(tmp_path: Path) -> None:
    root = tmp_path / "project"
    root.mkdir()
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "leak.py").write_text("secret = 1\n", encoding="utf-8")
    (root / "link").symlink_to(outside, target_is_directory=True)

    with pytest.raises(PathBlockedError) as error:
        confine_to_root(root, "link/leak.py")

    assert error.value.reason == "Resolved path escapes the project root"


@pytest.mark.parametrize("candidate", ["", ".", "./"])
def test_paths_naming_the_root_itself_are_blocked(tmp_path: Path, candidate: str) -> None:
    with pytest.raises(PathBlockedError):
        confine_to_root(tmp_path, candidate)


def test_blocked_path_is_a_value_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Path traversal is blocked"):
        confine_to_root(tmp_path, "a/../../b.py")
