"""Confine caller supplied paths to the project root."""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath
from typing import Final

_DRIVE_PREFIX: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z]:/")


class PathBlockedError(ValueError):
    """A requested path is empty or resolves outside the project root."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{reason} ({path!r})")
        self.path = path
        self.reason = reason


def confine_to_root(project_root: Path, candidate: str) -> str:
    """Return ``candidate`` as a root-relative POSIX key, or raise ``PathBlockedError``.

    Absolute inputs are accepted only when they already lie under the root.
    Relative inputs may not contain ``..`` segments. Either way the path is
    resolved, symlinks included, and must still land under the root.
    """
    root = project_root.resolve()
    normalized = candidate.replace("\\", "/").strip()
    if normalized.startswith("/") or _DRIVE_PREFIX.match(normalized):
        absolute = Path(normalized).resolve(strict=False)
        if not absolute.is_relative_to(root):
            raise PathBlockedError(candidate, "Absolute path is outside the project root")
        parts = list(absolute.relative_to(root).parts)
    else:
        parts = [part for part in normalized.split("/") if part not in ("", ".")]
        if ".." in parts:
            raise PathBlockedError(candidate, "Path traversal is blocked")
    if not parts:
        raise PathBlockedError(candidate, "Path does not name a file under the project root")

    if not root.joinpath(*parts).resolve(strict=False).is_relative_to(root):
        raise PathBlockedError(candidate, "Resolved path escapes the project root")
    return PurePosixPath(*parts).as_posix()
