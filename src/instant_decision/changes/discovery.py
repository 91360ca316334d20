"""Deterministic discovery of candidate paths under a project root."""

from __future__ import annotations

import fnmatch
import os
from pathlib import Path, PurePosixPath

from instant_decision.config import DiscoveryConfig

_GLOB_CHARS = frozenset("*?[]{}")


def discover_paths(project_root: Path, config: DiscoveryConfig) -> list[str]:
    """Return sorted relative POSIX paths of regular files eligible for scanning.

    A file is eligible when its extension or its exact name is included.

    Directories named by ``**/<name>/**`` globs are pruned without being
    entered. Symlinked directories are not followed.
    """
    root = project_root.resolve()
    wanted = {extension.lower() for extension in config.include_extensions}
    names = frozenset(config.include_names)
    pruned = pruned_directory_names(config.exclude_globs)
    found: list[str] = []
    for current, dirnames, filenames in os.walk(root, followlinks=False):
        dirnames[:] = sorted(name for name in dirnames if name not in pruned)
        base = Path(current)
        for filename in filenames:
            full_path = base / filename
            if full_path.is_symlink() or not full_path.is_file():
                continue
            relative = full_path.relative_to(root).as_posix()
            if filename not in names and PurePosixPath(relative).suffix.lower() not in wanted:
                continue
            if should_exclude(relative, config.exclude_globs):
                continue
            found.append(relative)
    return sorted(found)


def should_exclude(relative_path: str, exclude_globs: tuple[str, ...]) -> bool:
    """Match a relative path, or its root-anchored form, against ignore globs."""
    candidates = (relative_path, f"/{relative_path}")
    return any(
        fnmatch.fnmatch(candidate, pattern)
        for pattern in exclude_globs
        for candidate in candidates
    )


def pruned_directory_names(exclude_globs: tuple[str, ...]) -> frozenset[str]:
    """Literal directory names taken from ``**/<name>/**`` globs."""
    names: set[str] = set()
    for pattern in exclude_globs:
        if pattern.startswith("**/") and pattern.endswith("/**"):
            name = pattern.removeprefix("**/").removesuffix("/**").strip("/")
            if name and not _GLOB_CHARS.intersection(name):
                names.add(name)
    return frozenset(names)
