"""Signal extraction from free-form request text and file paths."""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import PurePosixPath

from instant_decision.scoring.models import ScoreSignals

GENERAL_TASK = "general"

# First match wins.
TASK_TYPE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("development", re.compile(r"\b(build|create|implement|develop|code)")),
    ("debugging", re.compile(r"\b(debug|error|bug|fix|troubleshoot)")),
    ("architecture", re.compile(r"\b(design|architecture|plan|structure)")),
    ("testing", re.compile(r"\b(test|quality|coverage|validate)")),
    ("optimization", re.compile(r"\b(optimi[sz]e|performance|speed|improve)")),
    ("security", re.compile(r"\b(secure|security|vulnerability|auth)")),
    ("education", re.compile(r"\b(explain|learn|tutorial|document)")),
    ("maintenance", re.compile(r"\b(refactor|clean|maintain|debt)")),
)

ERROR_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("module_not_found", re.compile(r"cannot find module|modulenotfounderror|no module named")),
    ("undefined_reference", re.compile(r"is not defined|nameerror|referenceerror")),
    ("type_error", re.compile(r"typeerror|cannot read propert")),
    ("syntax_error", re.compile(r"syntaxerror|unexpected token")),
    ("permission_denied", re.compile(r"permission denied|eacces|forbidden|unauthorized")),
    ("timeout", re.compile(r"timed out|timeout|etimedout")),
    ("out_of_memory", re.compile(r"out of memory|memoryerror|heap out of")),
    ("test_failure", re.compile(r"assertionerror|tests? failed|failing tests?")),
)

_WORD = re.compile(r"[a-z][a-z0-9_]*")
_TEXT_EXTENSION = re.compile(r"\w(\.(?:test|spec)\.[a-z]+|\.[a-z][a-z0-9]{0,9})\b")


def classify_task_type(text: str) -> str:
    """Return the first matching task type for ``text``."""
    lowered = text.lower()
    for task_type, pattern in TASK_TYPE_PATTERNS:
        if pattern.search(lowered):
            return task_type
    return GENERAL_TASK


def detect_error_patterns(text: str) -> frozenset[str]:
    lowered = text.lower()
    return frozenset(label for label, pattern in ERROR_PATTERNS if pattern.search(lowered))


def path_extensions(path: str) -> set[str]:
    """Return the last suffix plus the two-part suffix (``.test.js``) when present."""
    suffixes = [suffix.lower() for suffix in PurePosixPath(path).suffixes]
    if not suffixes:
        return set()
    found = {suffixes[-1]}
    if len(suffixes) >= 2:
        found.add("".join(suffixes[-2:]))
    return found


def extract_signals(
    text: str,
    file_paths: Iterable[str] = (),
    overrides: Iterable[str] = (),
    recent: Iterable[str] = (),
) -> ScoreSignals:
    """Derive scoring signals for a request.

    Keywords are the lowercase words of ``text``. Extensions come from the
    given paths and from file names mentioned in the text.
    """
    lowered = text.lower()
    extensions: set[str] = set()
    for match in _TEXT_EXTENSION.finditer(lowered):
        extensions.update(path_extensions(f"x{match.group(1)}"))
    for path in file_paths:
        extensions.update(path_extensions(path))
    return ScoreSignals(
        keywords=frozenset(_WORD.findall(lowered)),
        extensions=frozenset(extensions),
        task_type=classify_task_type(lowered),
        error_patterns=detect_error_patterns(lowered),
        overrides=frozenset(overrides),
        recent=frozenset(recent),
    )
