"""Default constraint and language tables for the evidence gate."""

from __future__ import annotations

import re

from instant_decision.evidence.models import HardConstraint

DEFAULT_CONSTRAINTS: tuple[HardConstraint, ...] = (
    HardConstraint(
        name="never_delete_without_backup",
        rule="Never suggest deleting files without creating backups",
        severity="critical",
        trigger=re.compile(r"(?i)\b(delete|deleting)\b"),
        required_evidence=("backup_exists", "user_confirmation"),
    ),
    HardConstraint(
        name="respect_gitignore",
        rule="Never document or process files in .gitignore",
        severity="high",
        trigger=re.compile(r"(?i)\.gitignore\b|\bgit-?ignored\b"),
        required_evidence=("gitignore_check",),
    ),
    HardConstraint(
        name="maintain_compilation",
        rule="Never suggest changes that break compilation",
        severity="critical",
        trigger=re.compile(r"(?i)\b(break|breaks|breaking)\s+(the\s+)?(build|compilation)\b"),
        required_evidence=("syntax_valid", "dependencies_resolved"),
    ),
    HardConstraint(
        name="no_secret_exposure",
        rule="Never document or log sensitive information",
        severity="critical",
        trigger=re.compile(r"(?i)\b(secrets?|passwords?|api[_ -]?keys?|credentials?)\b"),
        required_evidence=("secret_scan_clean",),
    ),
)

HEDGING_TERMS: tuple[str, ...] = (
    "probably",
    "likely",
    "might",
    "could be",
    "seems to",
    "appears to",
    "presumably",
    "supposedly",
    "i think",
    "maybe",
    "perhaps",
    "potentially",
    "possibly",
)

SPECIFICITY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b\d+\b"),
    re.compile(r"\b[\w-]+\.[A-Za-z][A-Za-z0-9]{0,7}\b"),
    re.compile(r"\bfunction\s+\w+"),
    re.compile(r"\bclass\s+\w+"),
    re.compile(r"\bline\s+\d+"),
    re.compile(r"\b\w+\(\)"),
)

# Evidence categories a statement needs, in report order.
EVIDENCE_REQUIREMENTS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?i)file|script"), "filesystem_check"),
    (re.compile(r"(?i)function|method"), "source_analysis"),
    (re.compile(r"(?i)working|functionality"), "runtime_test"),
    (re.compile(r"(?i)performance|speed"), "performance_measurement"),
)

DIRECT_EVIDENCE = "direct_evidence"
