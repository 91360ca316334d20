"""Built-in ``decide.*`` tools exposing the decision engine."""

from __future__ import annotations

from dataclasses import asdict

from instant_decision.changes import ADDED, DELETED, MAJOR, MINOR, MODERATE, MODIFIED
from instant_decision.engine import DecisionEngine
from instant_decision.evidence import EvidenceClaim
from instant_decision.logging import DEFAULT_WINDOW_HOURS
from instant_decision.scoring import extract_signals
from instant_decision.security import PathBlockedError
from instant_decision.tools.registry import ToolDispatchError, ToolHandler, ToolRegistry

DEFAULT_AUDIT_LIMIT = 50
MAX_AUDIT_LIMIT = 500

CHANGE_KINDS = (ADDED, MODIFIED, DELETED)
MAGNITUDES = (MINOR, MODERATE, MAJOR)


def register_builtin_tools(registry: ToolRegistry, engine: DecisionEngine) -> None:
    """Register the engine tool set; ``tools/list`` reports this order."""
    for name, factory, description in (
        ("decide.status", _status_handler, "Snapshot and cache status."),
        ("decide.run", _run_handler, "Scan, classify and commit changes."),
        ("decide.classify", _classify_handler, "Classify one path."),
        ("decide.score", _score_handler, "Rank categories for a request."),
        ("decide.validate", _validate_handler, "Gate a proposed claim."),
        ("decide.record_fact", _record_fact_handler, "Record a fact the gate weighs."),
        ("decide.cache_stats", _cache_stats_handler, "Cache counters."),
        ("decide.sweep_cache", _sweep_cache_handler, "Remove expired cache entries."),
        ("decide.audit_log", _audit_log_handler, "Recent audit events."),
        ("decide.performance_stats", _performance_stats_handler, "Per-operation metrics."),
    ):
        registry.register(name, factory(engine), description)


def _status_handler(engine: DecisionEngine) -> ToolHandler:
    return lambda _: engine.status()


def _run_handler(engine: DecisionEngine) -> ToolHandler:
    tool = "decide.run"

    def handler(arguments: dict[str, object]) -> dict[str, object]:
        paths = None if arguments.get("paths") is None else _strings(arguments, "paths", tool)
        force = _flag(arguments, "force", tool, default=False)
        deadline = _positive_number(arguments, "deadline_seconds", tool)
        try:
            report = engine.run(paths, force=force, deadline_seconds=deadline)
        except PathBlockedError as error:
            raise _invalid(tool, f"paths entry blocked: {error}") from error
        payload = report.to_public_dict()
        if report.unreadable:
            payload["__warnings__"] = [
                f"Unreadable file kept at its previous fingerprint: {path}"
                for path in report.unreadable
            ]
        return payload

    return handler


def _classify_handler(engine: DecisionEngine) -> ToolHandler:
    tool = "decide.classify"

    def handler(arguments: dict[str, object]) -> dict[str, object]:
        path = arguments.get("path")
        if not isinstance(path, str) or not path.strip():
            raise _invalid(tool, "path must be a non-empty string")
        content = arguments.get("content")
        if content is not None and not isinstance(content, str):
            raise _invalid(tool, "content must be a string")
        kind = _choice(arguments, "kind", CHANGE_KINDS, tool)
        magnitude = _choice(arguments, "magnitude", MAGNITUDES, tool)
        deadline = _positive_number(arguments, "deadline_seconds", tool)
        write_back = _flag(arguments, "write_back", tool, default=True)
        try:
            result = engine.classify_path(
                path,
                kind=kind,
                magnitude=magnitude,
                content=content,
                deadline_seconds=deadline,
                write_back=write_back,
            )
        except PathBlockedError as error:
            raise _invalid(tool, f"path blocked: {error}") from error
        return {**asdict(result), "trail": list(result.trail)}

    return handler


def _score_handler(engine: DecisionEngine) -> ToolHandler:
    tool = "decide.score"

    def handler(arguments: dict[str, object]) -> dict[str, object]:
        text = arguments.get("text", "")
        if not isinstance(text, str):
            raise _invalid(tool, "text must be a string")
        file_paths = _strings(arguments, "file_paths", tool)
        overrides = _strings(arguments, "overrides", tool)
        recent = _strings(arguments, "recent", tool)
        if not (text.strip() or file_paths or overrides):
            raise _invalid(tool, "needs text, file_paths or overrides")
        payload = engine.select_category(text, file_paths, overrides, recent).to_public_dict()
        signals = extract_signals(text, file_paths=file_paths, overrides=overrides, recent=recent)
        payload["signals"] = signals.to_public_dict()
        return payload

    return handler


def _validate_handler(engine: DecisionEngine) -> ToolHandler:
    tool = "decide.validate"

    def handler(arguments: dict[str, object]) -> dict[str, object]:
        statement = arguments.get("statement")
        if not isinstance(statement, str) or not statement.strip():
            raise _invalid(tool, "statement must be a non-empty string")
        violated = arguments.get("violated_constraint")
        if violated is not None and not isinstance(violated, str):
            raise _invalid(tool, "violated_constraint must be a string")
        confidence = arguments.get("confidence", 0.5)
        if not _is_number(confidence) or not 0.0 <= confidence <= 1.0:
            raise _invalid(tool, "confidence must be a number in [0, 1]")
        claim = EvidenceClaim(
            statement=statement,
            supporting_signals=tuple(_strings(arguments, "supporting_signals", tool)),
            violated_constraint=violated,
            confidence=float(confidence),
        )
        verdict = engine.validate_claim(claim, _strings(arguments, "evidence", tool))
        return verdict.to_public_dict()

    return handler


def _record_fact_handler(engine: DecisionEngine) -> ToolHandler:
    tool = "decide.record_fact"

    def handler(arguments: dict[str, object]) -> dict[str, object]:
        category = arguments.get("category")
        key = arguments.get("key")
        if not isinstance(category, str) or not category.strip():
            raise _invalid(tool, "category must be a non-empty string")
        if not isinstance(key, str) or not key.strip():
            raise _invalid(tool, "key must be a non-empty string")
        fact = engine.record_fact(
            category,
            key,
            holds=_flag(arguments, "holds", tool, default=True),
            evidence=_strings(arguments, "evidence", tool),
        )
        return fact.to_public_dict()

    return handler


def _cache_stats_handler(engine: DecisionEngine) -> ToolHandler:
    return lambda _: asdict(engine.cache_stats())


def _sweep_cache_handler(engine: DecisionEngine) -> ToolHandler:
    return lambda _: {"removed": engine.sweep_cache()}


def _audit_log_handler(engine: DecisionEngine) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        since = arguments.get("since")
        limit = arguments.get("limit")
        if not isinstance(limit, int) or isinstance(limit, bool):
            limit = DEFAULT_AUDIT_LIMIT
        entries = engine.audit.read(
            since if isinstance(since, str) else None,
            min(max(limit, 1), MAX_AUDIT_LIMIT),
        )
        return {"entries": entries}

    return handler


def _performance_stats_handler(engine: DecisionEngine) -> ToolHandler:
    tool = "decide.performance_stats"

    def handler(arguments: dict[str, object]) -> dict[str, object]:
        hours = _positive_number(arguments, "hours", tool) or DEFAULT_WINDOW_HOURS
        stats = engine.performance_stats(hours)
        return {"hours": hours, "operations": [asdict(item) for item in stats]}

    return handler


def _invalid(tool: str, problem: str) -> ToolDispatchError:
    return ToolDispatchError(code="INVALID_PARAMS", message=f"{tool} {problem}.")


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _strings(arguments: dict[str, object], key: str, tool: str) -> list[str]:
    value = arguments.get(key)
    if value is None:
        return []
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    raise _invalid(tool, f"{key} must be a list of strings")


def _flag(arguments: dict[str, object], key: str, tool: str, default: bool) -> bool:
    value = arguments.get(key, default)
    if isinstance(value, bool):
        return value
    raise _invalid(tool, f"{key} must be a boolean")


def _positive_number(arguments: dict[str, object], key: str, tool: str) -> float | None:
    value = arguments.get(key)
    if value is None:
        return None
    if _is_number(value) and value > 0:
        return float(value)
    raise _invalid(tool, f"{key} must be a positive number")


def _choice(
    arguments: dict[str, object], key: str, choices: tuple[str, ...], tool: str
) -> str | None:
    value = arguments.get(key)
    if value is None or value in choices:
        return value
    raise _invalid(tool, f"{key} must be one of: {', '.join(choices)}")
