"""STDIO JSON-lines server exposing the decision engine as tools.

Each input line is one request object ``{"id", "method", "params"}``. The
method is either a tool name, ``tools/list`` or ``tools/call`` with
``params = {"name", "arguments"}``. Each request produces exactly one output
line holding an envelope with ``request_id``, ``ok``, ``result``, ``warnings``
and, on failure, ``error = {"code", "message"}``.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from instant_decision.changes import SnapshotSchemaUnsupportedError
from instant_decision.classify import Analyzer
from instant_decision.config import ConfigurationError, StartupOverrides, load_effective_config
from instant_decision.engine import DecisionEngine
from instant_decision.logging import sanitize_arguments
from instant_decision.tools.builtin import register_builtin_tools
from instant_decision.tools.registry import ToolDispatchError, ToolRegistry

LIST_METHOD = "tools/list"
CALL_METHOD = "tools/call"

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Request:
    """Request after shape validation, with the tool call it resolves to."""

    request_id: str
    method: str
    tool: str
    arguments: dict[str, object]


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="instant-decision",
        description="Serve tiered decisions over STDIO, one JSON request per line.",
    )
    parser.add_argument("--project-root", default=".")
    parser.add_argument("--data-dir", default=None)
    parser.add_argument("--confidence-threshold", type=float, default=None)
    parser.add_argument("--analyzer-timeout", type=float, default=None)
    parser.add_argument("--max-workers", type=int, default=None)
    parser.add_argument("--verbose", action="store_true", help="log at DEBUG to stderr")
    return parser


class StdioServer:
    """Routes decoded requests to registered tools and audits every call."""

    def __init__(self, engine: DecisionEngine) -> None:
        self._engine = engine
        self._registry = ToolRegistry()
        register_builtin_tools(self._registry, engine)
        self._generated_ids = 0

    @property
    def engine(self) -> DecisionEngine:
        return self._engine

    def serve(self, in_stream: TextIO, out_stream: TextIO) -> None:
        """Answer requests until ``in_stream`` is exhausted, then close the engine."""
        try:
            for raw_line in in_stream:
                if not raw_line.strip():
                    continue
                envelope = self.handle_json_line(raw_line)
                out_stream.write(json.dumps(envelope, sort_keys=True) + "\n")
                out_stream.flush()
        finally:
            self._engine.close()

    def handle_json_line(self, raw_line: str) -> dict[str, object]:
        try:
            payload = json.loads(raw_line)
        except json.JSONDecodeError:
            request_id = self.next_request_id()
            envelope = error_envelope(request_id, "INVALID_JSON", "Request must be valid JSON.")
            self._audit(request_id, "invalid_json", {"line_length": len(raw_line)}, envelope)
            return envelope
        return self.handle_payload(payload)

    def handle_payload(self, payload: object) -> dict[str, object]:
        """Validate, dispatch and audit one decoded request."""
        raw_id = payload.get("id") if isinstance(payload, dict) else None
        request_id = self.request_id_for(raw_id)
        try:
            request = self.parse_request(request_id, payload)
        except ToolDispatchError as error:
            envelope = error_envelope(request_id, error.code, error.message)
            self._audit(request_id, "invalid_request", {}, envelope)
            return envelope

        if request.method == LIST_METHOD:
            return ok_envelope(request_id, {"tools": self._registry.describe()})

        envelope = self._dispatch(request)
        self._audit(request_id, request.tool, request.arguments, envelope)
        return envelope

    def parse_request(self, request_id: str, payload: object) -> Request:
        """Check the request shape; raise ``ToolDispatchError`` when it is malformed."""
        if not isinstance(payload, dict):
            raise ToolDispatchError("INVALID_REQUEST", "Request must be an object.")
        method = payload.get("method")
        if not isinstance(method, str) or not method:
            raise ToolDispatchError("INVALID_REQUEST", "Request method must be a non-empty string.")
        params = payload.get("params", {})
        if not isinstance(params, dict):
            raise ToolDispatchError("INVALID_PARAMS", "Request params must be an object.")
        if method != CALL_METHOD:
            return Request(request_id, method, tool=method, arguments=params)

        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise ToolDispatchError(
                "INVALID_PARAMS", "tools/call params.name must be a non-empty string."
            )
        arguments = params.get("arguments", {})
        if not isinstance(arguments, dict):
            raise ToolDispatchError(
                "INVALID_PARAMS", "tools/call params.arguments must be an object."
            )
        return Request(request_id, method, tool=name, arguments=arguments)

    def request_id_for(self, raw_id: object) -> str:
        """Use the caller's id when it is a non-empty string or an integer."""
        if isinstance(raw_id, bool):
            return self.next_request_id()
        if isinstance(raw_id, int) or (isinstance(raw_id, str) and raw_id):
            return str(raw_id)
        return self.next_request_id()

    def next_request_id(self) -> str:
        self._generated_ids += 1
        return f"req-{self._generated_ids:06d}"

    def _dispatch(self, request: Request) -> dict[str, object]:
        try:
            result = self._registry.dispatch(request.tool, request.arguments)
        except ToolDispatchError as error:
            return error_envelope(request.request_id, error.code, error.message)
        except SnapshotSchemaUnsupportedError as error:
            message = (
                f"Stored snapshot schema {error.found} is unsupported; expected "
                f"{error.expected}. Run decide.run with force=true."
            )
            return error_envelope(request.request_id, "SNAPSHOT_SCHEMA_UNSUPPORTED", message)
        except Exception:
            logger.exception("Tool %s failed", request.tool)
            return error_envelope(
                request.request_id, "INTERNAL_ERROR", "Unhandled server error while executing tool."
            )
        warnings = _pop_warnings(result)
        return ok_envelope(request.request_id, result, warnings)

    def _audit(
        self,
        request_id: str,
        tool: str,
        arguments: dict[str, object],
        envelope: dict[str, object],
    ) -> None:
        error = envelope.get("error")
        code = error.get("code") if isinstance(error, dict) else None
        self._engine.audit.record(
            "tool_call",
            ok=envelope.get("ok") is True,
            error_code=code if isinstance(code, str) else None,
            metadata={
                "request_id": request_id,
                "tool": tool,
                "arguments": sanitize_arguments(arguments),
            },
        )


def ok_envelope(
    request_id: str, result: dict[str, object], warnings: list[str] | None = None
) -> dict[str, object]:
    return {"request_id": request_id, "ok": True, "result": result, "warnings": warnings or []}


def error_envelope(request_id: str, code: str, message: str) -> dict[str, object]:
    return {
        "request_id": request_id,
        "ok": False,
        "result": {},
        "warnings": [],
        "error": {"code": code, "message": message},
    }


def create_server(
    project_root: str | Path = ".",
    overrides: StartupOverrides | None = None,
    analyzer: Analyzer | None = None,
) -> StdioServer:
    """Load configuration for ``project_root`` and build a server around a new engine."""
    config = load_effective_config(Path(project_root).resolve(), overrides)
    return StdioServer(DecisionEngine(config, analyzer=analyzer))


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    overrides = StartupOverrides(
        data_dir=Path(args.data_dir).resolve() if args.data_dir is not None else None,
        confidence_threshold=args.confidence_threshold,
        analyzer_timeout_seconds=args.analyzer_timeout,
        max_workers=args.max_workers,
    )
    try:
        server = create_server(project_root=args.project_root, overrides=overrides)
    except ConfigurationError as error:
        parser.error(str(error))
    server.serve(in_stream=sys.stdin, out_stream=sys.stdout)
    return 0


def _pop_warnings(result: dict[str, object]) -> list[str]:
    """Move tool-provided ``__warnings__`` out of the result body."""
    raw = result.pop("__warnings__", None)
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, str)]
