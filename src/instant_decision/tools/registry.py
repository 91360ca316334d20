"""Named tool registry used by the STDIO server."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

ToolHandler = Callable[[dict[str, object]], dict[str, object]]


@dataclass(slots=True, frozen=True)
class ToolDispatchError(Exception):
    """Tool failure reported to the caller with an explicit error code."""

    code: str
    message: str


@dataclass(slots=True, frozen=True)
class ToolSpec:
    name: str
    summary: str
    handler: ToolHandler


@dataclass(slots=True)
class ToolRegistry:
    """Tools in registration order."""

    _tools: dict[str, ToolSpec] = field(default_factory=dict)

    def register(self, name: str, handler: ToolHandler, summary: str = "") -> None:
        if name in self._tools:
            raise ValueError(f"Tool already registered: {name}")
        self._tools[name] = ToolSpec(name=name, summary=summary, handler=handler)

    def names(self) -> tuple[str, ...]:
        return tuple(self._tools.keys())

    def describe(self) -> list[dict[str, str]]:
        """Return name and summary of every tool for ``tools/list``."""
        return [{"name": spec.name, "summary": spec.summary} for spec in self._tools.values()]

    def dispatch(self, name: str, arguments: dict[str, object]) -> dict[str, object]:
        spec = self._tools.get(name)
        if spec is None:
            raise ToolDispatchError(code="UNKNOWN_TOOL", message=f"Unknown tool: {name}")
        return spec.handler(arguments)
