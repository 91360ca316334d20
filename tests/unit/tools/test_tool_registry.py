from __future__ import annotations

import pytest

from instant_decision.tools import ToolDispatchError, ToolRegistry


def _echo(arguments: dict[str, object]) -> dict[str, object]:
    return {"echo": arguments}


def test_registry_preserves_registration_order() -> None:
    registry = ToolRegistry()
    registry.register("b.second", _echo, "second")
    registry.register("a.first", _echo, "first")

    assert registry.names() == ("b.second", "a.first")
    assert registry.describe() == [
        {"name": "b.second", "summary": "second"},
        {"name": "a.first", "summary": "first"},
    ]


def test_duplicate_registration_is_rejected() -> None:
    registry = ToolRegistry()
    registry.register("decide.status", _echo)

    with pytest.raises(ValueError, match="decide.status"):
        registry.register("decide.status", _echo)


def test_dispatch_routes_arguments() -> None:
    registry = ToolRegistry()
    registry.register("decide.echo", _echo)

    assert registry.dispatch("decide.echo", {"x": 1}) == {"echo": {"x": 1}}


def test_unknown_tool_raises_dispatch_error() -> None:
    with pytest.raises(ToolDispatchError) as excinfo:
        ToolRegistry().dispatch("decide.nope", {})

    assert excinfo.value.code == "UNKNOWN_TOOL"
    assert excinfo.value.message == "Unknown tool: decide.nope"
