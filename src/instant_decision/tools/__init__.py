"""Tool registry and built-in tools."""

from .builtin import register_builtin_tools
from .registry import ToolDispatchError, ToolHandler, ToolRegistry, ToolSpec

__all__ = [
    "ToolDispatchError",
    "ToolHandler",
    "ToolRegistry",
    "ToolSpec",
    "register_builtin_tools",
]
