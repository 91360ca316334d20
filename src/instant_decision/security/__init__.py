"""Project-root confinement for caller supplied paths."""

from .paths import PathBlockedError, confine_to_root

__all__ = ["PathBlockedError", "confine_to_root"]
