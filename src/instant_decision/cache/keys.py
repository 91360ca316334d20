"""Context fingerprints used as decision cache keys."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping


def canonicalize(value: object) -> object:
    """Return a structure whose JSON form does not depend on construction order."""
    if isinstance(value, Mapping):
        return {str(key): canonicalize(value[key]) for key in sorted(value, key=str)}
    if isinstance(value, (set, frozenset)):
        items = [canonicalize(item) for item in value]
        return sorted(items, key=lambda item: json.dumps(item, sort_keys=True, default=str))
    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]
    return value


def context_fingerprint(context: Mapping[str, object] | str) -> str:
    """Hash a decision context into a stable SHA-256 hex digest.

    Mappings are canonicalized with sorted keys at every depth, so contexts
    that differ only in key order share one fingerprint. Strings hash as-is.
    """
    if isinstance(context, str):
        payload = context
    else:
        payload = json.dumps(
            canonicalize(context),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            default=str,
        )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
