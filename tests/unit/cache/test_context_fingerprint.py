from __future__ import annotations

from instant_decision.cache import canonicalize, context_fingerprint


def test_fingerprint_ignores_key_order_at_every_depth() -> None:
    first = {"path": "a.py", "meta": {"kind": "added", "size": 3}}
    second = {"meta": {"size": 3, "kind": "added"}, "path": "a.py"}

    assert context_fingerprint(first) == context_fingerprint(second)


def test_fingerprint_differs_when_a_value_differs() -> None:
    assert context_fingerprint({"path": "a.py"}) != context_fingerprint({"path": "b.py"})


def test_sets_are_order_independent_but_lists_are_not() -> None:
    assert context_fingerprint({"tags": {"b", "a"}}) == context_fingerprint({"tags": {"a", "b"}})
    assert context_fingerprint({"tags": ["b", "a"]}) != context_fingerprint({"tags": ["a", "b"]})


def test_string_context_is_hashed_directly() -> None:
    digest = context_fingerprint("pattern:json")

    assert len(digest) == 64
    assert digest == context_fingerprint("pattern:json")
    assert digest != context_fingerprint({"value": "pattern:json"})


def test_canonicalize_sorts_mapping_keys() -> None:
    assert list(canonicalize({"b": 1, "a": {"d": 2, "c": 3}})) == ["a", "b"]
    assert canonicalize((1, 2)) == [1, 2]
