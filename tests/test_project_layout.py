from __future__ import annotations

from pathlib import Path


def test_required_package_paths_exist() -> None:
    root = Path(__file__).resolve().parents[1]
    required = [
        "src/instant_decision/server.py",
        "src/instant_decision/engine.py",
        "src/instant_decision/config.py",
        "src/instant_decision/tools/__init__.py",
        "src/instant_decision/changes/__init__.py",
        "src/instant_decision/cache/__init__.py",
        "src/instant_decision/classify/__init__.py",
        "src/instant_decision/scoring/__init__.py",
        "src/instant_decision/evidence/__init__.py",
        "src/instant_decision/logging/__init__.py",
        "src/instant_decision/security/__init__.py",
    ]
    for rel in required:
        assert (root / rel).exists(), rel
