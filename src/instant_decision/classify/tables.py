"""Default ordered rule tables for the classifier tiers.

Signature and heuristic order is part of the contract: the first match wins,
so more specific entries come first.
"""

from __future__ import annotations

import re
from types import MappingProxyType

from instant_decision.classify.models import (
    CATCH_ALL_CONFIDENCE,
    UNKNOWN_DECISION,
    ExactEntry,
    HeuristicRule,
    PatternSignature,
)

DEFAULT_EXACT_TABLE = MappingProxyType(
    {
        "package.json": ExactEntry("update_dependencies", "dependency manifest"),
        "pyproject.toml": ExactEntry("update_dependencies", "dependency manifest"),
        "requirements.txt": ExactEntry("update_dependencies", "dependency manifest"),
        "README.md": ExactEntry("skip", "user managed documentation"),
        "tsconfig.json": ExactEntry("update_config", "compiler configuration"),
        ".env": ExactEntry("security_check", "environment secrets"),
        "docker-compose.yml": ExactEntry("update_deployment", "deployment manifest"),
        "Dockerfile": ExactEntry("update_deployment", "container build"),
    }
)

DEFAULT_SIGNATURES: tuple[PatternSignature, ...] = (
    PatternSignature(
        label="test_file",
        decision="update_test_docs",
        path_pattern=re.compile(
            r"(^|/)(tests?/|test_[^/]*\.py$|[^/]*_test\.py$|[^/]*\.(test|spec)\.[jt]sx?$)"
        ),
    ),
    PatternSignature(
        label="react_component",
        decision="update_component_docs",
        path_pattern=re.compile(r"\.[jt]sx?$"),
        content_pattern=re.compile(
            r"extends\s+(React\.)?(Pure)?Component|export\s+default\s+function\s+[A-Z]"
        ),
    ),
    PatternSignature(
        label="unity_script",
        decision="update_script_docs",
        path_pattern=re.compile(r"\.cs$"),
        content_pattern=re.compile(r"MonoBehaviour|using\s+UnityEngine"),
    ),
    PatternSignature(
        label="api_endpoint",
        decision="update_api_docs",
        path_pattern=re.compile(r"\.(js|ts|py)$"),
        content_pattern=re.compile(
            r"\bapp\.(get|post|put|delete|patch)\(|\brouter\.|@(app|router)\.(route|get|post)"
        ),
    ),
    PatternSignature(
        label="database_model",
        decision="update_schema_docs",
        path_pattern=re.compile(r"\.(js|ts|py)$"),
        content_pattern=re.compile(r"models\.Model\b|\bSchema\(|\bmodel\(|declarative_base\("),
    ),
    PatternSignature(
        label="config_file",
        decision="update_config_docs",
        path_pattern=re.compile(r"\.(json|ya?ml|toml|ini|cfg)$"),
    ),
    PatternSignature(
        label="documentation",
        decision="skip",
        path_pattern=re.compile(r"(?i)(\.md$|\.rst$|(^|/)readme|(^|/)changelog)"),
    ),
)

DEFAULT_HEURISTICS: tuple[HeuristicRule, ...] = (
    HeuristicRule(
        decision="update_component_docs",
        rationale="file in components directory",
        directory_markers=("components",),
    ),
    HeuristicRule(
        decision="update_service_docs",
        rationale="file in services/api directory",
        directory_markers=("services", "api"),
    ),
    HeuristicRule(
        decision="update_code_docs",
        rationale="JavaScript/TypeScript source",
        extensions=(".js", ".jsx", ".ts", ".tsx"),
    ),
    HeuristicRule(
        decision="update_code_docs",
        rationale="Python source",
        extensions=(".py",),
    ),
    HeuristicRule(
        decision="update_unity_docs",
        rationale="C# source",
        extensions=(".cs",),
    ),
    HeuristicRule(
        decision="update_config_docs",
        rationale="configuration file",
        extensions=(".json", ".yml", ".yaml", ".toml"),
    ),
    HeuristicRule(
        decision=UNKNOWN_DECISION,
        rationale="no heuristic applies",
        confidence=CATCH_ALL_CONFIDENCE,
    ),
)
