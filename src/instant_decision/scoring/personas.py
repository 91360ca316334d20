"""Default behavioral persona table.

Weights: file types 3, trigger keywords 5, technical terms 2, task type 4,
error patterns 3, explicit override 10, recent use 1.
"""

from __future__ import annotations

from instant_decision.scoring.models import (
    ERROR_PATTERN,
    EXTENSION,
    KEYWORD,
    OVERRIDE,
    RECENCY,
    TASK_TYPE,
    Category,
    ScoringRule,
)

FILE_TYPE_WEIGHT = 3.0
TRIGGER_WEIGHT = 5.0
TERM_WEIGHT = 2.0
TASK_WEIGHT = 4.0
ERROR_WEIGHT = 3.0
OVERRIDE_WEIGHT = 10.0
RECENCY_WEIGHT = 1.0


def persona(name: str, description: str, *rules: ScoringRule) -> Category:
    """Build a category that also honors explicit overrides and recent use."""
    return Category(
        name=name,
        description=description,
        rules=(
            *rules,
            ScoringRule(f"{name}_override", OVERRIDE, OVERRIDE_WEIGHT, (name,)),
            ScoringRule(f"{name}_recent", RECENCY, RECENCY_WEIGHT, (name,)),
        ),
    )


DEFAULT_PERSONAS: tuple[Category, ...] = (
    persona(
        "architect",
        "systems design and long-term structure",
        ScoringRule("config_files", EXTENSION, FILE_TYPE_WEIGHT, (".yml", ".yaml", ".json")),
        ScoringRule("design_keywords", KEYWORD, TRIGGER_WEIGHT, ("design", "architecture")),
        ScoringRule(
            "devops_terms",
            KEYWORD,
            TERM_WEIGHT,
            ("docker", "kubernetes", "deployment", "ci", "cd", "pipeline"),
        ),
        ScoringRule("design_task", TASK_TYPE, TASK_WEIGHT, ("development", "architecture")),
        ScoringRule(
            "scaling_needs", KEYWORD, FILE_TYPE_WEIGHT, ("scale", "scalability", "traffic")
        ),
    ),
    persona(
        "frontend",
        "user interface and components",
        ScoringRule(
            "ui_files",
            EXTENSION,
            FILE_TYPE_WEIGHT,
            (".tsx", ".jsx", ".css", ".scss", ".html", ".vue", ".js", ".ts"),
        ),
        ScoringRule(
            "ui_terms",
            KEYWORD,
            TERM_WEIGHT,
            ("react", "vue", "angular", "css", "html", "ui", "ux", "component"),
        ),
        ScoringRule("build_task", TASK_TYPE, TASK_WEIGHT, ("development",)),
    ),
    persona(
        "backend",
        "services, APIs and data",
        ScoringRule("server_files", EXTENSION, FILE_TYPE_WEIGHT, (".js", ".ts", ".py", ".sql")),
        ScoringRule(
            "server_terms",
            KEYWORD,
            TERM_WEIGHT,
            ("api", "server", "database", "sql", "node", "express", "fastify"),
        ),
        ScoringRule("build_task", TASK_TYPE, TASK_WEIGHT, ("development",)),
    ),
    persona(
        "analyzer",
        "root cause investigation",
        ScoringRule("bug_keywords", KEYWORD, TRIGGER_WEIGHT, ("bug", "error", "issue")),
        ScoringRule("debug_task", TASK_TYPE, TASK_WEIGHT, ("debugging",)),
        ScoringRule(
            "runtime_errors",
            ERROR_PATTERN,
            ERROR_WEIGHT,
            ("module_not_found", "undefined_reference", "type_error", "syntax_error"),
        ),
    ),
    persona(
        "security",
        "threat modeling and vulnerabilities",
        ScoringRule(
            "security_keywords", KEYWORD, TRIGGER_WEIGHT, ("secure", "auth", "vulnerability")
        ),
        ScoringRule(
            "security_terms",
            KEYWORD,
            TERM_WEIGHT,
            ("security", "crypto", "hash", "token", "password"),
        ),
        ScoringRule("security_task", TASK_TYPE, TASK_WEIGHT, ("security",)),
        ScoringRule("access_errors", ERROR_PATTERN, ERROR_WEIGHT, ("permission_denied",)),
    ),
    persona(
        "mentor",
        "explanation and documentation",
        ScoringRule("doc_files", EXTENSION, FILE_TYPE_WEIGHT, (".md", ".rst")),
        ScoringRule(
            "teaching_keywords", KEYWORD, TRIGGER_WEIGHT, ("explain", "document", "tutorial")
        ),
        ScoringRule("education_task", TASK_TYPE, TASK_WEIGHT, ("education",)),
    ),
    persona(
        "refactorer",
        "code quality and technical debt",
        ScoringRule("cleanup_keywords", KEYWORD, TRIGGER_WEIGHT, ("refactor", "clean")),
        ScoringRule("debt_terms", KEYWORD, TERM_WEIGHT, ("maintainable", "debt", "duplication")),
        ScoringRule("maintenance_task", TASK_TYPE, TASK_WEIGHT, ("maintenance",)),
    ),
    persona(
        "performance",
        "optimization and bottlenecks",
        ScoringRule("speed_keywords", KEYWORD, TRIGGER_WEIGHT, ("optimize", "performance")),
        ScoringRule(
            "speed_terms", KEYWORD, TERM_WEIGHT, ("cache", "speed", "memory", "cpu", "slow")
        ),
        ScoringRule("optimization_task", TASK_TYPE, TASK_WEIGHT, ("optimization",)),
        ScoringRule("resource_errors", ERROR_PATTERN, ERROR_WEIGHT, ("timeout", "out_of_memory")),
    ),
    persona(
        "qa",
        "testing and quality assurance",
        ScoringRule(
            "test_files",
            EXTENSION,
            FILE_TYPE_WEIGHT,
            (".test.js", ".spec.js", ".test.ts", ".spec.ts"),
        ),
        ScoringRule(
            "test_terms",
            KEYWORD,
            TERM_WEIGHT,
            ("test", "testing", "jest", "mocha", "cypress", "coverage", "quality"),
        ),
        ScoringRule("quality_task", TASK_TYPE, TASK_WEIGHT, ("debugging", "testing")),
        ScoringRule("test_errors", ERROR_PATTERN, ERROR_WEIGHT, ("test_failure",)),
    ),
)
