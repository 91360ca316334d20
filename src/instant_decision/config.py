"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILE_NAME = "instant_decision.toml"
DATA_DIR_NAME = ".instant_decision"

DEFAULT_CONFIDENCE_THRESHOLD = 0.8
DEFAULT_ANALYZER_TIMEOUT_SECONDS = 30.0
DEFAULT_ANALYZER_COST_PER_UNIT = 10
DEFAULT_MAX_WORKERS = 4
MAX_WORKERS_CAP = 64

HOUR_SECONDS = 60 * 60
DEFAULT_PATTERN_TTL_SECONDS = 24 * HOUR_SECONDS
DEFAULT_HEURISTIC_TTL_SECONDS = 12 * HOUR_SECONDS
DEFAULT_ANALYZER_TTL_SECONDS = 6 * HOUR_SECONDS

DEFAULT_INCLUDE_EXTENSIONS = (
    ".py",
    ".js",
    ".jsx",
    ".ts",
    ".tsx",
    ".cs",
    ".java",
    ".json",
    ".yml",
    ".yaml",
    ".toml",
    ".md",
)
# Files matched by exact name, for build and environment files without a
# listed extension.
DEFAULT_INCLUDE_NAMES = ("Dockerfile", ".env", "requirements.txt")
DEFAULT_EXCLUDE_GLOBS = (
    "**/.git/**",
    "**/.instant_decision/**",
    "**/node_modules/**",
    "**/__pycache__/**",
    "**/.venv/**",
    "**/build/**",
    "**/dist/**",
)


class ConfigurationError(ValueError):
    """Raised at startup when a configuration value is invalid."""


@dataclass(slots=True, frozen=True)
class ClassifierConfig:
    """Escalation settings for the tiered classifier."""

    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    analyzer_timeout_seconds: float = DEFAULT_ANALYZER_TIMEOUT_SECONDS
    analyzer_cost_per_unit: int = DEFAULT_ANALYZER_COST_PER_UNIT
    max_workers: int = DEFAULT_MAX_WORKERS


@dataclass(slots=True, frozen=True)
class CacheTtlConfig:
    """Per-tier time-to-live for decisions written into the cache."""

    pattern_ttl_seconds: float = DEFAULT_PATTERN_TTL_SECONDS
    heuristic_ttl_seconds: float = DEFAULT_HEURISTIC_TTL_SECONDS
    analyzer_ttl_seconds: float = DEFAULT_ANALYZER_TTL_SECONDS


@dataclass(slots=True, frozen=True)
class MagnitudeThresholds:
    """Byte and line deltas separating minor, moderate and major changes."""

    minor_bytes: int = 1_000
    major_bytes: int = 5_000
    minor_lines: int = 5
    major_lines: int = 50


@dataclass(slots=True, frozen=True)
class DiscoveryConfig:
    """Deterministic path discovery settings."""

    include_extensions: tuple[str, ...] = DEFAULT_INCLUDE_EXTENSIONS
    include_names: tuple[str, ...] = DEFAULT_INCLUDE_NAMES
    exclude_globs: tuple[str, ...] = DEFAULT_EXCLUDE_GLOBS


@dataclass(slots=True, frozen=True)
class EngineConfig:
    """Fully merged engine configuration."""

    project_root: Path
    data_dir: Path
    classifier: ClassifierConfig
    cache: CacheTtlConfig
    changes: MagnitudeThresholds
    discovery: DiscoveryConfig

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot for tool responses."""
        return {
            "project_root": str(self.project_root),
            "data_dir": str(self.data_dir),
            "classifier": {
                "confidence_threshold": self.classifier.confidence_threshold,
                "analyzer_timeout_seconds": self.classifier.analyzer_timeout_seconds,
                "analyzer_cost_per_unit": self.classifier.analyzer_cost_per_unit,
                "max_workers": self.classifier.max_workers,
            },
            "cache": {
                "pattern_ttl_seconds": self.cache.pattern_ttl_seconds,
                "heuristic_ttl_seconds": self.cache.heuristic_ttl_seconds,
                "analyzer_ttl_seconds": self.cache.analyzer_ttl_seconds,
            },
            "changes": {
                "minor_bytes": self.changes.minor_bytes,
                "major_bytes": self.changes.major_bytes,
                "minor_lines": self.changes.minor_lines,
                "major_lines": self.changes.major_lines,
            },
            "discovery": {
                "include_extensions": list(self.discovery.include_extensions),
                "include_names": list(self.discovery.include_names),
                "exclude_globs": list(self.discovery.exclude_globs),
            },
        }


@dataclass(slots=True, frozen=True)
class StartupOverrides:
    """Optional startup overrides applied at highest precedence."""

    data_dir: Path | None = None
    confidence_threshold: float | None = None
    analyzer_timeout_seconds: float | None = None
    max_workers: int | None = None


def default_config(project_root: Path) -> EngineConfig:
    """Build default config for a given project root."""
    resolved_root = project_root.resolve()
    return EngineConfig(
        project_root=resolved_root,
        data_dir=resolved_root / DATA_DIR_NAME,
        classifier=ClassifierConfig(),
        cache=CacheTtlConfig(),
        changes=MagnitudeThresholds(),
        discovery=DiscoveryConfig(),
    )


def load_config_file(project_root: Path) -> dict[str, object]:
    """Load optional instant_decision.toml from the project root."""
    config_path = project_root / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    try:
        with config_path.open("rb") as handle:
            payload = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as error:
        raise ConfigurationError(f"{CONFIG_FILE_NAME} is not valid TOML: {error}") from error
    if not isinstance(payload, dict):
        raise ConfigurationError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ConfigurationError(f"Config section '{key}' must be a table.")
    return value


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ConfigurationError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ConfigurationError(
                f"Config field '{section}.{field}' must contain only strings."
            )
        output.append(item)
    return tuple(output)


def merge_config(
    base: EngineConfig, file_payload: dict[str, object], overrides: StartupOverrides
) -> EngineConfig:
    """Merge defaults, config file, then startup overrides."""
    classifier_payload = _get_table(file_payload, "classifier")
    cache_payload = _get_table(file_payload, "cache")
    changes_payload = _get_table(file_payload, "changes")
    discovery_payload = _get_table(file_payload, "discovery")

    classifier = ClassifierConfig(
        confidence_threshold=_optional_fraction(
            classifier_payload.get("confidence_threshold"),
            "classifier.confidence_threshold",
            base.classifier.confidence_threshold,
        ),
        analyzer_timeout_seconds=_optional_positive_number(
            classifier_payload.get("analyzer_timeout_seconds"),
            "classifier.analyzer_timeout_seconds",
            base.classifier.analyzer_timeout_seconds,
        ),
        analyzer_cost_per_unit=_optional_positive_int_with_cap(
            classifier_payload.get("analyzer_cost_per_unit"),
            "classifier.analyzer_cost_per_unit",
            base.classifier.analyzer_cost_per_unit,
            cap=None,
        ),
        max_workers=_optional_positive_int_with_cap(
            classifier_payload.get("max_workers"),
            "classifier.max_workers",
            base.classifier.max_workers,
            MAX_WORKERS_CAP,
        ),
    )
    cache = CacheTtlConfig(
        pattern_ttl_seconds=_optional_positive_number(
            cache_payload.get("pattern_ttl_seconds"),
            "cache.pattern_ttl_seconds",
            base.cache.pattern_ttl_seconds,
        ),
        heuristic_ttl_seconds=_optional_positive_number(
            cache_payload.get("heuristic_ttl_seconds"),
            "cache.heuristic_ttl_seconds",
            base.cache.heuristic_ttl_seconds,
        ),
        analyzer_ttl_seconds=_optional_positive_number(
            cache_payload.get("analyzer_ttl_seconds"),
            "cache.analyzer_ttl_seconds",
            base.cache.analyzer_ttl_seconds,
        ),
    )
    changes = MagnitudeThresholds(
        **{
            name: _optional_positive_int_with_cap(
                changes_payload.get(name),
                f"changes.{name}",
                getattr(base.changes, name),
                None,
            )
            for name in ("minor_bytes", "major_bytes", "minor_lines", "major_lines")
        }
    )

    include_extensions = base.discovery.include_extensions
    if "include_extensions" in discovery_payload:
        include_extensions = _tuple_of_strings(
            discovery_payload["include_extensions"], "discovery", "include_extensions"
        )
    include_names = base.discovery.include_names
    if "include_names" in discovery_payload:
        include_names = _tuple_of_strings(
            discovery_payload["include_names"], "discovery", "include_names"
        )
    exclude_globs = base.discovery.exclude_globs
    if "exclude_globs" in discovery_payload:
        exclude_globs = _tuple_of_strings(
            discovery_payload["exclude_globs"], "discovery", "exclude_globs"
        )

    merged = EngineConfig(
        project_root=base.project_root,
        data_dir=base.data_dir,
        classifier=classifier,
        cache=cache,
        changes=changes,
        discovery=DiscoveryConfig(
            include_extensions=include_extensions,
            include_names=include_names,
            exclude_globs=exclude_globs,
        ),
    )
    return apply_startup_overrides(merged, overrides)


def apply_startup_overrides(config: EngineConfig, overrides: StartupOverrides) -> EngineConfig:
    """Apply startup overrides at highest precedence, then validate."""
    classifier = ClassifierConfig(
        confidence_threshold=_optional_fraction(
            overrides.confidence_threshold,
            "overrides.confidence_threshold",
            config.classifier.confidence_threshold,
        ),
        analyzer_timeout_seconds=_optional_positive_number(
            overrides.analyzer_timeout_seconds,
            "overrides.analyzer_timeout_seconds",
            config.classifier.analyzer_timeout_seconds,
        ),
        analyzer_cost_per_unit=config.classifier.analyzer_cost_per_unit,
        max_workers=_optional_positive_int_with_cap(
            overrides.max_workers,
            "overrides.max_workers",
            config.classifier.max_workers,
            MAX_WORKERS_CAP,
        ),
    )
    data_dir = overrides.data_dir or config.data_dir
    merged = EngineConfig(
        project_root=config.project_root,
        data_dir=data_dir.resolve(),
        classifier=classifier,
        cache=config.cache,
        changes=config.changes,
        discovery=config.discovery,
    )
    validate_config(merged)
    return merged


def validate_config(config: EngineConfig) -> None:
    """Check cross-field invariants that single-field parsing cannot see."""
    if config.cache.analyzer_ttl_seconds >= config.cache.pattern_ttl_seconds:
        raise ConfigurationError(
            "Config field 'cache.analyzer_ttl_seconds' must be shorter than "
            "'cache.pattern_ttl_seconds'."
        )
    if config.changes.minor_bytes > config.changes.major_bytes:
        raise ConfigurationError(
            "Config field 'changes.minor_bytes' must be <= 'changes.major_bytes'."
        )
    if config.changes.minor_lines > config.changes.major_lines:
        raise ConfigurationError(
            "Config field 'changes.minor_lines' must be <= 'changes.major_lines'."
        )


def load_effective_config(
    project_root: Path, overrides: StartupOverrides | None = None
) -> EngineConfig:
    """Load effective config using merge order defaults -> config file -> overrides."""
    resolved_root = project_root.resolve()
    base = default_config(resolved_root)
    payload = load_config_file(resolved_root)
    return merge_config(base, payload, overrides or StartupOverrides())


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _optional_fraction(value: object, name: str, default: float) -> float:
    if value is None:
        return default
    if not _is_number(value) or not 0.0 < float(value) <= 1.0:
        raise ConfigurationError(f"Config field '{name}' must be a number in (0, 1].")
    return float(value)


def _optional_positive_number(value: object, name: str, default: float) -> float:
    if value is None:
        return default
    if not _is_number(value) or float(value) <= 0:
        raise ConfigurationError(f"Config field '{name}' must be a positive number.")
    return float(value)


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise ConfigurationError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ConfigurationError(f"Config field '{name}' must be <= {cap}.")
    return value
