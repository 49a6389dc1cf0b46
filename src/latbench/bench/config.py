"""Benchmark configuration and suite profile loading.

Handles:
- The immutable per-run configuration (iterations, warmup, timeout,
  memory tracking).
- Validating a configuration before anything is executed.
- Loading suite profiles from YAML files and merging them with CLI
  options.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from latbench.bench.errors import BenchmarkConfigError
from latbench.logging import get_logger

log = get_logger("bench.config")

# Names accepted in mappings, normalised to field names.
_KEY_ALIASES: dict[str, str] = {
    "iterations": "iterations",
    "warmup_iterations": "warmup_iterations",
    "warmupIterations": "warmup_iterations",
    "warmup": "warmup_iterations",
    "timeout_ms": "timeout_ms",
    "timeoutMillis": "timeout_ms",
    "timeout": "timeout_ms",
    "memory_tracking": "memory_tracking",
    "memoryTracking": "memory_tracking",
}


# ---------------------------------------------------------------------------
# BenchmarkConfig
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BenchmarkConfig:
    """Configuration for one benchmark run."""

    iterations: int = 1000  # Measured attempts
    warmup_iterations: int = 100  # Untimed attempts run first
    timeout_ms: float = 30000.0  # Budget for the measured phase
    memory_tracking: bool = False

    @property
    def total_iterations(self) -> int:
        """Upper bound on calls to the operation (warmup + measured)."""
        return self.warmup_iterations + self.iterations

    def replace(self, **overrides: Any) -> BenchmarkConfig:
        """Return a copy with *overrides* applied.

        ``None`` values are ignored, so unset CLI options can be passed
        straight through.
        """
        changes = {k: v for k, v in _normalise_keys(overrides).items() if v is not None}
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "iterations": self.iterations,
            "warmup_iterations": self.warmup_iterations,
            "timeout_ms": self.timeout_ms,
            "memory_tracking": self.memory_tracking,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BenchmarkConfig:
        """Build a config from a mapping.

        Accepts field names, their camelCase spellings
        (``warmupIterations``, ``timeoutMillis``, ``memoryTracking``) and
        the short forms ``warmup`` / ``timeout``.

        Raises:
            BenchmarkConfigError: If the mapping has unknown keys.
        """
        return cls(**_normalise_keys(data))


def _normalise_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Map accepted key spellings to field names."""
    unknown = sorted(k for k in data if k not in _KEY_ALIASES)
    if unknown:
        raise BenchmarkConfigError(
            f"Unknown configuration key(s): {', '.join(unknown)}. "
            f"Valid keys: iterations, warmup_iterations, timeout_ms, memory_tracking"
        )
    return {_KEY_ALIASES[k]: v for k, v in data.items()}


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: BenchmarkConfig) -> list[ValidationError]:
    """Validate a benchmark configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if not _is_int(config.iterations) or config.iterations < 1:
        errors.append(
            ValidationError(
                field="iterations",
                message=f"Iterations must be a positive integer (got {config.iterations!r}).",
            )
        )

    if not _is_int(config.warmup_iterations) or config.warmup_iterations < 0:
        errors.append(
            ValidationError(
                field="warmup_iterations",
                message=(
                    f"Warmup iterations must be a non-negative integer "
                    f"(got {config.warmup_iterations!r})."
                ),
            )
        )

    if not _is_number(config.timeout_ms) or not config.timeout_ms > 0:
        errors.append(
            ValidationError(
                field="timeout_ms",
                message=f"Timeout must be a positive number (got {config.timeout_ms!r}).",
            )
        )

    if not isinstance(config.memory_tracking, bool):
        errors.append(
            ValidationError(
                field="memory_tracking",
                message=f"Memory tracking must be a boolean (got {config.memory_tracking!r}).",
            )
        )

    # A single measured iteration gives min == max == average.
    if _is_int(config.iterations) and config.iterations == 1:
        errors.append(
            ValidationError(
                field="iterations",
                message="A single iteration gives no distribution; min, max and average coincide.",
                severity="warning",
            )
        )

    return errors


def check_config(config: BenchmarkConfig) -> None:
    """Raise if *config* has fatal validation errors.

    Warnings are logged and do not stop execution.

    Raises:
        BenchmarkConfigError: Listing every fatal error.
    """
    errors = validate_config(config)
    fatal = [e for e in errors if e.severity == "error"]
    for w in errors:
        if w.severity == "warning":
            log.debug("Config warning: %s: %s", w.field, w.message)
    if fatal:
        messages = [f"  {e.field}: {e.message}" for e in fatal]
        raise BenchmarkConfigError("Invalid benchmark configuration:\n" + "\n".join(messages))


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load a suite profile from a YAML file.

    Profile format::

        defaults:
          iterations: 500
          warmup_iterations: 50
        suites:
          hashing:
            iterations: 1000
          sources:
            timeout_ms: 10000
            memory_tracking: true

    Returns:
        The parsed YAML as a dict.

    Raises:
        FileNotFoundError: If the profile does not exist.
        BenchmarkConfigError: If the profile is not valid YAML or not a
            mapping of the expected shape.
    """
    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    try:
        data = yaml.safe_load(profile_path.read_text())
    except yaml.YAMLError as exc:
        raise BenchmarkConfigError(f"Invalid YAML in profile {profile_path}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise BenchmarkConfigError(f"Profile must be a YAML mapping, got {type(data).__name__}")

    for section in ("defaults", "suites"):
        value = data.get(section)
        if value is not None and not isinstance(value, dict):
            raise BenchmarkConfigError(
                f"Profile '{section}' must be a mapping, got {type(value).__name__}"
            )

    for name, suite_data in (data.get("suites") or {}).items():
        if suite_data is not None and not isinstance(suite_data, dict):
            raise BenchmarkConfigError(
                f"Suite '{name}' must be a mapping, got {type(suite_data).__name__}"
            )

    return data


def profile_overrides(
    profile_data: dict[str, Any] | None,
    suite: str,
    *,
    cli_overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Collect the settings a profile and the CLI explicitly set for *suite*.

    Layers, lowest first: the profile's ``defaults`` section, the
    suite's section, then *cli_overrides*.  Keys are normalised to field
    names and None values are dropped, so the result only names what was
    set and can be applied over any per-benchmark defaults.

    Raises:
        BenchmarkConfigError: If a layer has unknown keys.
    """
    profile = profile_data or {}
    suite_data = (profile.get("suites") or {}).get(suite)
    if suite_data:
        log.debug("Applying profile settings for suite '%s': %s", suite, suite_data)

    merged: dict[str, Any] = {}
    for layer in (profile.get("defaults"), suite_data, cli_overrides):
        if layer:
            merged.update({k: v for k, v in _normalise_keys(layer).items() if v is not None})
    return merged


def config_from_profile(
    profile_data: dict[str, Any] | None,
    suite: str,
    *,
    cli_overrides: dict[str, Any] | None = None,
    base: BenchmarkConfig | None = None,
) -> BenchmarkConfig:
    """Resolve the full configuration for one suite.

    Precedence (first wins): CLI overrides, the suite's section, the
    profile's ``defaults`` section, then *base* (built-in defaults when
    omitted).

    Returns:
        The merged BenchmarkConfig (not yet validated).
    """
    config = base or BenchmarkConfig()
    return config.replace(**profile_overrides(profile_data, suite, cli_overrides=cli_overrides))
