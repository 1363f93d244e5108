"""Pre-flight checks for mx config files and runtime availability."""

from dataclasses import dataclass, field
from pathlib import Path

from mx_runner.config import (
    Config,
    config_from_dict,
    read_config_document,
    runtime_missing_message,
)
from mx_runner.errors import ConfigError
from mx_runner.logging import get_logger

log = get_logger("validate")

# Top-level keys understood in a config file. Anything else is ignored
# when loading, and reported as a warning here.
KNOWN_CONFIG_KEYS: set[str] = set(Config.__dataclass_fields__.keys())


@dataclass
class ValidationResult:
    """Collects errors and warnings from validation checks."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when no errors were found."""
        return len(self.errors) == 0

    def merge(self, other: "ValidationResult") -> None:
        """Merge another result into this one."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)


def _levenshtein(s1: str, s2: str) -> int:
    """Compute the Levenshtein (edit) distance between two strings."""
    if len(s1) < len(s2):
        return _levenshtein(s2, s1)

    if not s2:
        return len(s1)

    prev_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        curr_row = [i + 1]
        for j, c2 in enumerate(s2):
            cost = 0 if c1 == c2 else 1
            curr_row.append(min(curr_row[j] + 1, prev_row[j + 1] + 1, prev_row[j] + cost))
        prev_row = curr_row

    return prev_row[-1]


def _suggest_key(unknown: str, known: set[str]) -> str | None:
    """Suggest the closest known key if Levenshtein distance <= 2."""
    best: str | None = None
    best_dist = 3
    for k in sorted(known):  # sorted for deterministic results
        d = _levenshtein(unknown, k)
        if d < best_dist:
            best = k
            best_dist = d
    return best


def validate_config_file(config_path: Path) -> ValidationResult:
    """Validate an mx config file.

    Checks:
    - File exists and parses (TOML or YAML)
    - Values have the expected shapes
    - Top-level keys are recognised (unknown keys are warnings)

    Args:
        config_path: Path to the config file.

    Returns:
        ValidationResult with any problems found.
    """
    result = ValidationResult()

    if not config_path.exists():
        result.errors.append(f"Config file does not exist: {config_path}")
        return result

    try:
        data = read_config_document(config_path)
        config_from_dict(data)
    except ConfigError as e:
        result.errors.append(e.message)
        return result

    for key in data:
        if key not in KNOWN_CONFIG_KEYS:
            suggestion = _suggest_key(str(key), KNOWN_CONFIG_KEYS)
            msg = f"Unknown config key '{key}' is ignored"
            if suggestion:
                msg += f" (did you mean '{suggestion}'?)"
            result.warnings.append(msg)

    return result


def validate_runtimes(config: Config) -> ValidationResult:
    """Report every configured runtime whose program is not on PATH."""
    result = ValidationResult()
    for lang, binary in config.missing_runtimes():
        result.errors.append(runtime_missing_message(lang, binary))
    log.info("runtimes checked", runtimes=len(config.runtimes), missing=len(result.errors))
    return result


def format_results(result: ValidationResult) -> str:
    """Format validation results for terminal output."""
    lines: list[str] = []
    if result.errors:
        for e in result.errors:
            lines.append(f"  x {e}")
    if result.warnings:
        if lines:
            lines.append("")
        for w in result.warnings:
            lines.append(f"  ! {w}")
    n_err = len(result.errors)
    n_warn = len(result.warnings)
    err_word = "error" if n_err == 1 else "errors"
    warn_word = "warning" if n_warn == 1 else "warnings"
    lines.append(f"\n{n_err} {err_word}, {n_warn} {warn_word}")
    return "\n".join(lines)
