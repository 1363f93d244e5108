"""Configuration module for mx-runner.

Contains the runtime variants, the Config dataclass with its language
lookups, config loading from TOML or YAML files, and config building
from CLI arguments.
"""

import argparse
import shutil
import tomllib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import yaml

from .errors import ConfigError
from .logging import get_logger

log = get_logger("config")

# === Constants ===

CONFIG_FILE = Path("mx.toml")
DEFAULT_TASKS_FILE = Path("README.md")
DEFAULT_HEADING_LEVEL = 2
MIN_HEADING_LEVEL = 1
MAX_HEADING_LEVEL = 6

YAML_SUFFIXES = (".yaml", ".yml")


# === Runtimes ===


class ExecutionMode(str, Enum):
    """How a code block's text reaches its runtime."""

    STDIN = "stdin"  # piped to the child's standard input
    FILE = "file"  # written to a temp file whose path is the last argument
    ARG = "arg"  # appended as the last command-line argument

    @classmethod
    def parse(cls, value: str) -> "ExecutionMode":
        """Parse a mode name, case-insensitively."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ConfigError(
                f"Invalid execution mode '{value}' (expected one of: {valid})"
            ) from None


class RuntimeConfig(ABC):
    """Shared accessors for the two runtime shapes."""

    command: str

    @property
    @abstractmethod
    def execution_mode(self) -> ExecutionMode:
        """Mode used to hand code to the runtime."""

    @property
    def program(self) -> str:
        """Leading program token of the command."""
        parts = self.command.split()
        return parts[0] if parts else ""

    @abstractmethod
    def to_value(self) -> str | dict[str, str]:
        """Serializable form used when writing config files."""


@dataclass(frozen=True)
class SimpleRuntime(RuntimeConfig):
    """Bare command string; code is always piped through stdin."""

    command: str

    @property
    def execution_mode(self) -> ExecutionMode:
        return ExecutionMode.STDIN

    def to_value(self) -> str:
        return self.command


@dataclass(frozen=True)
class DetailedRuntime(RuntimeConfig):
    """Command with an explicit execution mode."""

    command: str
    mode: ExecutionMode = ExecutionMode.STDIN

    @property
    def execution_mode(self) -> ExecutionMode:
        return self.mode

    def to_value(self) -> dict[str, str]:
        return {"command": self.command, "execution_mode": self.mode.value}


def _check_command(lang: str, command: object) -> str:
    if not isinstance(command, str) or not command.strip():
        raise ConfigError(f"Runtime for language '{lang}' must have a non-empty command")
    return command


def parse_runtime(lang: str, value: object) -> RuntimeConfig:
    """Build a runtime from its file representation.

    The bare string shape is tried first, then the detailed
    ``{command, execution_mode}`` mapping.
    """
    if isinstance(value, str):
        return SimpleRuntime(_check_command(lang, value))

    if isinstance(value, dict):
        command = _check_command(lang, value.get("command"))
        mode = value.get("execution_mode", ExecutionMode.STDIN.value)
        if not isinstance(mode, str):
            raise ConfigError(f"Execution mode for language '{lang}' must be a string")
        return DetailedRuntime(command, ExecutionMode.parse(mode))

    raise ConfigError(
        f"Runtime for language '{lang}' must be a string or a table with a 'command' key"
    )


def default_runtimes() -> dict[str, RuntimeConfig]:
    """Runtimes available with zero configuration."""
    go = DetailedRuntime("go run", ExecutionMode.FILE)
    return {
        "bash": SimpleRuntime("bash"),
        "sh": SimpleRuntime("sh"),
        "python": SimpleRuntime("python3"),
        "ruby": SimpleRuntime("ruby"),
        "node": SimpleRuntime("node"),
        "javascript": SimpleRuntime("node"),
        "js": SimpleRuntime("node"),
        "go": go,
        "golang": go,
        "php": SimpleRuntime("php"),
        "perl": SimpleRuntime("perl"),
        "jq": SimpleRuntime("jq"),
        "mq": DetailedRuntime("mq", ExecutionMode.ARG),
    }


def runtime_missing_message(lang: str, binary: str) -> str:
    return f"Runtime '{binary}' for language '{lang}' not found in PATH"


def check_heading_level(level: object) -> int:
    """Return ``level`` if it is a valid heading depth, else raise ConfigError."""
    if (
        isinstance(level, bool)
        or not isinstance(level, int)
        or not MIN_HEADING_LEVEL <= level <= MAX_HEADING_LEVEL
    ):
        raise ConfigError(
            f"Heading level must be an integer between {MIN_HEADING_LEVEL} "
            f"and {MAX_HEADING_LEVEL}, got {level!r}"
        )
    return level


# === Config ===


@dataclass
class Config:
    """Language runtimes and the heading depth that marks a task."""

    runtimes: dict[str, RuntimeConfig] = field(default_factory=default_runtimes)
    heading_level: int = DEFAULT_HEADING_LEVEL

    def __post_init__(self):
        check_heading_level(self.heading_level)

    def get_runtime(self, lang: str) -> str | None:
        """Command string for a language, or None if unmapped."""
        runtime = self.runtimes.get(lang)
        return runtime.command if runtime else None

    def get_execution_mode(self, lang: str) -> ExecutionMode:
        """Configured execution mode; STDIN for unmapped languages."""
        runtime = self.runtimes.get(lang)
        return runtime.execution_mode if runtime else ExecutionMode.STDIN

    def has_runtime(self, lang: str) -> bool:
        return lang in self.runtimes

    def missing_runtimes(self) -> list[tuple[str, str]]:
        """(lang, program) pairs whose program is not on PATH, sorted by language."""
        missing = []
        for lang, runtime in sorted(self.runtimes.items()):
            binary = runtime.program or runtime.command
            if shutil.which(binary) is None:
                missing.append((lang, binary))
        return missing

    def validate_runtimes(self) -> None:
        """Check that every configured program is on PATH.

        Raises:
            ConfigError: For the first runtime whose program cannot be found.
        """
        missing = self.missing_runtimes()
        if missing:
            raise ConfigError(runtime_missing_message(*missing[0]))

    def with_heading_level(self, level: int) -> "Config":
        """Return a copy using a different heading level."""
        return Config(runtimes=dict(self.runtimes), heading_level=check_heading_level(level))

    def apply_runtime_overrides(
        self,
        overrides: list[str],
        execution_mode: ExecutionMode | None = None,
    ) -> None:
        """Apply ``lang:command`` overrides.

        When ``execution_mode`` is given it applies to every override in the
        list; otherwise overrides are plain stdin runtimes.
        """
        for override in overrides:
            lang, sep, command = override.partition(":")
            lang = lang.strip()
            if not sep or not lang or not command.strip():
                raise ConfigError(
                    f"Invalid runtime override '{override}' (expected LANG:COMMAND)"
                )
            command = command.strip()
            if execution_mode is None:
                self.runtimes[lang] = SimpleRuntime(command)
            else:
                self.runtimes[lang] = DetailedRuntime(command, execution_mode)
            log.debug(
                "runtime override",
                lang=lang,
                command=command,
                mode=self.runtimes[lang].execution_mode.value,
            )

    def to_dict(self) -> dict:
        """Serializable form, as written by ``mx init``."""
        return {
            "heading_level": self.heading_level,
            "runtimes": {lang: rt.to_value() for lang, rt in sorted(self.runtimes.items())},
        }


# === Config Loading ===


def read_config_document(config_path: Path) -> dict:
    """Read a TOML or YAML config file into a plain mapping.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config file {config_path}: {e}") from e

    try:
        if config_path.suffix.lower() in YAML_SUFFIXES:
            data = yaml.safe_load(raw)
        else:
            data = tomllib.loads(raw)
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to parse config file {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a table at the top level")
    return data


def config_from_dict(data: dict) -> Config:
    """Build a Config from a parsed document; unknown keys are ignored."""
    heading_level = check_heading_level(data.get("heading_level", DEFAULT_HEADING_LEVEL))

    if "runtimes" not in data:
        return Config(heading_level=heading_level)

    raw_runtimes = data["runtimes"]
    if not isinstance(raw_runtimes, dict):
        raise ConfigError("'runtimes' must be a table mapping languages to commands")

    runtimes = {str(lang): parse_runtime(str(lang), value) for lang, value in raw_runtimes.items()}
    return Config(runtimes=runtimes, heading_level=heading_level)


def load_config_file(config_path: Path) -> Config:
    """Load a configuration file, replacing the defaults wholesale.

    Args:
        config_path: Path to a ``.toml``, ``.yaml`` or ``.yml`` file.

    Returns:
        Config instance.
    """
    config = config_from_dict(read_config_document(config_path))
    log.info(
        "config loaded",
        path=str(config_path),
        runtimes=len(config.runtimes),
        heading_level=config.heading_level,
    )
    return config


def build_config(args: argparse.Namespace) -> Config:
    """Build Config from an optional config file and CLI arguments.

    CLI arguments override the file, which replaces the defaults.

    Args:
        args: Parsed CLI arguments.

    Returns:
        Config instance.
    """
    config_path = getattr(args, "config", None)
    config = load_config_file(Path(config_path)) if config_path else Config()

    level = getattr(args, "level", None)
    if level is not None:
        config = config.with_heading_level(level)

    mode = getattr(args, "execution_mode", None)
    execution_mode = ExecutionMode.parse(mode) if mode else None

    overrides = getattr(args, "runtime", None) or []
    if overrides:
        config.apply_runtime_overrides(overrides, execution_mode)
    elif execution_mode is not None:
        log.warning("execution mode ignored without runtime overrides", mode=execution_mode.value)

    return config
