"""
mx init: write a default configuration file.

Usage:
    mx init                 # Write ./mx.toml
    mx init -o mx.yaml      # Write YAML instead
"""

from __future__ import annotations

import json
import re
from pathlib import Path

import yaml

from .config import YAML_SUFFIXES, Config
from .errors import ConfigError

_BARE_KEY_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def _toml_key(key: str) -> str:
    return key if _BARE_KEY_RE.match(key) else json.dumps(key)


def _toml_value(value: object) -> str:
    if isinstance(value, dict):
        items = ", ".join(f"{_toml_key(k)} = {_toml_value(v)}" for k, v in value.items())
        return "{ " + items + " }"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    # JSON string escapes are valid TOML basic-string escapes
    return json.dumps(str(value), ensure_ascii=False)


def render_toml(config: Config) -> str:
    """Render a Config as a TOML document."""
    data = config.to_dict()
    lines = [
        "# Heading level that marks a task (1-6)",
        f"heading_level = {data['heading_level']}",
        "",
        "# language = \"command\" or { command = \"...\", execution_mode = \"stdin|file|arg\" }",
        "[runtimes]",
    ]
    for lang, value in data["runtimes"].items():
        lines.append(f"{_toml_key(lang)} = {_toml_value(value)}")
    return "\n".join(lines) + "\n"


def render_yaml(config: Config) -> str:
    return yaml.safe_dump(config.to_dict(), sort_keys=False)


def init_config(output_path: Path, config: Config | None = None) -> Path:
    """Write the default configuration to ``output_path``.

    Args:
        output_path: Target file; ``.yaml``/``.yml`` selects YAML, anything
            else TOML.
        config: Configuration to write (defaults when omitted).

    Returns:
        The path written.

    Raises:
        ConfigError: If the file already exists or cannot be written.
    """
    if output_path.exists():
        raise ConfigError(f"Configuration file already exists: {output_path}")

    config = config or Config()
    if output_path.suffix.lower() in YAML_SUFFIXES:
        content = render_yaml(config)
    else:
        content = render_toml(config)

    try:
        output_path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to write {output_path}: {e}") from e
    return output_path
