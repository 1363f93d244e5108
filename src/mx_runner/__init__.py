"""
mx-runner: run code blocks from markdown sections as tasks.

Usage as library:
    from mx_runner import Config, Runner, setup_logging
    setup_logging()  # route log lines to stderr, away from task output
    Runner(Config()).run_task("README.md", "Build")

Usage as CLI:
    mx                     # List tasks in README.md
    mx Build               # Run the "Build" task
    mx run Deploy -- prod  # Run with MX_ARGS=prod
    mx init                # Write a default mx.toml
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("mx-runner")
except PackageNotFoundError:
    __version__ = "0.0.0.dev"  # Fallback for development without install

from .config import (
    Config,
    DetailedRuntime,
    ExecutionMode,
    RuntimeConfig,
    SimpleRuntime,
    build_config,
    default_runtimes,
    load_config_file,
    parse_runtime,
)
from .errors import (
    ConfigError,
    ErrorKind,
    ExecutionError,
    MarkdownError,
    MxError,
    QueryError,
    RuntimeNotFound,
    SectionNotFound,
)
from .logging import get_logger, setup_logging
from .query import DocumentQueryEngine, Node, parse_markdown, sections_with_code
from .runner import Runner, build_task_env
from .sections import CodeBlock, Section, extract_sections, find_section, section_from_record

__all__ = [
    # Config
    "Config",
    "DetailedRuntime",
    "ExecutionMode",
    "RuntimeConfig",
    "SimpleRuntime",
    "build_config",
    "default_runtimes",
    "load_config_file",
    "parse_runtime",
    # Errors
    "ConfigError",
    "ErrorKind",
    "ExecutionError",
    "MarkdownError",
    "MxError",
    "QueryError",
    "RuntimeNotFound",
    "SectionNotFound",
    # Extraction
    "CodeBlock",
    "DocumentQueryEngine",
    "Node",
    "Section",
    "extract_sections",
    "find_section",
    "parse_markdown",
    "section_from_record",
    "sections_with_code",
    # Execution
    "Runner",
    "build_task_env",
    # Logging
    "get_logger",
    "setup_logging",
]
