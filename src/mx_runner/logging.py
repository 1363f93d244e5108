"""Structured logging for mx-runner.

Configures structlog on top of stdlib logging. Logs always go to stderr so
that task output on stdout is left untouched.
"""

import logging
import sys
from pathlib import Path

import structlog

# Longest string value rendered in a log line (code bodies can be large)
MAX_VALUE_LENGTH = 200


def shorten_values(logger: object, method_name: str, event_dict: dict) -> dict:
    """Structlog processor that truncates long string values."""
    for key, value in event_dict.items():
        if key == "event" or not isinstance(value, str):
            continue
        if len(value) > MAX_VALUE_LENGTH:
            hidden = len(value) - MAX_VALUE_LENGTH
            event_dict[key] = f"{value[:MAX_VALUE_LENGTH]}... (+{hidden} chars)"
    return event_dict


def setup_logging(
    level: str = "warning",
    json_output: bool = False,
    log_file: Path | None = None,
) -> None:
    """Configure structlog for the entire application.

    Args:
        level: Log level (debug, info, warning, error).
        json_output: If True, output JSON lines.
        log_file: Optional file that receives log lines instead of stderr.
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        shorten_values,
    ]

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        stream=sys.stderr,
        force=True,
    )

    if log_file:
        handler = logging.FileHandler(str(log_file))
        handler.setLevel(log_level)
        logging.getLogger().handlers = [handler]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=log_file is None and sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    for handler in logging.getLogger().handlers:
        handler.setFormatter(formatter)


def get_logger(module: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to a module name.

    Args:
        module: Module name (e.g., "runner", "config").

    Returns:
        Bound structlog logger.
    """
    return structlog.get_logger(module=module)
