"""Error types for mx-runner.

Every failure the library raises is an ``MxError`` subclass tagged with an
``ErrorKind``. Only the CLI turns them into messages and exit codes.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Structured classification of mx-runner failures."""

    MARKDOWN = "MARKDOWN"
    QUERY = "QUERY"
    EXECUTION = "EXECUTION"
    CONFIG = "CONFIG"
    SECTION_NOT_FOUND = "SECTION_NOT_FOUND"
    RUNTIME_NOT_FOUND = "RUNTIME_NOT_FOUND"


class MxError(Exception):
    """Base class for all mx-runner errors."""

    kind: ErrorKind
    label = "Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"


class MarkdownError(MxError):
    """The markdown document could not be read or parsed."""

    kind = ErrorKind.MARKDOWN
    label = "Markdown error"


class QueryError(MxError):
    """The section query failed to evaluate."""

    kind = ErrorKind.QUERY
    label = "Query error"


class ExecutionError(MxError):
    """A code block could not be spawned, fed, or exited unsuccessfully."""

    kind = ErrorKind.EXECUTION
    label = "Execution error"

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode


class ConfigError(MxError):
    """Malformed configuration or a runtime missing from PATH."""

    kind = ErrorKind.CONFIG
    label = "Config error"


class SectionNotFound(MxError):
    kind = ErrorKind.SECTION_NOT_FOUND
    label = "Section not found"

    def __init__(self, title: str):
        super().__init__(title)
        self.title = title


class RuntimeNotFound(MxError):
    kind = ErrorKind.RUNTIME_NOT_FOUND
    label = "Runtime not found for language"

    def __init__(self, lang: str):
        super().__init__(lang)
        self.lang = lang
