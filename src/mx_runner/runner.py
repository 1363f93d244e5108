"""Execution engine for mx-runner.

Runs the code blocks of a task section as child processes. Each block's
language picks a runtime from the Config and one of three strategies:
pipe the code to stdin, write it to a temp file, or pass it as the last
argument. stdout and stderr are inherited so colors and TTY detection
work in the child.
"""

import contextlib
import os
import signal
import subprocess
import tempfile
import time
from collections.abc import Iterator, Sequence
from pathlib import Path

from .config import Config, ExecutionMode
from .errors import ExecutionError, MarkdownError, RuntimeNotFound, SectionNotFound
from .logging import get_logger
from .query import DocumentQueryEngine
from .sections import Section, extract_sections, find_section

log = get_logger("runner")

TEMP_FILE_PREFIX = "mx_temp_"

# Languages whose file extension differs from the fence tag
FILE_EXTENSIONS = {
    "go": "go",
    "golang": "go",
    "python": "py",
    "ruby": "rb",
    "javascript": "js",
    "js": "js",
    "typescript": "ts",
    "ts": "ts",
}


def build_task_env(task_args: Sequence[str]) -> dict[str, str]:
    """Build environment variables exposing task arguments to a child.

    Args:
        task_args: Positional arguments given after the task title.

    Returns:
        ``MX_ARGS`` (space-joined) and ``MX_ARG_<n>`` per argument; empty
        when there are no arguments.
    """
    if not task_args:
        return {}
    env = {"MX_ARGS": " ".join(task_args)}
    for i, arg in enumerate(task_args):
        env[f"MX_ARG_{i}"] = arg
    return env


def temp_file_extension(lang: str) -> str:
    return FILE_EXTENSIONS.get(lang, lang)


@contextlib.contextmanager
def temp_script(lang: str, code: str) -> Iterator[Path]:
    """Write ``code`` to a fresh temp file and remove it on exit.

    Removal errors are suppressed so they never mask the task's own result.
    """
    name = f"{TEMP_FILE_PREFIX}{time.monotonic_ns()}.{temp_file_extension(lang)}"
    path = Path(tempfile.gettempdir()) / name
    try:
        path.write_text(code, encoding="utf-8")
    except OSError as e:
        with contextlib.suppress(OSError):
            path.unlink()
        raise ExecutionError(f"Failed to write temp file {path}: {e}") from e
    try:
        yield path
    finally:
        with contextlib.suppress(OSError):
            path.unlink()


def _check_exit(returncode: int, lang: str) -> None:
    if returncode == 0:
        return
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = str(-returncode)
        raise ExecutionError(f"{lang} execution terminated by signal {name}", returncode)
    raise ExecutionError(f"{lang} execution failed with exit code {returncode}", returncode)


class Runner:
    """Executes markdown task sections.

    Attributes:
        config: Runtime mappings and heading level; owned by the runner.
        engine: Query engine used for extraction.
    """

    def __init__(self, config: Config | None = None, engine: DocumentQueryEngine | None = None):
        self.config = config or Config()
        self.engine = engine or DocumentQueryEngine()

    # --- Extraction ---

    def load_markdown(self, markdown_path: Path) -> str:
        """Read a markdown file.

        Raises:
            MarkdownError: If the file cannot be read.
        """
        try:
            return Path(markdown_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise MarkdownError(f"Failed to read {markdown_path}: {e}") from e

    def extract_sections(self, markdown: str) -> list[Section]:
        return extract_sections(markdown, self.config.heading_level, self.engine)

    def list_task_sections(self, markdown_path: Path) -> list[Section]:
        """All task sections of a markdown file, in document order."""
        return self.extract_sections(self.load_markdown(markdown_path))

    # --- Execution ---

    def run_task(
        self,
        markdown_path: Path,
        task_name: str,
        task_args: Sequence[str] = (),
    ) -> None:
        """Run the section titled ``task_name`` from a markdown file.

        Raises:
            SectionNotFound: If no section has that title.
            RuntimeNotFound: If a code block's language has no runtime.
            ExecutionError: If a code block fails.
        """
        sections = self.list_task_sections(markdown_path)
        section = find_section(sections, task_name)
        if section is None:
            raise SectionNotFound(task_name)
        log.info("Running task", task=task_name, file=str(markdown_path), blocks=len(section.codes))
        self.execute_section(section, task_args)

    def execute_section(self, section: Section, task_args: Sequence[str] = ()) -> None:
        """Execute a section's code blocks in order, stopping at the first failure."""
        for index, block in enumerate(section.codes):
            if not block.lang:
                log.debug("Skipping code block without language", task=section.title, index=index)
                continue
            try:
                self.execute_code(block.lang, block.code, task_args)
            except (ExecutionError, RuntimeNotFound) as e:
                log.error("Code block failed", task=section.title, index=index, error=str(e))
                raise

    def execute_code(self, lang: str, code: str, task_args: Sequence[str] = ()) -> None:
        """Execute one code block with the runtime configured for ``lang``.

        Raises:
            RuntimeNotFound: If ``lang`` has no runtime or its command is blank.
            ExecutionError: If the process cannot be spawned or exits unsuccessfully.
        """
        runtime = self.config.get_runtime(lang)
        if runtime is None:
            raise RuntimeNotFound(lang)

        parts = runtime.split()
        if not parts:
            raise RuntimeNotFound(lang)

        mode = self.config.get_execution_mode(lang)
        log.info("Executing code block", lang=lang, mode=mode.value, program=parts[0])

        env = {**os.environ, **build_task_env(task_args)}

        if mode is ExecutionMode.FILE:
            self._run_with_file(lang, code, parts, env)
        elif mode is ExecutionMode.ARG:
            self._run_with_arg(lang, code, parts, env)
        else:
            self._run_with_stdin(lang, code, parts, env)

    def _spawn(self, lang: str, cmd: list[str], env: dict[str, str], **kwargs) -> None:
        try:
            result = subprocess.run(cmd, env=env, **kwargs)
        except (OSError, ValueError) as e:
            # subprocess raises ValueError for NUL bytes in argv
            raise ExecutionError(f"Failed to spawn process '{cmd[0]}' for {lang}: {e}") from e
        _check_exit(result.returncode, lang)

    def _run_with_stdin(self, lang: str, code: str, parts: list[str], env: dict[str, str]) -> None:
        self._spawn(lang, parts, env, input=code.encode("utf-8"))

    def _run_with_arg(self, lang: str, code: str, parts: list[str], env: dict[str, str]) -> None:
        self._spawn(lang, [*parts, code], env)

    def _run_with_file(self, lang: str, code: str, parts: list[str], env: dict[str, str]) -> None:
        with temp_script(lang, code) as path:
            log.debug("Wrote temp file", lang=lang, path=str(path))
            self._spawn(lang, [*parts, str(path)], env)
