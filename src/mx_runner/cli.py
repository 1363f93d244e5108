"""CLI commands and argument parsing for mx."""

import argparse
import sys
from pathlib import Path
from uuid import uuid4

import structlog

from . import __version__
from .config import CONFIG_FILE, DEFAULT_TASKS_FILE, build_config
from .errors import MxError
from .init_cmd import init_config
from .logging import get_logger, setup_logging
from .runner import Runner
from .validate import ValidationResult, format_results, validate_config_file, validate_runtimes

logger = get_logger("cli")

COMMANDS = ("run", "list", "init", "check")


# === CLI Commands ===


def cmd_run(args: argparse.Namespace) -> None:
    """Run a task, or list tasks when no title was given."""
    if args.task is None:
        cmd_list(args)
        return

    config = build_config(args)
    runner = Runner(config)

    print(f"Running task: {args.task}\n", file=sys.stderr)
    runner.run_task(Path(args.file), args.task, args.task_args)


def cmd_list(args: argparse.Namespace) -> None:
    """List the tasks of a markdown file."""
    config = build_config(args)
    runner = Runner(config)
    markdown_path = Path(args.file)

    sections = runner.list_task_sections(markdown_path)
    if not sections:
        print(f"No tasks found in {markdown_path}")
        return

    lines = [f"Available tasks in {markdown_path}", ""]
    for section in sections:
        description = (section.description or "").strip()
        if description:
            lines.append(f"  {section.title} - {description}")
        else:
            lines.append(f"  {section.title}")
    print("\n".join(lines))


def cmd_init(args: argparse.Namespace) -> None:
    """Write a default configuration file."""
    path = init_config(Path(args.output))
    print(f"Configuration file created: {path}")


def cmd_check(args: argparse.Namespace) -> None:
    """Validate the config file and runtime availability, print results."""
    result = ValidationResult()
    if args.config:
        result.merge(validate_config_file(Path(args.config)))
    if result.ok:
        result.merge(validate_runtimes(build_config(args)))

    print(format_results(result))
    if not result.ok:
        sys.exit(1)


# === Argument Parsing ===


def _normalize_argv(argv: list[str]) -> list[str]:
    """Treat ``mx TASK ...`` as ``mx run TASK ...`` and bare ``mx`` as ``mx list``."""
    if not argv:
        return ["list"]
    if argv[0] in COMMANDS or argv[0] in ("-h", "--help", "--version"):
        return argv
    return ["run", *argv]


def build_parser() -> argparse.ArgumentParser:
    # Shared options available to every subcommand
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-level",
        type=str,
        default="warning",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: warning)",
    )
    common.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs as JSON lines",
    )

    # Options for commands that read a markdown file
    document = argparse.ArgumentParser(add_help=False)
    document.add_argument(
        "--file",
        "-f",
        default=str(DEFAULT_TASKS_FILE),
        help=f"Path to the markdown file (default: {DEFAULT_TASKS_FILE})",
    )

    # Options that shape the effective configuration
    configuration = argparse.ArgumentParser(add_help=False)
    configuration.add_argument("--config", "-c", help="Path to configuration file")
    configuration.add_argument("--level", "-l", type=int, help="Heading level for sections (1-6)")

    runtimes = argparse.ArgumentParser(add_help=False)
    runtimes.add_argument(
        "--runtime",
        "-r",
        action="append",
        default=[],
        metavar="LANG:COMMAND",
        help="Override runtime for a language (e.g. python:python3.11); repeatable",
    )
    runtimes.add_argument(
        "--execution-mode",
        "-e",
        choices=["stdin", "file", "arg"],
        metavar="MODE",
        help="Execution mode for the runtime overrides (stdin, file, arg)",
    )

    parser = argparse.ArgumentParser(
        prog="mx",
        description="mx: run code blocks from markdown sections as tasks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    mx                          # List tasks in README.md
    mx Build                    # Run the "Build" task
    mx run Deploy -- prod       # Run "Deploy" with MX_ARGS=prod
    mx Deploy -f T.md a b       # Options may sit between task arguments
    mx list -f TASKS.md -l 3    # List level-3 tasks in TASKS.md
    mx init                     # Write mx.toml
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # run
    run_parser = subparsers.add_parser(
        "run",
        parents=[common, document, configuration, runtimes],
        help="Run a task from a markdown file",
    )
    run_parser.add_argument("task", nargs="?", help="Task name (section title) to execute")
    run_parser.add_argument(
        "task_args",
        nargs="*",
        metavar="ARGS",
        help="Task arguments, exposed as MX_ARGS and MX_ARG_0..N",
    )

    # list
    subparsers.add_parser(
        "list",
        parents=[common, document, configuration],
        help="List all available tasks in a markdown file",
    )

    # init
    init_parser = subparsers.add_parser(
        "init", parents=[common], help="Generate a sample configuration file"
    )
    init_parser.add_argument(
        "--output",
        "-o",
        default=str(CONFIG_FILE),
        help=f"Output path for configuration file (default: {CONFIG_FILE})",
    )

    # check
    subparsers.add_parser(
        "check",
        parents=[common, configuration, runtimes],
        help="Validate configuration and runtime availability",
    )

    return parser


def _looks_like_option(arg: str) -> bool:
    return arg.startswith("-") and arg != "-" and not arg[1:].replace(".", "", 1).isdigit()


def _attach_task_args(
    parser: argparse.ArgumentParser, args: argparse.Namespace, extras: list[str]
) -> None:
    """Give positionals left over after options to the task.

    argparse stops filling ``task_args`` at the first option, so in
    ``mx run Greet -f R.md world`` the trailing ``world`` comes back unparsed.
    """
    if args.command != "run":
        if extras:
            parser.error(f"unrecognized arguments: {' '.join(extras)}")
        return

    head, tail = extras, []
    if "--" in extras:
        split = extras.index("--")
        head, tail = extras[:split], extras[split + 1 :]
    unknown = [arg for arg in head if _looks_like_option(arg)]
    if unknown:
        parser.error(f"unrecognized arguments: {' '.join(unknown)}")

    positionals = [*head, *tail]
    if args.task is None and positionals:
        args.task = positionals.pop(0)
    args.task_args = [*args.task_args, *positionals]


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args, extras = parser.parse_known_args(_normalize_argv(sys.argv[1:] if argv is None else argv))
    _attach_task_args(parser, args, extras)

    setup_logging(level=args.log_level, json_output=args.log_json)
    structlog.contextvars.bind_contextvars(run_id=uuid4().hex[:8])

    # Dispatch
    commands = {
        "run": cmd_run,
        "list": cmd_list,
        "init": cmd_init,
        "check": cmd_check,
    }

    try:
        commands[args.command](args)
    except MxError as e:
        logger.debug("command failed", command=args.command, kind=e.kind.value)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
