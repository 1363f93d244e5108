"""Tests for mx_runner.cli: argument handling, output and exit codes."""

from unittest.mock import patch

import pytest

from mx_runner.cli import _normalize_argv, build_parser, main
from mx_runner.config import load_config_file

TASKS_MD = """\
# Project

## Build

Compile everything.

```sh
echo built > "{out}"
```

## Greet

```sh
printf "%s" "$MX_ARGS" > "{out}"
```

## Fail

```sh
exit 4
```

```sh
touch "{out}"
```
"""


@pytest.fixture
def tasks_file(tmp_path):
    out = tmp_path / "out.txt"
    md = tmp_path / "README.md"
    md.write_text(TASKS_MD.format(out=out))
    return md, out


class TestNormalizeArgv:
    def test_empty_lists(self):
        assert _normalize_argv([]) == ["list"]

    def test_task_shorthand(self):
        assert _normalize_argv(["Build", "-f", "x.md"]) == ["run", "Build", "-f", "x.md"]

    def test_options_first_go_to_run(self):
        assert _normalize_argv(["-f", "x.md", "Build"]) == ["run", "-f", "x.md", "Build"]

    @pytest.mark.parametrize("argv", [["list"], ["init"], ["check"], ["run", "A"], ["--help"]])
    def test_commands_unchanged(self, argv):
        assert _normalize_argv(argv) == argv


class TestParser:
    def test_run_arguments(self):
        args = build_parser().parse_args(
            ["run", "Deploy", "-f", "T.md", "-r", "python:py", "-r", "go:gorun", "-e", "file"]
        )
        assert args.task == "Deploy"
        assert args.file == "T.md"
        assert args.runtime == ["python:py", "go:gorun"]
        assert args.execution_mode == "file"
        assert args.task_args == []

    def test_task_args_after_double_dash(self):
        args = build_parser().parse_args(["run", "Deploy", "--", "-v", "prod"])
        assert args.task_args == ["-v", "prod"]

    def test_defaults(self):
        args = build_parser().parse_args(["list"])
        assert args.file == "README.md"
        assert args.config is None
        assert args.level is None
        assert args.log_level == "warning"

    def test_invalid_mode_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["run", "A", "-e", "socket"])


class TestListCommand:
    def test_lists_titles_and_descriptions(self, tasks_file, capsys):
        md, _ = tasks_file
        main(["list", "-f", str(md)])
        out = capsys.readouterr().out
        assert f"Available tasks in {md}" in out
        assert "  Build - Compile everything." in out
        assert "  Greet\n" in out

    def test_no_tasks(self, tmp_path, capsys):
        md = tmp_path / "empty.md"
        md.write_text("# Only a title\n")
        main(["list", "-f", str(md)])
        assert f"No tasks found in {md}" in capsys.readouterr().out

    def test_bare_invocation_lists_readme(self, tasks_file, monkeypatch, capsys):
        md, _ = tasks_file
        monkeypatch.chdir(md.parent)
        main([])
        assert "Build" in capsys.readouterr().out

    def test_level_option(self, tmp_path, capsys):
        md = tmp_path / "t.md"
        md.write_text("## Group\n\n### Inner\n")
        main(["list", "-f", str(md), "-l", "3"])
        out = capsys.readouterr().out
        assert "Inner" in out
        assert "Group" not in out

    def test_missing_file_exits_1(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["list", "-f", str(tmp_path / "missing.md")])
        assert exc_info.value.code == 1
        assert "Markdown error" in capsys.readouterr().err


class TestRunCommand:
    def test_runs_task(self, tasks_file):
        md, out = tasks_file
        main(["run", "Build", "-f", str(md)])
        assert out.read_text() == "built\n"

    def test_shorthand_with_args(self, tasks_file):
        md, out = tasks_file
        main(["-f", str(md), "Greet", "a", "b"])
        assert out.read_text() == "a b"

    def test_failure_exits_1_and_stops(self, tasks_file, capsys):
        md, out = tasks_file
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "Fail", "-f", str(md)])
        assert exc_info.value.code == 1
        assert "Execution error" in capsys.readouterr().err
        assert not out.exists()

    def test_unknown_task(self, tasks_file, capsys):
        md, _ = tasks_file
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "Nope", "-f", str(md)])
        assert exc_info.value.code == 1
        assert "Section not found: Nope" in capsys.readouterr().err

    def test_runtime_override(self, tasks_file):
        md, out = tasks_file
        with patch("mx_runner.runner.subprocess.run") as mock_run:
            mock_run.return_value.returncode = 0
            main(["run", "Build", "-f", str(md), "-r", "sh:dash -e", "-e", "arg"])
        cmd = mock_run.call_args.args[0]
        assert cmd[:2] == ["dash", "-e"]
        assert cmd[-1].startswith("echo built")

    def test_bad_override_exits_1(self, tasks_file, capsys):
        md, _ = tasks_file
        with pytest.raises(SystemExit):
            main(["run", "Build", "-f", str(md), "-r", "sh"])
        assert "Config error" in capsys.readouterr().err

    def test_task_args_after_options(self, tasks_file):
        md, out = tasks_file
        main(["run", "Greet", "-f", str(md), "a", "b"])
        assert out.read_text() == "a b"

    def test_shorthand_args_after_options(self, tasks_file):
        md, out = tasks_file
        main(["Greet", "-f", str(md), "-5", "x"])
        assert out.read_text() == "-5 x"

    def test_unknown_option_exits_2(self, tasks_file):
        md, _ = tasks_file
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "Greet", "-f", str(md), "--bogus"])
        assert exc_info.value.code == 2

    def test_stray_argument_to_list_exits_2(self, tasks_file):
        md, _ = tasks_file
        with pytest.raises(SystemExit) as exc_info:
            main(["list", "-f", str(md), "stray"])
        assert exc_info.value.code == 2

    def test_nul_in_configured_command_exits_1(self, tasks_file, tmp_path, capsys):
        md, out = tasks_file
        cfg = tmp_path / "mx.toml"
        cfg.write_text('[runtimes]\nsh = "sh\\u0000x"\n')
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "Build", "-f", str(md), "-c", str(cfg)])
        assert exc_info.value.code == 1
        assert "Execution error" in capsys.readouterr().err
        assert not out.exists()


class TestInitCommand:
    def test_writes_default_config(self, tmp_path, capsys):
        target = tmp_path / "mx.toml"
        main(["init", "-o", str(target)])
        assert "Configuration file created" in capsys.readouterr().out
        assert load_config_file(target).heading_level == 2

    def test_refuses_existing_file(self, tmp_path, capsys):
        target = tmp_path / "mx.toml"
        target.write_text("keep me")
        with pytest.raises(SystemExit) as exc_info:
            main(["init", "-o", str(target)])
        assert exc_info.value.code == 1
        assert target.read_text() == "keep me"
        assert "already exists" in capsys.readouterr().err


class TestCheckCommand:
    def test_all_runtimes_found(self, capsys):
        with patch("mx_runner.config.shutil.which", return_value="/bin/x"):
            main(["check"])
        assert "0 errors" in capsys.readouterr().out

    def test_missing_runtime_exits_1(self, tmp_path, capsys):
        cfg = tmp_path / "mx.toml"
        cfg.write_text('[runtimes]\nzz = "mx-no-such-binary"\n')
        with pytest.raises(SystemExit) as exc_info:
            main(["check", "-c", str(cfg)])
        assert exc_info.value.code == 1
        assert "mx-no-such-binary" in capsys.readouterr().out

    def test_malformed_config_reported(self, tmp_path, capsys):
        cfg = tmp_path / "mx.toml"
        cfg.write_text("heading_level = 12\n")
        with pytest.raises(SystemExit):
            main(["check", "-c", str(cfg)])
        assert "Heading level" in capsys.readouterr().out
