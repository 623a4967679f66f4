from __future__ import annotations

import json
import re
from pathlib import Path
from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

import whare.cli as cli
import whare.commands.update as update_cmd
from whare import __version__, paths

runner = CliRunner()
ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


@pytest.fixture(autouse=True)
def isolated_run_log(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    log_file = tmp_path / "logs" / "run.log"
    monkeypatch.setattr(paths, "run_log_path", lambda command, now=None: log_file)
    monkeypatch.delenv("WHARE_TEMPLATE_URL", raising=False)
    monkeypatch.delenv("WHARE_LOG_LEVEL", raising=False)
    return log_file


def test_help_command_prints_usage() -> None:
    result = runner.invoke(cli.app, ["help"])

    assert result.exit_code == 0
    assert "init [PATH]" in result.output
    assert "--dry" in result.output


def test_version_flag() -> None:
    result = runner.invoke(cli.app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_invalid_log_level_is_rejected() -> None:
    result = runner.invoke(cli.app, ["--log-level", "loud", "help"], color=False)
    clean_output = ANSI_ESCAPE_RE.sub("", result.output)

    assert result.exit_code == 1
    assert "--log-level" in clean_output
    assert "expected one of" in clean_output


def test_no_arguments_shows_help_and_exits_one() -> None:
    result = runner.invoke(cli.app, [], color=False)

    assert result.exit_code == 1
    assert "update" in ANSI_ESCAPE_RE.sub("", result.output)


@pytest.mark.parametrize(
    "argv",
    [
        ["bogus"],
        ["update", "--nope"],
        ["--unknown-global", "help"],
        ["--no-color"],
    ],
)
def test_usage_errors_exit_one(argv: list[str]) -> None:
    result = runner.invoke(cli.app, argv, color=False)

    assert result.exit_code == 1


def test_update_passes_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: list[SimpleNamespace] = []
    monkeypatch.setattr(cli, "update_project", captured.append)

    result = runner.invoke(
        cli.app,
        ["--log-level", "debug", "update", "proj", "--dry", "-v", "--template", "file:///t"],
    )

    assert result.exit_code == 0
    args = captured[0]
    assert (args.path, args.dry, args.verbose, args.template) == ("proj", True, True, "file:///t")
    assert args.log_level == "debug"


def test_init_defaults_to_current_directory(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: list[SimpleNamespace] = []
    monkeypatch.setattr(cli, "init_project", captured.append)

    result = runner.invoke(cli.app, ["init"])

    assert result.exit_code == 0
    assert captured[0].path == "."
    assert captured[0].dry is False


def test_update_without_manifest_fails(tmp_path: Path, isolated_run_log: Path) -> None:
    result = runner.invoke(cli.app, ["update", str(tmp_path / "missing")])

    assert result.exit_code == 1
    assert "error: no package.json found" in result.output
    assert "hint: run `whare init`" in result.output
    assert "ERROR" in isolated_run_log.read_text(encoding="utf-8")


def test_update_reports_summary(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    fake_source_factory,
    tree_writer,
    json_text,
) -> None:
    project = tmp_path / "project"
    tree_writer(project, {"package.json": json_text({"name": "acme", "whare": {"version": "v1"}})})
    source = fake_source_factory(
        {
            "v1": {"README.md": "one\n"},
            "v2": {"README.md": "two\n", "tsconfig.json": "{}\n"},
        },
        head="v2",
    )
    monkeypatch.setattr(update_cmd, "GitVersionSource", lambda: source)

    result = runner.invoke(cli.app, ["update", str(project)])

    assert result.exit_code == 0
    assert "Updated to template v2; applied 2 template change(s): 2 root, 0 workspace." in (
        result.output
    )
    assert (project / "README.md").read_text(encoding="utf-8") == "two\n"
    manifest = json.loads((project / "package.json").read_text(encoding="utf-8"))
    assert manifest["whare"]["version"] == "v2"


def test_update_already_current(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    fake_source_factory,
    tree_writer,
    json_text,
) -> None:
    tree_writer(tmp_path, {"package.json": json_text({"whare": {"version": "v1"}})})
    source = fake_source_factory({"v1": {}}, head="v1")
    monkeypatch.setattr(update_cmd, "GitVersionSource", lambda: source)

    result = runner.invoke(cli.app, ["update", str(tmp_path), "--dry"])

    assert result.exit_code == 0
    assert "Already up to date with the template (0 changes)." in result.output
