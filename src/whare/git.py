"""Git-backed access to the upstream template repository."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Protocol

from . import exec as exec_util


class VersionSource(Protocol):
    """Read-only view of template history used by init and update."""

    def get_head_revision(self, repo_url: str) -> str: ...

    def clone(self, repo_url: str, dest_dir: Path) -> None: ...

    def diff_name_status(
        self, repo_dir: Path, from_rev: str, to_rev: str
    ) -> list[tuple[str, str]]: ...

    def show_file_at(self, repo_dir: Path, rev: str, path: str) -> bytes: ...


def git_command(args: list[str], *, git_path: str | None = None) -> list[str]:
    """Build a git command using an optional executable path.

    Example:
        >>> git_command(["status"])
        ['git', 'status']
    """
    resolved = git_path.strip() if isinstance(git_path, str) else ""
    if not resolved:
        resolved = "git"
    return [resolved, *args]


def parse_ls_remote_head(result: exec_util.CommandResult) -> str:
    """Return the revision id from ``git ls-remote`` output.

    The first line's first tab-separated field is the revision.
    """
    for line in result.stdout.splitlines():
        revision = line.split("\t", 1)[0].strip()
        if revision:
            return revision
    raise ValueError("no revision reported by remote")


def parse_name_status(text: str) -> list[tuple[str, str]]:
    """Parse ``git diff --name-status`` output into ``(status, path)`` pairs.

    Example:
        >>> parse_name_status("A\\tREADME.md\\nM\\tpackage.json\\n")
        [('A', 'README.md'), ('M', 'package.json')]
    """
    entries: list[tuple[str, str]] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t")
        if len(parts) < 2:
            raise ValueError(f"unexpected name-status line: {line!r}")
        status = parts[0].strip()
        # copies/renames list the destination last
        path = parts[-1].strip()
        entries.append((status, path))
    return entries


GIT_NETWORK_TIMEOUT_SECONDS = 300.0


def git_environment(base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return an environment in which git fails instead of prompting.

    Example:
        >>> git_environment({"PATH": "/bin"})["GIT_TERMINAL_PROMPT"]
        '0'
    """
    env = dict(os.environ if base is None else base)
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


class GitVersionSource:
    """VersionSource implementation that shells out to ``git``.

    Commands that reach the network (``ls-remote`` and ``clone``) are bounded
    by ``network_timeout_seconds``; ``None`` disables the limit.
    """

    def __init__(
        self,
        *,
        git_path: str | None = None,
        runner: exec_util.CommandRunner | None = None,
        network_timeout_seconds: float | None = GIT_NETWORK_TIMEOUT_SECONDS,
    ) -> None:
        self.git_path = git_path
        self.runner = runner
        self.network_timeout_seconds = network_timeout_seconds

    def _spec(
        self,
        args: list[str],
        parser,
        *,
        context: str,
        text: bool = True,
        network: bool = False,
    ) -> exec_util.CommandSpec:
        return exec_util.CommandSpec(
            request=exec_util.CommandRequest(
                argv=tuple(git_command(args, git_path=self.git_path)),
                env=git_environment(),
                text=text,
                timeout_seconds=self.network_timeout_seconds if network else None,
            ),
            parser=parser,
            context=context,
        )

    def get_head_revision(self, repo_url: str) -> str:
        spec = self._spec(
            ["ls-remote", repo_url, "HEAD"],
            parse_ls_remote_head,
            context="git ls-remote",
            network=True,
        )
        return exec_util.run_typed(spec, runner=self.runner)

    def clone(self, repo_url: str, dest_dir: Path) -> None:
        spec = self._spec(
            ["clone", "--quiet", repo_url, str(dest_dir)],
            exec_util.parse_nothing,
            context="git clone",
            network=True,
        )
        exec_util.run_typed(spec, runner=self.runner)

    def diff_name_status(
        self, repo_dir: Path, from_rev: str, to_rev: str
    ) -> list[tuple[str, str]]:
        spec = self._spec(
            [
                "-C",
                str(repo_dir),
                "diff",
                "--name-status",
                "--no-renames",
                from_rev,
                to_rev,
            ],
            lambda result: parse_name_status(result.stdout),
            context="git diff --name-status",
        )
        return exec_util.run_typed(spec, runner=self.runner)

    def show_file_at(self, repo_dir: Path, rev: str, path: str) -> bytes:
        spec = self._spec(
            ["-C", str(repo_dir), "show", f"{rev}:{path}"],
            exec_util.parse_stdout_bytes,
            context="git show",
            text=False,
        )
        return exec_util.run_typed(spec, runner=self.runner)
