# ruff: noqa: E402

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
from _pytest.doctest import DoctestModule

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from whare.log import LogLevel, RunLogger

DOCTEST_MODULES = {
    ROOT / "src" / "whare" / "__init__.py",
    ROOT / "src" / "whare" / "config.py",
    ROOT / "src" / "whare" / "conflicts.py",
    ROOT / "src" / "whare" / "diffs.py",
    ROOT / "src" / "whare" / "git.py",
    ROOT / "src" / "whare" / "log.py",
    ROOT / "src" / "whare" / "manifest.py",
    ROOT / "src" / "whare" / "models.py",
    ROOT / "src" / "whare" / "paths.py",
    ROOT / "src" / "whare" / "special_files.py",
    ROOT / "src" / "whare" / "update.py",
    ROOT / "src" / "whare" / "workspaces.py",
}


def pytest_collect_file(
    parent: pytest.Collector, file_path: Path
) -> DoctestModule | None:
    path = file_path if isinstance(file_path, Path) else Path(str(file_path))
    if path in DOCTEST_MODULES:
        return DoctestModule.from_parent(parent, path=path)
    return None


class FakeVersionSource:
    """In-memory VersionSource.

    ``trees`` maps a revision to ``{path: content}``. Content may be text or
    bytes and is served as bytes. ``clone`` materializes the ``head``
    revision; diffs are computed between two stored trees.
    """

    def __init__(self, trees: dict[str, dict[str, str | bytes]], head: str) -> None:
        self.trees = trees
        self.head = head
        self.calls: list[tuple[str, ...]] = []

    def get_head_revision(self, repo_url: str) -> str:
        self.calls.append(("get_head_revision", repo_url))
        return self.head

    def clone(self, repo_url: str, dest_dir: Path) -> None:
        self.calls.append(("clone", repo_url))
        write_tree(dest_dir, self.trees[self.head])

    def diff_name_status(
        self, repo_dir: Path, from_rev: str, to_rev: str
    ) -> list[tuple[str, str]]:
        self.calls.append(("diff_name_status", from_rev, to_rev))
        before = self.trees[from_rev]
        after = self.trees[to_rev]
        entries: list[tuple[str, str]] = []
        for path in sorted(set(before) | set(after)):
            if path not in before:
                entries.append(("A", path))
            elif path not in after:
                entries.append(("D", path))
            elif before[path] != after[path]:
                entries.append(("M", path))
        return entries

    def show_file_at(self, repo_dir: Path, rev: str, path: str) -> bytes:
        self.calls.append(("show_file_at", rev, path))
        return _as_bytes(self.trees[rev][path])


def dump_json(payload: dict) -> str:
    return json.dumps(payload, indent=2) + "\n"


def _as_bytes(content: str | bytes) -> bytes:
    return content.encode("utf-8") if isinstance(content, str) else content


def write_tree(root: Path, files: dict[str, str | bytes]) -> None:
    for rel, content in files.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(_as_bytes(content))


@pytest.fixture
def logger() -> RunLogger:
    return RunLogger(verbose=False, level=LogLevel.TRACE)


@pytest.fixture
def fake_source_factory():
    return FakeVersionSource


@pytest.fixture
def tree_writer():
    return write_tree


@pytest.fixture
def json_text():
    return dump_json
