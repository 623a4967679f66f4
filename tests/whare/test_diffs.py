from __future__ import annotations

import json
from pathlib import Path

import pytest

from whare import diffs
from whare.diffs import ChangeEntry, ChangeKind
from whare.log import RunLogger
from whare.special_files import default_registry


def test_status_to_kind_maps_git_statuses() -> None:
    assert diffs.status_to_kind("A") is ChangeKind.ADD
    assert diffs.status_to_kind("D") is ChangeKind.DELETE
    assert diffs.status_to_kind("M") is ChangeKind.MODIFY
    assert diffs.status_to_kind("T") is ChangeKind.MODIFY
    assert diffs.status_to_kind("R100") is ChangeKind.MODIFY


def test_change_entry_content_rules() -> None:
    with pytest.raises(ValueError):
        ChangeEntry(kind=ChangeKind.DELETE, path="a.txt", content=b"x")
    with pytest.raises(ValueError):
        ChangeEntry(kind=ChangeKind.ADD, path="a.txt")

    entry = ChangeEntry(kind=ChangeKind.ADD, path="a.txt", content=b"x")
    moved = entry.with_path("b/a.txt")

    assert moved == ChangeEntry(kind=ChangeKind.ADD, path="b/a.txt", content=b"x")
    assert entry.path == "a.txt"


def test_compute_changes_reads_content_and_skips_lockfiles(fake_source_factory) -> None:
    source = fake_source_factory(
        {
            "r1": {"README.md": "old", "gone.txt": "bye", "bun.lockb": "1"},
            "r2": {
                "README.md": "new",
                "added.txt": "hi",
                "bun.lockb": "2",
                "apps/x/yarn.lock": "y",
            },
        },
        head="r2",
    )

    entries = diffs.compute_changes(source, Path("/unused"), "r1", "r2")

    assert entries == [
        ChangeEntry(kind=ChangeKind.MODIFY, path="README.md", content=b"new"),
        ChangeEntry(kind=ChangeKind.ADD, path="added.txt", content=b"hi"),
        ChangeEntry(kind=ChangeKind.DELETE, path="gone.txt"),
    ]
    shown = [call[2] for call in source.calls if call[0] == "show_file_at"]
    assert shown == ["README.md", "added.txt"]


def test_apply_add_creates_parent_directories(tmp_path: Path, logger: RunLogger) -> None:
    entry = ChangeEntry(kind=ChangeKind.ADD, path=".github/workflows/ci.yml", content=b"on: push\n")

    written = diffs.apply_change(entry, tmp_path, default_registry(), logger)

    assert written == tmp_path / ".github" / "workflows" / "ci.yml"
    assert written.read_text(encoding="utf-8") == "on: push\n"


def test_apply_modify_replaces_plain_files(tmp_path: Path, logger: RunLogger) -> None:
    (tmp_path / "README.md").write_text("local edits", encoding="utf-8")
    entry = ChangeEntry(kind=ChangeKind.MODIFY, path="README.md", content=b"template")

    diffs.apply_change(entry, tmp_path, default_registry(), logger)

    assert (tmp_path / "README.md").read_text(encoding="utf-8") == "template"


def test_apply_writes_binary_and_crlf_content_unchanged(
    tmp_path: Path, logger: RunLogger
) -> None:
    icon = b"\x00\x01\xff\xfe\x89P"
    script = b"@echo off\r\necho hi\r\n"
    (tmp_path / "apps/web/public").mkdir(parents=True)
    (tmp_path / "apps/web/public/favicon.ico").write_bytes(b"\xff\xd8old")
    entries = [
        ChangeEntry(kind=ChangeKind.MODIFY, path="apps/web/public/favicon.ico", content=icon),
        ChangeEntry(kind=ChangeKind.ADD, path="scripts/setup.bat", content=script),
    ]

    for entry in entries:
        diffs.apply_change(entry, tmp_path, default_registry(), logger)

    assert (tmp_path / "apps/web/public/favicon.ico").read_bytes() == icon
    assert (tmp_path / "scripts/setup.bat").read_bytes() == script


def test_apply_modify_merges_manifests(tmp_path: Path, logger: RunLogger) -> None:
    (tmp_path / "package.json").write_text(
        json.dumps({"name": "mine", "scripts": {"dev": "vite"}}, indent=2), encoding="utf-8"
    )
    entry = ChangeEntry(
        kind=ChangeKind.MODIFY,
        path="package.json",
        content=json.dumps({"name": "tmpl", "scripts": {"lint": "biome lint"}}, indent=2).encode(),
    )

    diffs.apply_change(entry, tmp_path, default_registry(), logger)

    merged = json.loads((tmp_path / "package.json").read_text(encoding="utf-8"))
    assert merged == {"name": "mine", "scripts": {"dev": "vite", "lint": "biome lint"}}


def test_apply_delete_removes_file_and_tolerates_absence(
    tmp_path: Path, logger: RunLogger
) -> None:
    target = tmp_path / "old.txt"
    target.write_text("x", encoding="utf-8")
    entry = ChangeEntry(kind=ChangeKind.DELETE, path="old.txt")

    diffs.apply_change(entry, tmp_path, default_registry(), logger)
    diffs.apply_change(entry, tmp_path, default_registry(), logger)

    assert not target.exists()


@pytest.mark.parametrize("path", ["../escape.txt", "/etc/passwd", "a/../../b", ""])
def test_apply_refuses_paths_outside_root(
    tmp_path: Path, logger: RunLogger, path: str
) -> None:
    entry = ChangeEntry(kind=ChangeKind.ADD, path=path, content=b"x")

    with pytest.raises(diffs.UnsafePathError):
        diffs.apply_change(entry, tmp_path, default_registry(), logger)
