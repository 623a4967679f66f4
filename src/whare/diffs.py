"""Template change entries and applying them to a project tree."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Iterable

from .git import VersionSource
from .log import RunLogger
from .paths import IGNORED_FILENAMES
from .special_files import SpecialFileRegistry


class ChangeKind(str, Enum):
    ADD = "add"
    MODIFY = "modify"
    DELETE = "delete"


class UnsafePathError(ValueError):
    """Raised when a change would write outside its destination root."""


@dataclass(frozen=True)
class ChangeEntry:
    """One file-level change between two template revisions.

    Attributes:
        kind: Whether the file was added, modified, or deleted.
        path: POSIX path relative to the tree the entry currently targets.
        content: New file content as raw bytes; ``None`` for deletions.
    """

    kind: ChangeKind
    path: str
    content: bytes | None = None

    def __post_init__(self) -> None:
        if self.kind is ChangeKind.DELETE and self.content is not None:
            raise ValueError("delete entries carry no content")
        if self.kind is not ChangeKind.DELETE and self.content is None:
            raise ValueError(f"{self.kind.value} entries require content")

    def with_path(self, path: str) -> ChangeEntry:
        return dataclasses.replace(self, path=path)


def status_to_kind(status: str) -> ChangeKind:
    """Map a ``git diff --name-status`` status to a change kind.

    Example:
        >>> status_to_kind("A"), status_to_kind("D"), status_to_kind("T")
        (<ChangeKind.ADD: 'add'>, <ChangeKind.DELETE: 'delete'>, <ChangeKind.MODIFY: 'modify'>)
    """
    code = status[:1].upper()
    if code == "A":
        return ChangeKind.ADD
    if code == "D":
        return ChangeKind.DELETE
    return ChangeKind.MODIFY


def compute_changes(
    source: VersionSource,
    repo_dir: Path,
    from_rev: str,
    to_rev: str,
    *,
    ignored_names: Iterable[str] = IGNORED_FILENAMES,
    logger: RunLogger | None = None,
) -> list[ChangeEntry]:
    """Return the ordered change entries between two template revisions.

    Files whose base name is in ``ignored_names`` are dropped. Content for
    added and modified files is read at ``to_rev``.
    """
    ignored = frozenset(ignored_names)
    entries: list[ChangeEntry] = []
    for status, path in source.diff_name_status(repo_dir, from_rev, to_rev):
        if PurePosixPath(path).name in ignored:
            if logger is not None:
                logger.debug(f"ignoring {path}")
            continue
        kind = status_to_kind(status)
        if kind is ChangeKind.DELETE:
            entries.append(ChangeEntry(kind=kind, path=path))
            continue
        content = source.show_file_at(repo_dir, to_rev, path)
        entries.append(ChangeEntry(kind=kind, path=path, content=content))
    return entries


def destination_for(root: Path, relative: str) -> Path:
    """Resolve ``relative`` under ``root``, refusing paths that escape it."""
    pure = PurePosixPath(relative)
    if pure.is_absolute() or ".." in pure.parts or not pure.parts:
        raise UnsafePathError(f"refusing to apply change outside project: {relative}")
    return root.joinpath(*pure.parts)


def _read_existing(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


def apply_change(
    entry: ChangeEntry,
    destination_root: Path,
    registry: SpecialFileRegistry,
    logger: RunLogger,
) -> Path:
    """Apply one change whose path is relative to ``destination_root``.

    Returns:
        The destination file path.
    """
    destination = destination_for(destination_root, entry.path)
    if entry.kind is ChangeKind.DELETE:
        try:
            destination.unlink()
        except FileNotFoundError:
            logger.debug(f"already absent: {entry.path}")
        else:
            logger.info(f"deleted {entry.path}")
        return destination

    assert entry.content is not None
    destination.parent.mkdir(parents=True, exist_ok=True)
    current = _read_existing(destination)
    final = registry.apply(entry.path, current, entry.content, logger)
    destination.write_bytes(final)
    verb = "created" if current is None else "updated"
    logger.info(f"{verb} {entry.path}")
    return destination
