"""Workspace discovery and matching between project and template trees.

A workspace is a directory directly under one of the category directories
(``packages/`` for libraries, ``apps/`` for applications) that has its own
``package.json``. Project workspaces are matched to template workspaces by
manifest ``name`` so that renaming a workspace directory does not break
updates.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Literal

from .log import RunLogger
from .manifest import read_manifest
from .paths import FALLBACK_WORKSPACES, WORKSPACE_CATEGORIES, manifest_path, strip_dot_slash


@dataclass(frozen=True)
class Workspace:
    """A discovered workspace.

    Attributes:
        root: Absolute workspace directory.
        name: ``name`` field of the workspace manifest.
        category: Category directory the workspace lives under.
    """

    root: Path
    name: str
    category: str


@dataclass(frozen=True)
class TemplateMatch:
    """Template counterpart resolved for a project workspace."""

    workspace: Workspace
    template_root: Path
    matched_by: Literal["name", "fallback"]


def discover(
    root: Path, categories: Iterable[str] = WORKSPACE_CATEGORIES
) -> Iterator[tuple[str, Path]]:
    """Yield ``(category, directory)`` for each workspace directory under ``root``.

    Category directories that do not exist yield nothing.
    """
    for category in categories:
        category_dir = root / category
        if not category_dir.is_dir():
            continue
        for child in sorted(category_dir.iterdir()):
            if child.is_dir():
                yield category, child


def read_workspace_info(directory: Path, category: str) -> Workspace | None:
    """Return workspace details, or ``None`` without a readable named manifest."""
    payload = read_manifest(manifest_path(directory))
    if payload is None:
        return None
    name = payload.get("name")
    if not isinstance(name, str) or not name:
        return None
    return Workspace(root=directory.resolve(), name=name, category=category)


def _workspace_name(directory: Path) -> str | None:
    payload = read_manifest(manifest_path(directory))
    if payload is None:
        return None
    name = payload.get("name")
    return name if isinstance(name, str) else None


def match_in_template(
    workspace: Workspace,
    template_root: Path,
    categories: Iterable[str] = WORKSPACE_CATEGORIES,
) -> Path | None:
    """Find the template workspace whose manifest name equals ``workspace.name``.

    Same-named directories are tried first, in the workspace's own category
    and then the others. Failing that, every template workspace in the same
    category is checked so that renamed directories still resolve.
    """
    ordered = [workspace.category, *[c for c in categories if c != workspace.category]]
    basename = workspace.root.name
    for category in ordered:
        candidate = template_root / category / basename
        if _workspace_name(candidate) == workspace.name:
            return candidate
    for _category, candidate in discover(template_root, [workspace.category]):
        if candidate.name == basename:
            continue
        if _workspace_name(candidate) == workspace.name:
            return candidate
    return None


def fallback_in_template(workspace: Workspace, template_root: Path) -> Path | None:
    """Return the generic template workspace for the workspace's category."""
    fallback_name = FALLBACK_WORKSPACES.get(workspace.category)
    if fallback_name is None:
        return None
    candidate = template_root / workspace.category / fallback_name
    if not manifest_path(candidate).is_file():
        return None
    return candidate


def resolve_template_workspace(
    workspace: Workspace,
    template_root: Path,
    categories: Iterable[str] = WORKSPACE_CATEGORIES,
) -> TemplateMatch | None:
    matched = match_in_template(workspace, template_root, categories)
    if matched is not None:
        return TemplateMatch(workspace=workspace, template_root=matched, matched_by="name")
    fallback = fallback_in_template(workspace, template_root)
    if fallback is not None:
        return TemplateMatch(
            workspace=workspace, template_root=fallback, matched_by="fallback"
        )
    return None


def resolve_ignored_workspaces(project_root: Path, entries: Iterable[str]) -> frozenset[Path]:
    """Resolve configured ignore entries to absolute workspace paths.

    Example:
        >>> sorted(str(p) for p in resolve_ignored_workspaces(Path("/repo"), ["./apps/web"]))
        ['/repo/apps/web']
    """
    resolved: set[Path] = set()
    for entry in entries:
        cleaned = strip_dot_slash(entry.strip())
        if not cleaned:
            continue
        resolved.add((project_root / cleaned).resolve())
    return frozenset(resolved)


class WorkspaceResolver:
    """Aligns project workspaces with their template counterparts."""

    def __init__(
        self,
        project_root: Path,
        template_root: Path,
        *,
        ignored: Iterable[Path] = (),
        categories: Iterable[str] = WORKSPACE_CATEGORIES,
        logger: RunLogger | None = None,
    ) -> None:
        self.project_root = project_root.resolve()
        self.template_root = template_root.resolve()
        self.ignored = frozenset(path.resolve() for path in ignored)
        self.categories = tuple(categories)
        self.logger = logger

    def is_ignored(self, directory: Path) -> bool:
        return directory.resolve() in self.ignored

    def project_workspaces(self) -> Iterator[Workspace]:
        """Yield readable, non-ignored project workspaces."""
        for category, directory in discover(self.project_root, self.categories):
            if self.is_ignored(directory):
                if self.logger is not None:
                    self.logger.info(f"skipping ignored workspace {category}/{directory.name}")
                continue
            info = read_workspace_info(directory, category)
            if info is None:
                if self.logger is not None:
                    self.logger.debug(f"no readable package.json in {category}/{directory.name}")
                continue
            yield info

    def resolve(self, workspace: Workspace) -> TemplateMatch | None:
        return resolve_template_workspace(workspace, self.template_root, self.categories)

    def template_prefix(self, match: TemplateMatch) -> str:
        """Template-relative POSIX path of the matched template workspace."""
        return match.template_root.resolve().relative_to(self.template_root).as_posix()

    def project_prefix(self, workspace: Workspace) -> str:
        """Project-relative POSIX path of a project workspace."""
        return workspace.root.relative_to(self.project_root).as_posix()
