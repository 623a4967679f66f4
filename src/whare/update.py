"""Bring a project up to date with the current template revision.

The update runs as a fixed sequence of states::

    IDLE -> REVISION_FETCHED -> DIFFS_COMPUTED -> NO_CHANGES
                                              -> ROOT_DIFFS_APPLIED
                                                 -> WORKSPACES_PROCESSED
                                                 -> REVISION_REWRITTEN

A dry run stops after the plan is built (``DRY_RUN``) and writes nothing.
Changes are applied one at a time in diff order; a failure partway through
leaves the project partially updated and the tracked revision unchanged.
"""

from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Callable, Iterable, TypeVar

from . import exec as exec_util
from .diffs import ChangeEntry, UnsafePathError, apply_change, compute_changes
from .git import VersionSource
from .log import RunLogger
from .manifest import (
    ManifestError,
    load_whare_section,
    parse_document,
    set_tracked_revision,
)
from .paths import DEFAULT_TEMPLATE_URL, IGNORED_FILENAMES, manifest_path
from .services import (
    BaseService,
    ExternalCommandFailedError,
    IoFailedError,
    ValidationFailedError,
)
from .special_files import SpecialFileRegistry, default_registry
from .workspaces import Workspace, WorkspaceResolver, resolve_ignored_workspaces

T = TypeVar("T")

_PARTIAL_HINT = "the project may be partially updated; review `git status` before retrying"


class UpdateState(str, Enum):
    IDLE = "idle"
    REVISION_FETCHED = "revision_fetched"
    DIFFS_COMPUTED = "diffs_computed"
    NO_CHANGES = "no_changes"
    DRY_RUN = "dry_run"
    ROOT_DIFFS_APPLIED = "root_diffs_applied"
    WORKSPACES_PROCESSED = "workspaces_processed"
    REVISION_REWRITTEN = "revision_rewritten"


@dataclass(frozen=True)
class UpdateRequest:
    project_root: Path
    template_url: str = DEFAULT_TEMPLATE_URL
    dry: bool = False
    ignored_names: frozenset[str] = IGNORED_FILENAMES


@dataclass
class WorkspaceChanges:
    workspace: Workspace
    project_prefix: str
    template_prefix: str
    entries: list[ChangeEntry] = field(default_factory=list)


@dataclass
class UpdatePlan:
    """Project-relative changes, grouped in the order they are applied."""

    root: list[ChangeEntry] = field(default_factory=list)
    workspaces: list[WorkspaceChanges] = field(default_factory=list)
    skipped_workspaces: list[str] = field(default_factory=list)

    @property
    def workspace_change_count(self) -> int:
        return sum(len(group.entries) for group in self.workspaces)


@dataclass
class UpdateOutcome:
    state: UpdateState
    from_revision: str
    to_revision: str | None = None
    total_changes: int = 0
    root_changes: int = 0
    workspace_changes: int = 0
    skipped_workspaces: list[str] = field(default_factory=list)
    applied_paths: list[Path] = field(default_factory=list)


def is_workspace_path(path: str, categories: Iterable[str]) -> bool:
    """Return whether a template path lies inside a workspace directory.

    Example:
        >>> is_workspace_path("packages/ui/package.json", ["packages", "apps"])
        True
        >>> is_workspace_path("package.json", ["packages", "apps"])
        False
    """
    parts = PurePosixPath(path).parts
    return len(parts) >= 3 and parts[0] in set(categories)


def translate_path(path: str, template_prefix: str, project_prefix: str) -> str | None:
    """Move ``path`` from a template workspace onto a project workspace.

    Returns ``None`` when ``path`` is not under ``template_prefix``.

    Example:
        >>> translate_path("packages/template-library/src/index.ts",
        ...                "packages/template-library", "packages/ui")
        'packages/ui/src/index.ts'
    """
    if path == template_prefix:
        return project_prefix
    if path.startswith(template_prefix + "/"):
        return project_prefix + path[len(template_prefix) :]
    return None


def plan_update(
    entries: list[ChangeEntry],
    resolver: WorkspaceResolver,
    logger: RunLogger,
) -> UpdatePlan:
    """Route template changes to the root or to matching project workspaces."""
    plan = UpdatePlan()
    workspace_entries: list[ChangeEntry] = []
    for entry in entries:
        if is_workspace_path(entry.path, resolver.categories):
            workspace_entries.append(entry)
        else:
            plan.root.append(entry)

    used: set[str] = set()
    for workspace in resolver.project_workspaces():
        project_prefix = resolver.project_prefix(workspace)
        match = resolver.resolve(workspace)
        if match is None:
            logger.info(
                f"no template workspace matches {project_prefix} ({workspace.name}); skipping"
            )
            plan.skipped_workspaces.append(project_prefix)
            continue
        template_prefix = resolver.template_prefix(match)
        if match.matched_by == "fallback":
            logger.info(f"{project_prefix} follows generic template {template_prefix}")
        else:
            logger.debug(f"{project_prefix} follows template {template_prefix}")
        group = WorkspaceChanges(
            workspace=workspace,
            project_prefix=project_prefix,
            template_prefix=template_prefix,
        )
        for entry in workspace_entries:
            translated = translate_path(entry.path, template_prefix, project_prefix)
            if translated is None:
                continue
            used.add(entry.path)
            group.entries.append(entry.with_path(translated))
        plan.workspaces.append(group)

    for entry in workspace_entries:
        if entry.path not in used:
            logger.debug(f"no project workspace receives {entry.path}")
    return plan


class UpdateService(BaseService[UpdateRequest, UpdateOutcome]):
    """Apply template changes since the tracked revision to a project."""

    def __init__(
        self,
        source: VersionSource,
        logger: RunLogger,
        *,
        registry: SpecialFileRegistry | None = None,
    ) -> None:
        self.source = source
        self.logger = logger
        self.registry = registry or default_registry()
        self.state = UpdateState.IDLE
        self.history: list[UpdateState] = [UpdateState.IDLE]

    def _transition(self, state: UpdateState) -> None:
        self.state = state
        self.history.append(state)
        self.logger.debug(f"update state: {state.value}")

    def _call_source(self, action: str, func: Callable[[], T]) -> T:
        try:
            return func()
        except (exec_util.CommandExecutionError, exec_util.CommandParseError) as exc:
            raise ExternalCommandFailedError(f"failed to {action}: {exc}") from exc

    def _tracked_revision(self, project_root: Path) -> tuple[str, list[str]]:
        manifest_file = manifest_path(project_root)
        if not manifest_file.is_file():
            raise ValidationFailedError(
                f"no package.json found at {project_root}",
                recovery_hint="run `whare init` to create a project from the template",
            )
        try:
            payload = parse_document(manifest_file.read_text(encoding="utf-8"))
            section = load_whare_section(payload)
        except ValueError as exc:
            raise ValidationFailedError(f"cannot read {manifest_file}: {exc}") from exc
        if not section.version:
            raise ValidationFailedError(
                "package.json does not record a template revision (whare.version)",
                recovery_hint="set whare.version to the template commit the project started from",
            )
        return section.version, section.ignored_workspaces

    def _run(self, request: UpdateRequest) -> UpdateOutcome:
        logger = self.logger
        project_root = request.project_root.resolve()
        from_revision, ignored_entries = self._tracked_revision(project_root)
        logger.info(f"project tracks template revision {from_revision}")

        to_revision = self._call_source(
            "look up the template revision",
            lambda: self.source.get_head_revision(request.template_url),
        )
        self._transition(UpdateState.REVISION_FETCHED)
        logger.info(f"template head is {to_revision}")
        outcome = UpdateOutcome(
            state=self.state, from_revision=from_revision, to_revision=to_revision
        )

        with tempfile.TemporaryDirectory(prefix="whare-template-") as tmp:
            template_root = Path(tmp) / "template"
            entries: list[ChangeEntry] = []
            if from_revision != to_revision:
                self._call_source(
                    "clone the template",
                    lambda: self.source.clone(request.template_url, template_root),
                )
                entries = self._call_source(
                    "compute template changes",
                    lambda: compute_changes(
                        self.source,
                        template_root,
                        from_revision,
                        to_revision,
                        ignored_names=request.ignored_names,
                        logger=logger,
                    ),
                )
            self._transition(UpdateState.DIFFS_COMPUTED)
            outcome.total_changes = len(entries)

            if not entries:
                self._transition(UpdateState.NO_CHANGES)
                outcome.state = self.state
                logger.success("project is already up to date with the template")
                return outcome

            resolver = WorkspaceResolver(
                project_root,
                template_root,
                ignored=resolve_ignored_workspaces(project_root, ignored_entries),
                logger=logger,
            )
            plan = plan_update(entries, resolver, logger)

        outcome.root_changes = len(plan.root)
        outcome.workspace_changes = plan.workspace_change_count
        outcome.skipped_workspaces = list(plan.skipped_workspaces)

        if request.dry:
            self._transition(UpdateState.DRY_RUN)
            outcome.state = self.state
            logger.info(f"[Dry Run] Would apply {outcome.root_changes} root change(s)")
            for group in plan.workspaces:
                logger.info(
                    f"[Dry Run] Would apply {len(group.entries)} change(s) to "
                    f"{group.project_prefix} from {group.template_prefix}"
                )
            logger.info(f"[Dry Run] Would record template revision {to_revision}")
            return outcome

        for entry in plan.root:
            outcome.applied_paths.append(self._apply(entry, project_root))
        self._transition(UpdateState.ROOT_DIFFS_APPLIED)

        for group in plan.workspaces:
            for entry in group.entries:
                outcome.applied_paths.append(self._apply(entry, project_root))
        self._transition(UpdateState.WORKSPACES_PROCESSED)

        self._rewrite_revision(project_root, from_revision, to_revision)
        self._transition(UpdateState.REVISION_REWRITTEN)
        outcome.state = self.state
        logger.success(f"updated project to template revision {to_revision}")
        return outcome

    def _apply(self, entry: ChangeEntry, project_root: Path) -> Path:
        try:
            return apply_change(entry, project_root, self.registry, self.logger)
        except (OSError, UnsafePathError) as exc:
            raise IoFailedError(
                f"failed to apply {entry.path}: {exc}", recovery_hint=_PARTIAL_HINT
            ) from exc

    def _rewrite_revision(self, project_root: Path, previous: str, revision: str) -> None:
        manifest_file = manifest_path(project_root)
        try:
            text = manifest_file.read_text(encoding="utf-8")
            manifest_file.write_text(
                set_tracked_revision(text, revision, previous), encoding="utf-8"
            )
        except (OSError, ManifestError) as exc:
            raise IoFailedError(
                f"failed to record template revision {revision}: {exc}",
                recovery_hint=_PARTIAL_HINT,
            ) from exc
