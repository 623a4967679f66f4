"""Implementation for the ``whare update`` command."""

from __future__ import annotations

from pathlib import Path

from ..git import GitVersionSource
from ..io import say
from ..services import WhareFailure
from ..update import UpdateOutcome, UpdateRequest, UpdateService, UpdateState
from .common import fail, finish_run, make_logger, settings_from_args


def _summary(outcome: UpdateOutcome) -> str:
    if outcome.state is UpdateState.NO_CHANGES:
        return "Already up to date with the template (0 changes)."
    counts = (
        f"{outcome.total_changes} template change(s): "
        f"{outcome.root_changes} root, {outcome.workspace_changes} workspace"
    )
    if outcome.state is UpdateState.DRY_RUN:
        return f"[Dry Run] Would apply {counts}."
    return f"Updated to template {outcome.to_revision}; applied {counts}."


def update_project(args: object) -> None:
    """Sync the project at ``args.path`` with the template's head revision."""
    settings = settings_from_args(args)
    logger = make_logger(settings)
    project_root = Path(str(getattr(args, "path", ".") or "."))
    service = UpdateService(GitVersionSource(), logger)
    try:
        outcome = service(
            UpdateRequest(
                project_root=project_root,
                template_url=settings.template_url,
                dry=settings.dry,
            )
        )
    except WhareFailure as failure:
        fail(logger, "update", failure)
    finish_run(logger, "update")
    say(_summary(outcome))
    for skipped in outcome.skipped_workspaces:
        say(f"  skipped {skipped}: no matching template workspace")
