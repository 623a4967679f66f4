"""Implementation for the ``whare init`` command."""

from __future__ import annotations

from pathlib import Path

from ..bootstrap import InitRequest, InitService
from ..git import GitVersionSource
from ..io import say
from ..services import WhareFailure
from .common import fail, finish_run, make_logger, settings_from_args


def init_project(args: object) -> None:
    """Create a new project at ``args.path`` from the template."""
    settings = settings_from_args(args)
    logger = make_logger(settings)
    target = Path(str(getattr(args, "path", ".") or "."))
    service = InitService(GitVersionSource(), logger)
    try:
        outcome = service(
            InitRequest(target=target, template_url=settings.template_url, dry=settings.dry)
        )
    except WhareFailure as failure:
        fail(logger, "init", failure)
    finish_run(logger, "init")
    if outcome.dry:
        say(f"[Dry Run] Would initialize {outcome.target} at template {outcome.revision}.")
        return
    say(f"Initialized {outcome.target} from template {outcome.revision}.")
