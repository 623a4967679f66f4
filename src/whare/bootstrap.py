"""Create a new project from the template repository."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from . import exec as exec_util
from .git import VersionSource
from .log import RunLogger
from .manifest import ManifestError, set_tracked_revision
from .paths import DEFAULT_TEMPLATE_URL, manifest_path
from .services import (
    BaseService,
    ExternalCommandFailedError,
    IoFailedError,
    UnexpectedStateError,
    ValidationFailedError,
)


@dataclass(frozen=True)
class InitRequest:
    target: Path
    template_url: str = DEFAULT_TEMPLATE_URL
    dry: bool = False


@dataclass(frozen=True)
class InitOutcome:
    target: Path
    revision: str
    dry: bool


class InitService(BaseService[InitRequest, InitOutcome]):
    """Clone the template into an empty directory and start tracking it."""

    def __init__(self, source: VersionSource, logger: RunLogger) -> None:
        self.source = source
        self.logger = logger

    def _run(self, request: InitRequest) -> InitOutcome:
        target = request.target.resolve()
        try:
            revision = self.source.get_head_revision(request.template_url)
        except (exec_util.CommandExecutionError, exec_util.CommandParseError) as exc:
            raise ExternalCommandFailedError(
                f"failed to look up the template revision: {exc}"
            ) from exc

        if request.dry:
            self.logger.info(f"[Dry Run] Would initialize new project at: {target}")
            self.logger.info(f"[Dry Run] Would clone template from: {request.template_url}")
            self.logger.info(
                f"[Dry Run] Would update package.json with template version hash: {revision}"
            )
            return InitOutcome(target=target, revision=revision, dry=True)

        if target.exists() and (not target.is_dir() or any(target.iterdir())):
            raise ValidationFailedError(
                f"{target} already exists and is not an empty directory",
                recovery_hint="choose a new path, or use `whare update` for existing projects",
            )

        try:
            self.source.clone(request.template_url, target)
        except exec_util.CommandExecutionError as exc:
            raise ExternalCommandFailedError(f"failed to clone the template: {exc}") from exc
        vcs_dir = target / ".git"
        if vcs_dir.exists():
            try:
                shutil.rmtree(vcs_dir)
            except OSError as exc:
                raise IoFailedError(f"failed to remove template history: {exc}") from exc

        manifest_file = manifest_path(target)
        if not manifest_file.is_file():
            raise UnexpectedStateError("template does not contain a root package.json")
        try:
            text = manifest_file.read_text(encoding="utf-8")
            manifest_file.write_text(set_tracked_revision(text, revision), encoding="utf-8")
        except (OSError, ManifestError) as exc:
            raise IoFailedError(f"failed to record template revision: {exc}") from exc

        self.logger.success(f"initialized project at {target} from template {revision}")
        return InitOutcome(target=target, revision=revision, dry=False)
