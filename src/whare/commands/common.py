"""Shared helpers for command implementations."""

from __future__ import annotations

from typing import NoReturn

from .. import config, paths
from ..io import die, warn
from ..log import RunLogger, make_console
from ..services import WhareFailure


def settings_from_args(args: object) -> config.RunSettings:
    return config.resolve_run_settings(
        template=getattr(args, "template", None),
        log_level=getattr(args, "log_level", None),
        no_color=bool(getattr(args, "no_color", False)),
        verbose=bool(getattr(args, "verbose", False)),
        dry=bool(getattr(args, "dry", False)),
    )


def make_logger(settings: config.RunSettings) -> RunLogger:
    return RunLogger(
        verbose=settings.verbose,
        level=settings.log_level,
        console=make_console(stderr=False, no_color=settings.no_color),
        err_console=make_console(stderr=True, no_color=settings.no_color),
    )


def finish_run(logger: RunLogger, command: str) -> None:
    """Flush buffered log records to the run log for ``command``."""
    try:
        logger.flush(paths.run_log_path(command))
    except OSError as exc:
        warn(f"could not write run log: {exc}")


def fail(logger: RunLogger, command: str, failure: WhareFailure) -> NoReturn:
    logger.error(str(failure))
    finish_run(logger, command)
    die(str(failure), hint=failure.recovery_hint)
