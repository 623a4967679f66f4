"""Runtime settings resolved from CLI flags and the environment.

Flags win over environment variables, which win over built-in defaults.

Example:
    >>> resolve_template_url("https://example.com/template.git")
    'https://example.com/template.git'
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .log import LogLevel, color_disabled, level_from_env, normalize_level
from .paths import DEFAULT_TEMPLATE_URL, TEMPLATE_URL_ENV


def resolve_template_url(override: str | None = None) -> str:
    """Return the template repository URL to sync from."""
    if override and override.strip():
        return override.strip()
    from_env = os.environ.get(TEMPLATE_URL_ENV, "").strip()
    return from_env or DEFAULT_TEMPLATE_URL


def resolve_log_level(override: str | None = None) -> LogLevel:
    if override:
        return normalize_level(override)
    return level_from_env()


@dataclass(frozen=True)
class RunSettings:
    """Settings shared by every command invocation."""

    template_url: str
    log_level: LogLevel
    no_color: bool
    verbose: bool
    dry: bool


def resolve_run_settings(
    *,
    template: str | None = None,
    log_level: str | None = None,
    no_color: bool = False,
    verbose: bool = False,
    dry: bool = False,
) -> RunSettings:
    return RunSettings(
        template_url=resolve_template_url(template),
        log_level=resolve_log_level(log_level),
        no_color=no_color or color_disabled(),
        verbose=verbose,
        dry=dry,
    )
