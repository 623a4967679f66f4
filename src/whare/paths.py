"""Path helpers and well-known names used by whare."""

import datetime as dt
from pathlib import Path

from platformdirs import user_log_dir

WHARE_APP_NAME = "whare"
MANIFEST_FILENAME = "package.json"
WHARE_SECTION = "whare"
DEFAULT_TEMPLATE_URL = "https://github.com/hamlim/template-monorepo.git"
TEMPLATE_URL_ENV = "WHARE_TEMPLATE_URL"

LIBRARY_CATEGORY = "packages"
APP_CATEGORY = "apps"
WORKSPACE_CATEGORIES: tuple[str, ...] = (LIBRARY_CATEGORY, APP_CATEGORY)
FALLBACK_WORKSPACES: dict[str, str] = {
    LIBRARY_CATEGORY: "template-library",
    APP_CATEGORY: "template-app",
}

IGNORED_FILENAMES: frozenset[str] = frozenset(
    {
        "bun.lockb",
        "bun.lock",
        "package-lock.json",
        "yarn.lock",
        "pnpm-lock.yaml",
    }
)


def whare_log_dir() -> Path:
    """Return the directory that holds run logs.

    Example:
        >>> isinstance(whare_log_dir(), Path)
        True
    """
    return Path(user_log_dir(WHARE_APP_NAME))


def run_log_path(command: str, now: dt.datetime | None = None) -> Path:
    """Return the log file path for one run of ``command``.

    Example:
        >>> stamp = dt.datetime(2024, 1, 2, 3, 4, 5)
        >>> run_log_path("update", stamp).name
        'update-20240102T030405.log'
    """
    moment = now or dt.datetime.now(tz=dt.timezone.utc)
    return whare_log_dir() / f"{command}-{moment.strftime('%Y%m%dT%H%M%S')}.log"


def manifest_path(directory: Path) -> Path:
    """Return the manifest path for a project or workspace directory.

    Example:
        >>> manifest_path(Path("/tmp/app")).name
        'package.json'
    """
    return directory / MANIFEST_FILENAME


def strip_dot_slash(value: str) -> str:
    """Drop a single leading ``./`` from a configured relative path.

    Example:
        >>> strip_dot_slash("./packages/ui")
        'packages/ui'
    """
    if value.startswith("./"):
        return value[2:]
    return value
