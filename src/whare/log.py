"""Buffered run logging for whare commands.

A :class:`RunLogger` is created once per CLI invocation and handed to every
component that reports progress. Records are kept in memory and written to a
run log when the command finishes; ``verbose`` mode also streams each record
to the terminal as it is emitted.
"""

from __future__ import annotations

import datetime as dt
import os
import sys
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

from rich.console import Console
from rich.text import Text


class LogLevel(IntEnum):
    TRACE = 10
    DEBUG = 20
    INFO = 30
    SUCCESS = 35
    WARNING = 40
    ERROR = 50


_LEVEL_BY_NAME = {
    "trace": LogLevel.TRACE,
    "debug": LogLevel.DEBUG,
    "info": LogLevel.INFO,
    "success": LogLevel.SUCCESS,
    "warning": LogLevel.WARNING,
    "warn": LogLevel.WARNING,
    "error": LogLevel.ERROR,
}
LEVEL_NAMES = tuple(_LEVEL_BY_NAME)
DEFAULT_LEVEL = LogLevel.INFO


def normalize_level(value: str | None) -> LogLevel:
    """Map a level name to a :class:`LogLevel`, defaulting to ``INFO``.

    Example:
        >>> normalize_level("Debug")
        <LogLevel.DEBUG: 20>
        >>> normalize_level("bogus")
        <LogLevel.INFO: 30>
    """
    if value is None:
        return DEFAULT_LEVEL
    normalized = value.strip().lower()
    if not normalized:
        return DEFAULT_LEVEL
    return _LEVEL_BY_NAME.get(normalized, DEFAULT_LEVEL)


def level_from_env() -> LogLevel:
    return normalize_level(os.environ.get("WHARE_LOG_LEVEL"))


def color_disabled() -> bool:
    return bool(os.environ.get("NO_COLOR") or os.environ.get("WHARE_NO_COLOR"))


def make_console(*, stderr: bool, no_color: bool | None = None) -> Console:
    return Console(
        file=sys.stderr if stderr else sys.stdout,
        soft_wrap=True,
        highlight=False,
        no_color=color_disabled() if no_color is None else no_color,
    )


def _default_style(level: LogLevel) -> str:
    if level is LogLevel.TRACE:
        return "dim"
    if level is LogLevel.DEBUG:
        return "cyan"
    if level is LogLevel.SUCCESS:
        return "green"
    if level is LogLevel.WARNING:
        return "yellow"
    if level is LogLevel.ERROR:
        return "bold red"
    return ""


@dataclass(frozen=True)
class LogRecord:
    level: LogLevel
    message: str
    created_at: dt.datetime

    def format(self) -> str:
        stamp = self.created_at.strftime("%Y-%m-%dT%H:%M:%SZ")
        return f"{stamp} {self.level.name:<7} {self.message}"


class RunLogger:
    """Collects log records for a single run.

    Args:
        verbose: Stream records to the terminal as they are emitted.
        level: Minimum level that is recorded at all.
        console: Console used for non-warning output.
        err_console: Console used for warnings and errors.
    """

    def __init__(
        self,
        *,
        verbose: bool = False,
        level: LogLevel = DEFAULT_LEVEL,
        console: Console | None = None,
        err_console: Console | None = None,
    ) -> None:
        self.verbose = verbose
        self.level = level
        self._console = console
        self._err_console = err_console
        self._records: list[LogRecord] = []

    @property
    def records(self) -> tuple[LogRecord, ...]:
        return tuple(self._records)

    def is_enabled(self, level: LogLevel) -> bool:
        return level >= self.level

    def emit(self, level: LogLevel, message: str, *, style: str | None = None) -> None:
        if not self.is_enabled(level):
            return
        record = LogRecord(
            level=level,
            message=message,
            created_at=dt.datetime.now(tz=dt.timezone.utc),
        )
        self._records.append(record)
        if self.verbose:
            self._print(record, style=style)

    def trace(self, message: str) -> None:
        self.emit(LogLevel.TRACE, message)

    def debug(self, message: str) -> None:
        self.emit(LogLevel.DEBUG, message)

    def info(self, message: str) -> None:
        self.emit(LogLevel.INFO, message)

    def success(self, message: str) -> None:
        self.emit(LogLevel.SUCCESS, message)

    def warning(self, message: str) -> None:
        self.emit(LogLevel.WARNING, message)

    def error(self, message: str) -> None:
        self.emit(LogLevel.ERROR, message)

    def flush(self, log_path: Path | None = None) -> Path | None:
        """Write buffered records out and clear the buffer.

        Records go to ``log_path`` when one is given. Outside verbose mode,
        warnings and errors are echoed to stderr since they were never shown.

        Returns:
            The log path written, or ``None`` when nothing was written.
        """
        records = self._records
        self._records = []
        if not self.verbose:
            for record in records:
                if record.level >= LogLevel.WARNING:
                    self._print(record)
        if log_path is None or not records:
            return None
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("a", encoding="utf-8") as fh:
            for record in records:
                fh.write(record.format())
                fh.write("\n")
        return log_path

    def _print(self, record: LogRecord, *, style: str | None = None) -> None:
        stderr = record.level >= LogLevel.WARNING
        if stderr:
            if self._err_console is None:
                self._err_console = make_console(stderr=True)
            console = self._err_console
        else:
            if self._console is None:
                self._console = make_console(stderr=False)
            console = self._console
        console.print(Text(record.message, style=style or _default_style(record.level)))
