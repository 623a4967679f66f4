from __future__ import annotations

import io
from pathlib import Path

from rich.console import Console

from whare.log import LogLevel, RunLogger, normalize_level


def _console(buffer: io.StringIO) -> Console:
    return Console(file=buffer, no_color=True, soft_wrap=True, highlight=False)


def test_records_are_buffered_until_flush(tmp_path: Path) -> None:
    out, err = io.StringIO(), io.StringIO()
    logger = RunLogger(console=_console(out), err_console=_console(err))

    logger.info("applied README.md")
    logger.warning("package.json has 1 conflict(s)")

    assert out.getvalue() == ""
    assert err.getvalue() == ""

    log_path = logger.flush(tmp_path / "logs" / "update.log")

    assert log_path == tmp_path / "logs" / "update.log"
    written = log_path.read_text(encoding="utf-8")
    assert "INFO" in written and "applied README.md" in written
    assert "package.json has 1 conflict(s)" in err.getvalue()
    assert out.getvalue() == ""
    assert logger.records == ()


def test_verbose_streams_immediately() -> None:
    out, err = io.StringIO(), io.StringIO()
    logger = RunLogger(verbose=True, console=_console(out), err_console=_console(err))

    logger.info("cloning template")
    logger.error("clone failed")

    assert "cloning template" in out.getvalue()
    assert "clone failed" in err.getvalue()

    logger.flush()

    assert err.getvalue().count("clone failed") == 1


def test_level_filters_records() -> None:
    logger = RunLogger(level=LogLevel.WARNING)

    logger.debug("hidden")
    logger.info("hidden")
    logger.warning("shown")

    assert [record.message for record in logger.records] == ["shown"]


def test_flush_without_records_writes_nothing(tmp_path: Path) -> None:
    logger = RunLogger()

    assert logger.flush(tmp_path / "run.log") is None
    assert not (tmp_path / "run.log").exists()


def test_normalize_level_defaults_to_info() -> None:
    assert normalize_level(None) is LogLevel.INFO
    assert normalize_level("  ") is LogLevel.INFO
    assert normalize_level("WARN") is LogLevel.WARNING
