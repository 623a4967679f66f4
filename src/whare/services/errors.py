"""Service failure contracts.

Services return typed outcomes on success and raise WhareFailure on expected
domain/collaborator/runtime failures. Programmer bugs raise normal exceptions.
"""

from __future__ import annotations

from typing import Literal

WhareFailureCode = Literal[
    "validation_failed",
    "external_command_failed",
    "io_failed",
    "unexpected_state",
]


class WhareFailure(Exception):
    """Expected failure of an update or init run.

    Raised by services instead of returning a failure value. Use ``raise
    WhareFailure(...) from exc`` to chain a causing exception; it is
    available as ``__cause__``. The CLI catches WhareFailure, prints the
    message and exits non-zero.
    """

    def __init__(
        self,
        code: WhareFailureCode,
        message: str,
        *,
        recovery_hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.recovery_hint = recovery_hint


class ValidationFailedError(WhareFailure):
    """Validation failed (missing manifest, untracked revision, bad target)."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("validation_failed", message, recovery_hint=recovery_hint)


class ExternalCommandFailedError(WhareFailure):
    """External command (git) failed."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("external_command_failed", message, recovery_hint=recovery_hint)


class IoFailedError(WhareFailure):
    """I/O operation failed (read, write, manifest rewrite)."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("io_failed", message, recovery_hint=recovery_hint)


class UnexpectedStateError(WhareFailure):
    """Unexpected or inconsistent state."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("unexpected_state", message, recovery_hint=recovery_hint)
