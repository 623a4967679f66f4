"""Base service ABC.

Services extend BaseService and implement _run(request) -> T. They raise
WhareFailure on expected errors. __call__ catches WhareFailure and invokes
_handle_failure; the default re-raises. Subclasses may override
_handle_failure for recovery or other handling.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from .errors import WhareFailure

R = TypeVar("R")
T = TypeVar("T")


class BaseService(ABC, Generic[R, T]):
    """Abstract base for the init and update services.

    Subclasses implement _run(request) -> T. __call__ wraps _run, catches
    WhareFailure, and invokes _handle_failure. Default _handle_failure
    re-raises; override for recovery or other handling.
    """

    def __call__(self, request: R) -> T:
        try:
            return self._run(request)
        except WhareFailure as e:
            return self._handle_failure(e)

    @abstractmethod
    def _run(self, request: R) -> T:
        """Execute the service logic. Raise WhareFailure on expected errors."""
        ...

    def _handle_failure(self, error: WhareFailure) -> T:
        """Handle WhareFailure. Default re-raises; override for recovery."""
        raise error
