from .base import BaseService
from .errors import (
    ExternalCommandFailedError,
    IoFailedError,
    UnexpectedStateError,
    ValidationFailedError,
    WhareFailure,
)

__all__ = [
    "BaseService",
    "ExternalCommandFailedError",
    "IoFailedError",
    "UnexpectedStateError",
    "ValidationFailedError",
    "WhareFailure",
]
