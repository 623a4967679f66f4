"""Command implementations exposed by the whare CLI."""

from .init import init_project
from .update import update_project

__all__ = [
    "init_project",
    "update_project",
]
