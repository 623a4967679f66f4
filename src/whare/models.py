"""Pydantic models for whare configuration data."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WhareSection(BaseModel):
    """The ``whare`` section of a project's root ``package.json``.

    Attributes:
        version: Template revision the project was last synced to.
        ignored_workspaces: Workspace paths, relative to the project root,
            that updates never touch.

    Example:
        >>> WhareSection.model_validate({"version": "abc123"}).version
        'abc123'
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    version: str | None = None
    ignored_workspaces: list[str] = Field(
        default_factory=list, alias="ignoredWorkspaces"
    )

    @field_validator("version", mode="before")
    @classmethod
    def normalize_version(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @field_validator("ignored_workspaces", mode="before")
    @classmethod
    def normalize_ignored(cls, value: object) -> object:
        if value is None:
            return []
        return value
