"""Dispatch changed files to a merge strategy by base name."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable

from .log import RunLogger
from .manifest import merge_manifest
from .paths import MANIFEST_FILENAME

MergeFunction = Callable[[str, str, RunLogger], str]


@dataclass(frozen=True)
class MergeStrategy:
    """How to combine a project file with its incoming template version.

    Attributes:
        name: Label used in log output.
        matches: Predicate over the file's base name.
        merge: ``(current, incoming, logger) -> final`` content function.
    """

    name: str
    matches: Callable[[str], bool]
    merge: MergeFunction


def _replace_with_incoming(current: str, incoming: str, logger: RunLogger) -> str:
    del current, logger
    return incoming


REPLACE_STRATEGY = MergeStrategy(
    name="replace",
    matches=lambda _name: True,
    merge=_replace_with_incoming,
)

MANIFEST_STRATEGY = MergeStrategy(
    name="package.json",
    matches=lambda name: name == MANIFEST_FILENAME,
    merge=merge_manifest,
)


class SpecialFileRegistry:
    """Ordered strategy list; the first strategy matching a path wins."""

    def __init__(self, strategies: list[MergeStrategy] | None = None) -> None:
        self._strategies: list[MergeStrategy] = list(strategies or [])

    @property
    def strategies(self) -> tuple[MergeStrategy, ...]:
        return tuple(self._strategies)

    def register(self, strategy: MergeStrategy) -> None:
        self._strategies.append(strategy)

    def resolve(self, path: str) -> MergeStrategy:
        """Return the strategy for ``path``, defaulting to replace-with-incoming.

        Example:
            >>> default_registry().resolve("apps/web/package.json").name
            'package.json'
            >>> default_registry().resolve("README.md").name
            'replace'
        """
        name = PurePosixPath(path).name
        for strategy in self._strategies:
            if strategy.matches(name):
                return strategy
        return REPLACE_STRATEGY

    def apply(
        self,
        path: str,
        current: bytes | None,
        incoming: bytes,
        logger: RunLogger,
    ) -> bytes:
        """Return the content to write for ``path``.

        New files (``current`` is ``None``) and files without a special
        strategy take the incoming bytes as-is. Special strategies work on
        UTF-8 text; when either side does not decode, the current content is
        kept.
        """
        if current is None:
            return incoming
        strategy = self.resolve(path)
        if strategy is REPLACE_STRATEGY:
            return incoming
        try:
            current_text = current.decode("utf-8")
            incoming_text = incoming.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.warning(f"{path} is not UTF-8 text, keeping local version: {exc}")
            return current
        logger.debug(f"merging {path} with {strategy.name} strategy")
        return strategy.merge(current_text, incoming_text, logger).encode("utf-8")


def default_registry() -> SpecialFileRegistry:
    return SpecialFileRegistry([MANIFEST_STRATEGY])
