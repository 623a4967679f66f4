"""Field-level merging and I/O for ``package.json`` manifests.

Incoming (template) manifests are merged into the project's copy one
top-level key at a time:

- protected identity fields keep the project's value;
- dependency groups and scripts are merged one level deep, with diverged
  entries rendered as conflict markup;
- every other key takes the template's value.
"""

from __future__ import annotations

import itertools
import json
from pathlib import Path
from typing import Any, Iterator

from pydantic import ValidationError

from . import conflicts
from .conflicts import ConflictRecord
from .log import RunLogger
from .models import WhareSection
from .paths import WHARE_SECTION

PROTECTED_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "version",
        "private",
        "description",
        "author",
        "license",
        "repository",
        "bugs",
        "homepage",
        WHARE_SECTION,
    }
)
MERGE_FIELDS: frozenset[str] = frozenset(
    {
        "dependencies",
        "devDependencies",
        "peerDependencies",
        "optionalDependencies",
        "scripts",
    }
)


class ManifestError(ValueError):
    """Raised when a manifest cannot be parsed or updated."""


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def has_value_changed(current: Any, incoming: Any) -> bool:
    """Return whether two JSON values differ structurally.

    ``MISSING`` stands for an absent key and only equals itself. Strings,
    numbers, booleans and ``None`` never equal a value of another type; lists
    compare element by element in order; objects compare by key set and
    per-key value regardless of insertion order.

    Example:
        >>> has_value_changed({"a": [1, 2]}, {"a": [1, 2]})
        False
        >>> has_value_changed("123", 123)
        True
        >>> has_value_changed(None, MISSING)
        True
    """
    if current is MISSING or incoming is MISSING:
        return current is not incoming
    if current is None or incoming is None:
        return current is not incoming
    if isinstance(current, bool) or isinstance(incoming, bool):
        return not (
            isinstance(current, bool) and isinstance(incoming, bool) and current == incoming
        )
    if _is_number(current) and _is_number(incoming):
        return current != incoming
    if isinstance(current, str) and isinstance(incoming, str):
        return current != incoming
    if isinstance(current, list) and isinstance(incoming, list):
        if len(current) != len(incoming):
            return True
        return any(has_value_changed(a, b) for a, b in zip(current, incoming))
    if isinstance(current, dict) and isinstance(incoming, dict):
        if current.keys() != incoming.keys():
            return True
        return any(has_value_changed(current[key], incoming[key]) for key in current)
    return True


def _merge_object(
    current: dict[str, Any],
    incoming: dict[str, Any],
    counter: Iterator[int],
) -> tuple[dict[str, Any], list[ConflictRecord]]:
    merged = dict(current)
    records: list[ConflictRecord] = []
    for sub_key, incoming_value in incoming.items():
        if sub_key not in current:
            merged[sub_key] = incoming_value
            continue
        if not has_value_changed(current[sub_key], incoming_value):
            continue
        record = ConflictRecord(
            id=next(counter),
            key=sub_key,
            current=current[sub_key],
            incoming=incoming_value,
        )
        merged = conflicts.insert_conflict(merged, record)
        records.append(record)
    return merged, records


def merge_documents(
    current: dict[str, Any], incoming: dict[str, Any]
) -> tuple[dict[str, Any], list[ConflictRecord]]:
    """Merge ``incoming`` into ``current`` and collect conflicts.

    Conflicts are embedded in the returned mapping as sentinel entries; pass
    the serialized result through :func:`whare.conflicts.render`.
    """
    merged = dict(current)
    records: list[ConflictRecord] = []
    counter = itertools.count()
    for key, incoming_value in incoming.items():
        if key in PROTECTED_FIELDS:
            continue
        if key not in MERGE_FIELDS:
            merged[key] = incoming_value
            continue
        current_value = current.get(key, MISSING)
        if current_value is MISSING:
            merged[key] = incoming_value
        elif isinstance(current_value, dict) and isinstance(incoming_value, dict):
            merged[key], field_records = _merge_object(
                current_value, incoming_value, counter
            )
            records.extend(field_records)
        elif has_value_changed(current_value, incoming_value):
            record = ConflictRecord(
                id=next(counter),
                key=key,
                current=current_value,
                incoming=incoming_value,
            )
            merged = conflicts.insert_conflict(merged, record)
            records.append(record)
    return merged, records


def parse_document(text: str) -> dict[str, Any]:
    """Parse manifest text, requiring a JSON object."""
    payload = json.loads(text)
    if not isinstance(payload, dict):
        raise ManifestError("manifest must be a JSON object")
    return payload


def dump_manifest(payload: dict[str, Any]) -> str:
    """Serialize a manifest with 2-space indentation and a trailing newline."""
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


def merge_manifest(current_text: str, incoming_text: str, logger: RunLogger) -> str:
    """Merge an incoming manifest into the current one.

    Args:
        current_text: The project's manifest text.
        incoming_text: The template's manifest text.
        logger: Run logger for warnings.

    Returns:
        Merged manifest text, possibly containing conflict markup. When either
        side cannot be parsed or merged, ``current_text`` is returned as-is.
    """
    try:
        current = parse_document(current_text)
        incoming = parse_document(incoming_text)
        merged, records = merge_documents(current, incoming)
        rendered = conflicts.render(json.dumps(merged, indent=2, ensure_ascii=False))
    except ValueError as exc:
        logger.warning(f"package.json merge failed, keeping local version: {exc}")
        return current_text
    if records:
        keys = ", ".join(record.key for record in records)
        logger.warning(f"package.json has {len(records)} conflict(s) to resolve: {keys}")
    return rendered + "\n"


def read_manifest(path: Path) -> dict[str, Any] | None:
    """Load a manifest if it exists and parses.

    Returns:
        Parsed object, or ``None`` when the file is missing, unreadable, or
        not a JSON object.

    Example:
        >>> read_manifest(Path("/nonexistent/package.json")) is None
        True
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
        return None
    try:
        return parse_document(text)
    except ValueError:
        return None


def load_whare_section(payload: dict[str, Any]) -> WhareSection:
    """Validate the ``whare`` configuration section of a root manifest."""
    section = payload.get(WHARE_SECTION)
    if section is None:
        return WhareSection()
    if not isinstance(section, dict):
        raise ManifestError(f"'{WHARE_SECTION}' must be an object")
    try:
        return WhareSection.model_validate(section)
    except ValidationError as exc:
        raise ManifestError(f"invalid '{WHARE_SECTION}' section: {exc}") from exc


def _replace_section_revision(text: str, revision: str, previous: str) -> str | None:
    """Rewrite ``whare.version`` in 2-space-indented manifest text.

    Only the ``version`` entry directly inside the top-level ``whare`` block
    is considered.
    """
    lines = text.split("\n")
    opener = f"  {json.dumps(WHARE_SECTION)}: {{"
    old_entry = f'    "version": {json.dumps(previous)}'
    inside = False
    for index, line in enumerate(lines):
        body = line.rstrip()
        if not inside:
            inside = body == opener
            continue
        if body.startswith("  }"):
            return None
        if body.rstrip(",") == old_entry:
            comma = "," if body.endswith(",") else ""
            lines[index] = f'    "version": {json.dumps(revision)}{comma}'
            return "\n".join(lines)
    return None


def set_tracked_revision(text: str, revision: str, previous: str | None = None) -> str:
    """Return manifest text with ``whare.version`` set to ``revision``.

    Parseable manifests are rewritten as JSON. A manifest holding unresolved
    conflict markup is edited in place: the ``version`` entry of the
    top-level ``whare`` block is changed from ``previous`` to ``revision``.

    Raises:
        ManifestError: The revision could not be recorded.

    Example:
        >>> set_tracked_revision('{"whare": {"version": "a"}}', "b")
        '{\\n  "whare": {\\n    "version": "b"\\n  }\\n}\\n'
    """
    try:
        payload = parse_document(text)
    except ValueError:
        payload = None
    if payload is not None:
        section = payload.get(WHARE_SECTION)
        updated = dict(section) if isinstance(section, dict) else {}
        updated["version"] = revision
        payload[WHARE_SECTION] = updated
        return dump_manifest(payload)
    if previous and conflicts.has_conflict_markup(text):
        replaced = _replace_section_revision(text, revision, previous)
        if replaced is not None:
            return replaced
    raise ManifestError("could not record the template revision in package.json")
