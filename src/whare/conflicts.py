"""Conflict markers for diverged manifest values.

A conflict is carried through ordinary JSON serialization as five sentinel
keys that take the place of the diverged key::

    "conf-start::00": "",
    "curr::00::dev": "<current value>",
    "conf-mid::00": "",
    "tmpl::00::dev": "<template value>",
    "conf-end::00": ""

:func:`render` then rewrites the serialized text into git-style conflict
markup that people and merge tools already know how to resolve::

    <<<<<<< Local Package
        "dev": "<current value>",
    =======
        "dev": "<template value>", // From template
    >>>>>>> Template

The ``conf-*``, ``curr::`` and ``tmpl::`` prefixes are reserved; manifest keys
never use them.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Mapping

START_PREFIX = "conf-start::"
MID_PREFIX = "conf-mid::"
END_PREFIX = "conf-end::"
CURRENT_PREFIX = "curr::"
TEMPLATE_PREFIX = "tmpl::"

LOCAL_OPEN = "<<<<<<< Local Package"
MIDPOINT = "======="
TEMPLATE_CLOSE = ">>>>>>> Template"
TEMPLATE_NOTE = " // From template"

_SEQUENCE = ("start", "current", "mid", "template", "end")

_ENTRY_RE = re.compile(r'^(?P<indent> *)"(?P<key>(?:[^"\\]|\\.)*)": (?P<value>.*)$')
_DELIMITER_KEY_RE = re.compile(r"^conf-(?P<kind>start|mid|end)::(?P<id>\d+)$")
_VALUE_KEY_RE = re.compile(r"^(?P<kind>curr|tmpl)::(?P<id>\d+)::(?P<key>.*)$", re.DOTALL)


class ConflictMarkerError(ValueError):
    """Raised when sentinel markers are unbalanced or out of order."""


def format_conflict_id(conflict_id: int) -> str:
    """Return the zero-padded form of a conflict counter.

    Example:
        >>> format_conflict_id(1)
        '01'
    """
    return f"{conflict_id:02d}"


@dataclass(frozen=True)
class ConflictMarkers:
    """Sentinel keys for one conflict."""

    start: str
    current: str
    mid: str
    template: str
    end: str


def conflict_markers(conflict_id: int, key: str) -> ConflictMarkers:
    """Build the sentinel keys for conflict ``conflict_id`` on ``key``.

    Example:
        >>> conflict_markers(1, "dev").current
        'curr::01::dev'
    """
    padded = format_conflict_id(conflict_id)
    return ConflictMarkers(
        start=f"{START_PREFIX}{padded}",
        current=f"{CURRENT_PREFIX}{padded}::{key}",
        mid=f"{MID_PREFIX}{padded}",
        template=f"{TEMPLATE_PREFIX}{padded}::{key}",
        end=f"{END_PREFIX}{padded}",
    )


@dataclass(frozen=True)
class ConflictRecord:
    """A key whose current and incoming values diverge."""

    id: int
    key: str
    current: Any
    incoming: Any

    @property
    def markers(self) -> ConflictMarkers:
        return conflict_markers(self.id, self.key)


def encode(record: ConflictRecord) -> dict[str, Any]:
    """Return the ordered sentinel entries standing in for ``record.key``."""
    markers = record.markers
    return {
        markers.start: "",
        markers.current: record.current,
        markers.mid: "",
        markers.template: record.incoming,
        markers.end: "",
    }


def insert_conflict(mapping: Mapping[str, Any], record: ConflictRecord) -> dict[str, Any]:
    """Return a copy of ``mapping`` with ``record.key`` replaced by its markers.

    The sentinel entries take the key's position; a key missing from
    ``mapping`` gets its markers appended.
    """
    result: dict[str, Any] = {}
    for key, value in mapping.items():
        if key == record.key:
            result.update(encode(record))
        else:
            result[key] = value
    if record.key not in mapping:
        result.update(encode(record))
    return result


@dataclass(frozen=True)
class _MarkerLine:
    kind: str
    conflict_id: str
    key: str | None
    indent: str
    value: str


def _classify(line: str) -> _MarkerLine | None:
    match = _ENTRY_RE.match(line)
    if match is None:
        return None
    try:
        key = json.loads(f'"{match.group("key")}"')
    except json.JSONDecodeError:
        return None
    delimiter = _DELIMITER_KEY_RE.match(key)
    if delimiter is not None:
        return _MarkerLine(
            kind=delimiter.group("kind"),
            conflict_id=delimiter.group("id"),
            key=None,
            indent=match.group("indent"),
            value=match.group("value"),
        )
    value_key = _VALUE_KEY_RE.match(key)
    if value_key is not None:
        kind = "current" if value_key.group("kind") == "curr" else "template"
        return _MarkerLine(
            kind=kind,
            conflict_id=value_key.group("id"),
            key=value_key.group("key"),
            indent=match.group("indent"),
            value=match.group("value"),
        )
    return None


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _entry_end(lines: list[str], index: int) -> int:
    """Return the index of the last line of the entry starting at ``index``."""
    body = lines[index].rstrip()
    if body.endswith(","):
        body = body[:-1]
    if not body.endswith(("{", "[")):
        return index
    indent = _indent_of(lines[index])
    for cursor in range(index + 1, len(lines)):
        if lines[cursor].strip() and _indent_of(lines[cursor]) == indent:
            return cursor
    raise ConflictMarkerError(f"unterminated value at line {index + 1}")


def _needs_separator(lines: list[str], index: int) -> bool:
    """Return whether the next significant line after ``index - 1`` is a sibling."""
    cursor = index
    while cursor < len(lines):
        marker = _classify(lines[cursor])
        if marker is not None and marker.kind != "current":
            cursor = _entry_end(lines, cursor) + 1
            continue
        stripped = lines[cursor].strip()
        if not stripped:
            cursor += 1
            continue
        return not stripped.startswith(("}", "]"))
    return False


def _render_entry(
    lines: list[str],
    start: int,
    end: int,
    marker: _MarkerLine,
    *,
    note: str,
) -> list[str]:
    block = [
        f"{marker.indent}{json.dumps(marker.key, ensure_ascii=False)}: {marker.value}",
        *lines[start + 1 : end + 1],
    ]
    last = block[-1].rstrip()
    if last.endswith(","):
        last = last[:-1]
    if _needs_separator(lines, end + 1):
        last += ","
    block[-1] = last + note
    return block


def render(serialized: str) -> str:
    """Rewrite sentinel entries in 2-space-indented JSON into conflict markup.

    Args:
        serialized: ``json.dumps(..., indent=2)`` output that may contain
            sentinel entries produced by :func:`insert_conflict`.

    Returns:
        The text with every conflict rendered between ``<<<<<<< Local
        Package`` and ``>>>>>>> Template`` delimiters. Text without sentinel
        entries is returned unchanged.

    Raises:
        ConflictMarkerError: Markers are unbalanced, out of order, or mix
            conflict ids.
    """
    lines = serialized.split("\n")
    output: list[str] = []
    open_id: str | None = None
    phase = 0
    index = 0
    while index < len(lines):
        marker = _classify(lines[index])
        if marker is None:
            output.append(lines[index])
            index += 1
            continue
        expected = _SEQUENCE[phase]
        if marker.kind != expected:
            raise ConflictMarkerError(
                f"expected {expected} marker at line {index + 1}, found {marker.kind}"
            )
        if marker.kind == "start":
            open_id = marker.conflict_id
        elif marker.conflict_id != open_id:
            raise ConflictMarkerError(
                f"{marker.kind} marker {marker.conflict_id} inside conflict {open_id}"
            )
        phase = (phase + 1) % len(_SEQUENCE)

        if marker.kind == "start":
            output.append(LOCAL_OPEN)
            index += 1
        elif marker.kind == "mid":
            output.append(MIDPOINT)
            index += 1
        elif marker.kind == "end":
            output.append(TEMPLATE_CLOSE)
            open_id = None
            index += 1
        else:
            end = _entry_end(lines, index)
            note = TEMPLATE_NOTE if marker.kind == "template" else ""
            output.extend(_render_entry(lines, index, end, marker, note=note))
            index = end + 1
    if open_id is not None:
        raise ConflictMarkerError(f"conflict {open_id} is never closed")
    return "\n".join(output)


def has_conflict_markup(text: str) -> bool:
    """Return whether rendered conflict delimiters appear in ``text``.

    Example:
        >>> has_conflict_markup("{}")
        False
    """
    return any(
        line == LOCAL_OPEN or line == TEMPLATE_CLOSE for line in text.splitlines()
    )
