"""Duplicate detection for drafts before they are written.

No two records may share a title, an English link, or an English slug.
Comparison is on trimmed, case-folded values; an empty draft field never
matches on that axis.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from .aliases import ColumnAliases, Field
from .normalizer import Record, row_identity

CONFLICT_AXES: tuple[Field, ...] = (Field.TITLE, Field.LINK_EN, Field.SLUG_EN)
CONFLICT_MESSAGE = "Duplicate Entry Detected: Title, Link, or Slug already exists."

_AXIS_LABELS = {Field.TITLE: "Title", Field.LINK_EN: "Link", Field.SLUG_EN: "Slug"}


def _folded(fields: Mapping[str, Any], field: Field, aliases: ColumnAliases) -> str:
    return aliases.lookup(fields, field).strip().lower()


def detect_conflicts(
    candidate: Mapping[str, Any],
    records: Iterable[Record],
    aliases: ColumnAliases,
    exclude_identity: str | None = None,
) -> list[Field]:
    wanted = {axis: _folded(candidate, axis, aliases) for axis in CONFLICT_AXES}
    if not any(wanted.values()):
        return []
    own_row = row_identity(candidate)

    matched: list[Field] = []
    for record in records:
        if exclude_identity is not None and record.identity_key == exclude_identity:
            continue
        if own_row is not None and record.row_number is not None and str(record.row_number) == str(own_row):
            continue
        for axis in CONFLICT_AXES:
            value = wanted[axis]
            if value and axis not in matched and _folded(record.fields, axis, aliases) == value:
                matched.append(axis)
        if len(matched) == len(CONFLICT_AXES):
            break
    return [axis for axis in CONFLICT_AXES if axis in matched]


def find_conflict(
    candidate: Mapping[str, Any],
    records: Iterable[Record],
    aliases: ColumnAliases,
    exclude_identity: str | None = None,
) -> bool:
    return bool(detect_conflicts(candidate, records, aliases, exclude_identity))


def conflict_message(axes: Iterable[Field]) -> str:
    labels = [_AXIS_LABELS[axis] for axis in axes if axis in _AXIS_LABELS]
    if not labels:
        return ""
    return f"{CONFLICT_MESSAGE} (matched: {', '.join(labels)})"
