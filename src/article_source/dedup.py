"""Snapshot deduplication.

Collapses a raw remote snapshot into a unique, identity-keyed record set.

Identity key:
  - ``row-<rowNumber>`` when the row carries the store's row identity
  - otherwise ``<title>|<link>``, lowercased and trimmed

Policy is first-wins with no merging: the store only grows, so the earliest
row for a key is the one closest to the authored entry.  Rows without a
title are dropped after deduplication.  The output is stably sorted by main
category, then sub category (case-insensitive).
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

from .aliases import ColumnAliases, Field
from .normalizer import Record, normalize_record, now_millis, row_identity

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "|"


def raw_columns(rows: Iterable[Any]) -> list[str]:
    columns: dict[str, None] = {}
    for row in rows:
        if isinstance(row, Mapping):
            for key in row:
                if key:
                    columns.setdefault(str(key), None)
    return list(columns)


def identity_key(row: Mapping[str, Any], aliases: ColumnAliases) -> str | None:
    row_number = row_identity(row)
    if row_number is not None:
        return f"row-{row_number}"
    title = aliases.lookup(row, Field.TITLE).strip().lower()
    link = aliases.lookup(row, Field.LINK_EN).strip().lower()
    if not title and not link:
        return None
    return f"{title}{KEY_SEPARATOR}{link}"


def sort_key(record: Record, aliases: ColumnAliases) -> tuple[str, str]:
    main = aliases.lookup(record.fields, Field.MAIN_CATEGORY).lower()
    sub = aliases.lookup(record.fields, Field.SUB_CATEGORY).lower()
    return main, sub


def sort_records(records: Iterable[Record], aliases: ColumnAliases) -> list[Record]:
    return sorted(records, key=lambda record: sort_key(record, aliases))


def dedupe(
    raw_rows: Sequence[Any],
    aliases: ColumnAliases | None = None,
    now_ms: int | None = None,
) -> list[Record]:
    if aliases is None:
        aliases = ColumnAliases.resolve(raw_columns(raw_rows))
    stamp = now_millis() if now_ms is None else now_ms

    unique: dict[str, Mapping[str, Any]] = {}
    dropped_keyless = 0
    for row in raw_rows:
        if not isinstance(row, Mapping):
            continue
        key = identity_key(row, aliases)
        if key is None:
            dropped_keyless += 1
            continue
        unique.setdefault(key, row)

    records: list[Record] = []
    dropped_untitled = 0
    for key, row in unique.items():
        if not aliases.lookup(row, Field.TITLE).strip():
            dropped_untitled += 1
            continue
        records.append(normalize_record(row, aliases, key, now_ms=stamp))

    logger.debug(
        "dedupe: rows=%d unique=%d kept=%d keyless=%d untitled=%d",
        len(raw_rows),
        len(unique),
        len(records),
        dropped_keyless,
        dropped_untitled,
    )
    return sort_records(records, aliases)
