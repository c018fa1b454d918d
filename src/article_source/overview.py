"""Dashboard statistics over the canonical record set."""
from __future__ import annotations

from typing import Any, Iterable

from .aliases import ColumnAliases
from .normalizer import Record
from .projection import in_date_range, main_category


def _within(record: Record, start: str | None, end: str | None) -> bool:
    # Undated records always count toward the dashboard.
    if not record.published_date:
        return True
    return in_date_range(record.published_date, start or "", end or "")


def category_counts(records: Iterable[Record], aliases: ColumnAliases) -> list[dict[str, Any]]:
    counts: dict[str, int] = {}
    for record in records:
        name = main_category(record, aliases)
        if name == "-":
            continue
        counts[name] = counts.get(name, 0) + 1
    return [{"name": name, "count": count} for name, count in counts.items()]


def top_by_views(
    records: Iterable[Record],
    limit: int,
    start: str | None = None,
    end: str | None = None,
) -> list[Record]:
    dated = [record for record in records if _within(record, start, end)]
    ranked = sorted(dated, key=lambda record: record.views, reverse=True)
    return ranked[: max(0, limit)]


def total_views(records: Iterable[Record], start: str | None = None, end: str | None = None) -> int:
    return sum(record.views for record in records if _within(record, start, end))
