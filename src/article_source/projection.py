from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Iterable, Sequence

from .aliases import ColumnAliases, Field, is_blank
from .normalizer import Record, normalize_date

ALL = "All"
CSV_BOM = "\ufeff"
FALLBACK_CATEGORY = "Other"
_CSV_SPECIALS = (",", '"', "\n")


class LinkedInFilter(str, Enum):
    ALL = "All"
    YES = "Yes"
    NO = "No"

    @classmethod
    def parse(cls, value: Any) -> "LinkedInFilter":
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.ALL


@dataclass(frozen=True)
class FilterState:
    term: str = ""
    category: str = ALL
    linkedin: LinkedInFilter = LinkedInFilter.ALL
    start: str = ""
    end: str = ""

    @property
    def has_date_range(self) -> bool:
        return bool(self.start or self.end)


def main_category(record: Record, aliases: ColumnAliases) -> str:
    return aliases.lookup(record.fields, Field.MAIN_CATEGORY) or FALLBACK_CATEGORY


def searchable_text(record: Record) -> str:
    return " ".join("" if value is None else str(value) for value in record.to_dict().values()).lower()


def in_date_range(published: str, start: str, end: str) -> bool:
    lower = normalize_date(start) if start else ""
    upper = normalize_date(end) if end else ""
    if lower and published < lower:
        return False
    if upper and published > upper:
        return False
    return True


def matches(record: Record, state: FilterState, aliases: ColumnAliases) -> bool:
    term = state.term.strip().lower()
    if term and term not in searchable_text(record):
        return False
    category = state.category.strip()
    if category and category.lower() != ALL.lower() and main_category(record, aliases) != category:
        return False
    if state.linkedin is not LinkedInFilter.ALL and record.linkedin != state.linkedin.value:
        return False
    if state.has_date_range:
        if is_blank(record.published_date):
            return False
        if not in_date_range(record.published_date, state.start, state.end):
            return False
    return True


def filter_records(records: Iterable[Record], state: FilterState, aliases: ColumnAliases) -> list[Record]:
    return [record for record in records if matches(record, state, aliases)]


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def csv_cell(value: Any) -> str:
    text = _cell_text(value)
    escaped = text.replace('"', '""')
    if any(special in text for special in _CSV_SPECIALS):
        return f'"{escaped}"'
    return escaped


def to_csv(records: Iterable[Record], headers: Sequence[str]) -> str:
    lines = [",".join(csv_cell(header) for header in headers)]
    for record in records:
        lines.append(",".join(csv_cell(record.get(header)) for header in headers))
    return CSV_BOM + "\n".join(lines)


def export_filename(catalog_name: str, today: date | None = None) -> str:
    day = (today or date.today()).isoformat()
    return f"{catalog_name}_Filtered_{day}.csv"
