"""Turn one raw remote row into a canonical ``Record``.

Dates are calendar dates, not instants: a bare ``2024-3-5`` is padded as-is,
and only values that carry their own offset are shifted into local time
before the day is read off.
"""
from __future__ import annotations

import math
import re
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping

from dateutil import parser as date_parser

from .aliases import ColumnAliases, Field

ROW_NUMBER_KEYS = ("rowNumber", "RowNumber", "Row Number", "row_number")
VIEW_KEYS = ("views", "Views")
INTERNAL_KEYS = frozenset({"id", "identityKey", "createdAt", "displayDate", *VIEW_KEYS, *ROW_NUMBER_KEYS})

_BARE_DATE_RE = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})$")


def now_millis() -> int:
    return int(time.time() * 1000)


def _format_day(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def normalize_date(raw: Any) -> str:
    if raw is None or isinstance(raw, bool):
        return ""
    if isinstance(raw, datetime):
        return _format_day(raw.astimezone() if raw.tzinfo else raw)
    if isinstance(raw, date):
        return _format_day(raw)
    if isinstance(raw, (int, float)):
        try:
            return _format_day(datetime.fromtimestamp(raw / 1000))
        except (OverflowError, OSError, ValueError):
            return ""

    text = str(raw).strip()
    if text in {"", "-"}:
        return ""
    match = _BARE_DATE_RE.match(text)
    if match:
        year, month, day = match.groups()
        return f"{year}-{int(month):02d}-{int(day):02d}"
    try:
        parsed = date_parser.parse(text)
    except (ValueError, OverflowError):
        return ""
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return _format_day(parsed)


def normalize_linkedin(raw: Any) -> str:
    return "Yes" if str(raw if raw is not None else "").strip().lower() in {"yes", "true"} else "No"


def coerce_views(raw: Any) -> int:
    if raw is None or isinstance(raw, bool):
        return 0
    try:
        number = float(str(raw).strip())
    except ValueError:
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return max(0, int(number))


def row_identity(raw: Mapping[str, Any]) -> Any:
    for key in ROW_NUMBER_KEYS:
        value = raw.get(key)
        if value is None or value is False:
            continue
        if isinstance(value, str):
            value = value.strip()
        if value not in ("", 0):
            return value
    return None


def _coerce_created_at(raw: Any, now_ms: int) -> int:
    if raw is None or isinstance(raw, bool):
        return now_ms
    try:
        number = float(str(raw).strip())
    except ValueError:
        return now_ms
    if math.isnan(number) or math.isinf(number):
        return now_ms
    value = int(number)
    return value if value > 0 else now_ms


@dataclass(frozen=True)
class Record:
    identity_key: str
    fields: dict[str, Any] = field(default_factory=dict)
    row_number: Any = None
    created_at: int = 0
    views: int = 0
    published_date: str = ""
    linkedin: str = "No"

    @property
    def display_date(self) -> str:
        return self.published_date

    def get(self, column: str, default: Any = None) -> Any:
        return self.fields.get(column, default)

    def to_row(self) -> dict[str, Any]:
        row = dict(self.fields)
        if self.row_number is not None:
            row["rowNumber"] = self.row_number
        row["createdAt"] = self.created_at
        row["views"] = self.views
        return row

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.fields,
            "identityKey": self.identity_key,
            "rowNumber": self.row_number,
            "createdAt": self.created_at,
            "views": self.views,
            "displayDate": self.display_date,
        }


def normalize_record(
    raw: Mapping[str, Any],
    aliases: ColumnAliases,
    identity_key: str,
    now_ms: int | None = None,
) -> Record:
    stamp = now_millis() if now_ms is None else now_ms
    fields = {str(key): value for key, value in raw.items() if key not in INTERNAL_KEYS}

    published = normalize_date(aliases.raw_value(raw, Field.DATE))
    date_column = aliases.column(Field.DATE)
    if date_column in fields:
        fields[date_column] = published

    linkedin = normalize_linkedin(aliases.raw_value(raw, Field.LINKEDIN))
    linkedin_column = aliases.column(Field.LINKEDIN)
    if linkedin_column in fields:
        fields[linkedin_column] = linkedin

    views_raw = next((raw[key] for key in VIEW_KEYS if raw.get(key) is not None), None)
    return Record(
        identity_key=identity_key,
        fields=fields,
        row_number=row_identity(raw),
        created_at=_coerce_created_at(raw.get("createdAt"), stamp),
        views=coerce_views(views_raw),
        published_date=published,
        linkedin=linkedin,
    )
