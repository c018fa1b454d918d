"""Column alias resolution for the schema-loose remote sheet.

The remote store has no fixed schema: the same logical field can appear as
"Document Title" in one sheet and "title" in another.  ``ColumnAliases``
resolves each logical ``Field`` to the actual column once per header set, so
the rest of the engine never repeats case-insensitive string matching.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping


class Field(str, Enum):
    TITLE = "title"
    LINK_EN = "link_en"
    SLUG_EN = "slug_en"
    MAIN_CATEGORY = "main_category"
    SUB_CATEGORY = "sub_category"
    SUMMARY = "summary"
    AUTHOR = "author"
    LINKEDIN = "linkedin"
    HASHTAGS = "hashtags"
    DATE = "date"
    CHINESE_TITLE = "chinese_title"
    LINK_ZH = "link_zh"
    SLUG_ZH = "slug_zh"


@dataclass(frozen=True)
class AliasRule:
    default: str
    spellings: tuple[str, ...]
    contains: str = ""


ALIAS_RULES: dict[Field, AliasRule] = {
    Field.TITLE: AliasRule("Document Title", ("document title", "title")),
    Field.LINK_EN: AliasRule("Link (EN)", ("link (en)", "source url", "link")),
    Field.SLUG_EN: AliasRule("Slug (EN)", ("slug (en)",)),
    Field.MAIN_CATEGORY: AliasRule("Main Category", ("main category", "category")),
    Field.SUB_CATEGORY: AliasRule("Sub Category", ("sub category", "sub hierarchy")),
    Field.SUMMARY: AliasRule("Article Summary", ("article summary", "description")),
    Field.AUTHOR: AliasRule("Author", ("author",)),
    Field.LINKEDIN: AliasRule("LinkedIn", ("linkedin", "linkedin posted"), contains="linkedin"),
    Field.HASHTAGS: AliasRule("Hashtags", ("hashtags",)),
    Field.DATE: AliasRule("Date", ("date", "publish date")),
    Field.CHINESE_TITLE: AliasRule("Chinese Title", ("chinese title",), contains="chinese title"),
    Field.LINK_ZH: AliasRule("Link (ZH)", ("link (zh)",), contains="chinese link"),
    Field.SLUG_ZH: AliasRule("Slug (ZH)", ("slug (zh)",)),
}


def _fold(name: Any) -> str:
    return str(name or "").strip().lower()


def _is_empty(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def is_blank(value: Any) -> bool:
    """True for missing values and the sheet's "-" placeholder."""
    return _is_empty(value) or str(value).strip() == "-"


def _resolve_column(rule: AliasRule, headers: list[str]) -> str:
    for header in headers:
        if _fold(header) in rule.spellings:
            return header
    if rule.contains:
        for header in headers:
            if rule.contains in _fold(header):
                return header
    return rule.default


@dataclass(frozen=True)
class ColumnAliases:
    columns: tuple[tuple[Field, str], ...]

    @classmethod
    def resolve(cls, headers: Iterable[str]) -> "ColumnAliases":
        ordered = [str(h) for h in dict.fromkeys(headers) if h and str(h).strip()]
        return cls(tuple((field, _resolve_column(rule, ordered)) for field, rule in ALIAS_RULES.items()))

    @classmethod
    def defaults(cls) -> "ColumnAliases":
        return cls.resolve(())

    def column(self, field: Field) -> str:
        for candidate, name in self.columns:
            if candidate is field:
                return name
        return ALIAS_RULES[field].default

    def as_dict(self) -> dict[str, str]:
        return {field.value: name for field, name in self.columns}

    def raw_value(self, fields: Mapping[str, Any], field: Field) -> Any:
        """Value of ``field`` in a row, falling back to other accepted spellings when empty."""
        primary = self.column(field)
        value = fields.get(primary)
        if not _is_empty(value):
            return value
        spellings = ALIAS_RULES[field].spellings
        for key, candidate in fields.items():
            if key != primary and _fold(key) in spellings and not _is_empty(candidate):
                return candidate
        return None

    def lookup(self, fields: Mapping[str, Any], field: Field, default: str = "") -> str:
        value = self.raw_value(fields, field)
        return default if value is None else str(value)
