from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from .aliases import ColumnAliases, Field, is_blank
from .normalizer import INTERNAL_KEYS, Record

CATEGORY_STRUCTURE: dict[str, tuple[str, ...]] = {
    "RELEASE NOTES": (),
    "FUNDAMENTALS": (
        "Hardware & System Setup",
        "Communication protocol",
    ),
    "TM AI VISION": (
        "Positioning Guideline",
        "Inspection Guideline",
    ),
    "ADVANCED FEATURES": (
        "TM Welding Solution",
        "TM palletizing",
        "TM Plug&Play",
        "Tips & Technique",
    ),
    "SECONDARY DEVELOPMENT": (),
    "GENERAL TROUBLESHOOTING": (),
    "DISTRIBUTOR AREA ONLY": (
        "Updates & Installations",
        "Troubleshooting Guide",
        "TMvision",
        "Service Manual - Maintenance & Repair",
    ),
}

DEFAULT_HASHTAGS: tuple[str, ...] = (
    "#vision",
    "#tutorial",
    "#application",
    "#troubleshooting",
    "#TM AI+",
    "#Auto TCP",
    "#welding",
    "#palletizing",
)

_TAG_SPLIT_RE = re.compile(r"[;,]")


def derive_headers(records: Iterable[Record]) -> list[str]:
    headers: dict[str, None] = {}
    for record in records:
        for key in record.fields:
            if key and key not in INTERNAL_KEYS:
                headers.setdefault(key, None)
    return list(headers)


def split_hashtags(value: Any) -> list[str]:
    if value is None:
        return []
    tokens = (token.strip() for token in _TAG_SPLIT_RE.split(str(value)))
    return [token for token in tokens if token.startswith("#")]


def normalize_hashtag(text: Any) -> str | None:
    tag = str(text or "").strip()
    if not tag.startswith("#"):
        tag = f"#{tag}"
    if tag == "#":
        return None
    return tag


def derive_hashtags(
    records: Iterable[Record],
    persisted: Any,
    aliases: ColumnAliases,
) -> list[str]:
    tags: set[str] = set(DEFAULT_HASHTAGS)
    if isinstance(persisted, (list, tuple)):
        tags.update(item for item in persisted if isinstance(item, str) and item.startswith("#"))
    for record in records:
        tags.update(split_hashtags(aliases.raw_value(record.fields, Field.HASHTAGS)))
    return sorted(tags)


@dataclass(frozen=True)
class CategoryVocabulary:
    structure: tuple[tuple[str, tuple[str, ...]], ...]
    unfiled: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, list[str]]:
        return {main: list(subs) for main, subs in self.structure}

    def main_categories(self) -> list[str]:
        return sorted(main for main, _subs in self.structure)

    def sub_categories(self, main: str | None = None) -> list[str]:
        if main is not None:
            for candidate, subs in self.structure:
                if candidate == main:
                    return list(subs)
            return []
        flat: set[str] = set(self.unfiled)
        for _main, subs in self.structure:
            flat.update(subs)
        return sorted(flat)


def derive_categories(
    records: Iterable[Record],
    aliases: ColumnAliases,
    seed: Mapping[str, Sequence[str]] = CATEGORY_STRUCTURE,
) -> CategoryVocabulary:
    structure: dict[str, dict[str, None]] = {
        main: dict.fromkeys(subs) for main, subs in seed.items()
    }
    orphans: dict[str, None] = {}
    for record in records:
        main = aliases.lookup(record.fields, Field.MAIN_CATEGORY).strip()
        sub = aliases.lookup(record.fields, Field.SUB_CATEGORY).strip()
        if not is_blank(main):
            subs = structure.setdefault(main, {})
            if not is_blank(sub):
                subs.setdefault(sub, None)
        elif not is_blank(sub):
            orphans.setdefault(sub, None)
    return CategoryVocabulary(
        tuple((main, tuple(subs)) for main, subs in structure.items()),
        unfiled=tuple(sub for sub in orphans if not any(sub in subs for subs in structure.values())),
    )
