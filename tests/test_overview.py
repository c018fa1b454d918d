from __future__ import annotations

from conftest import SAMPLE_ROWS

from article_source.aliases import ColumnAliases
from article_source.dedup import dedupe, raw_columns
from article_source.overview import category_counts, top_by_views, total_views


def _sample():
    aliases = ColumnAliases.resolve(raw_columns(SAMPLE_ROWS))
    return dedupe(SAMPLE_ROWS, aliases, now_ms=1), aliases


def test_category_counts_skip_placeholder_and_fall_back_to_other():
    records, aliases = _sample()
    extra = dedupe(
        [
            {"rowNumber": 20, "Document Title": "Dash", "Main Category": "-"},
            {"rowNumber": 21, "Document Title": "None"},
            {"rowNumber": 22, "Document Title": "More welding", "Main Category": "ADVANCED FEATURES"},
        ],
        aliases,
        now_ms=1,
    )
    counts = {item["name"]: item["count"] for item in category_counts(records + extra, aliases)}
    assert counts == {"ADVANCED FEATURES": 2, "RELEASE NOTES": 1, "TM AI VISION": 1, "Other": 1}


def test_top_by_views_orders_descending_and_limits():
    records, _aliases = _sample()
    assert [record.identity_key for record in top_by_views(records, 2)] == ["row-2", "row-3"]
    assert top_by_views(records, 0) == []


def test_top_by_views_keeps_undated_records_inside_a_range():
    records, _aliases = _sample()
    top = top_by_views(records, 5, start="2024-04-01")
    assert [record.identity_key for record in top] == ["row-3", "row-4"]


def test_total_views():
    records, _aliases = _sample()
    assert total_views(records) == 167
    assert total_views(records, start="2024-04-01") == 47
    assert total_views(records, end="2024-03-31") == 127
