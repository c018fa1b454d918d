from __future__ import annotations

import csv
import io
from datetime import date

import pytest
from conftest import SAMPLE_ROWS

from article_source.aliases import ColumnAliases
from article_source.dedup import dedupe, raw_columns
from article_source.projection import (
    CSV_BOM,
    FilterState,
    LinkedInFilter,
    csv_cell,
    export_filename,
    filter_records,
    to_csv,
)
from article_source.vocabulary import derive_headers


def _sample():
    aliases = ColumnAliases.resolve(raw_columns(SAMPLE_ROWS))
    return dedupe(SAMPLE_ROWS, aliases, now_ms=1), aliases


def _keys(records) -> list[str]:
    return [record.identity_key for record in records]


def test_default_filter_keeps_everything():
    records, aliases = _sample()
    assert _keys(filter_records(records, FilterState(), aliases)) == ["row-3", "row-4", "row-2"]


def test_search_term_is_case_insensitive_over_all_fields():
    records, aliases = _sample()
    assert _keys(filter_records(records, FilterState(term="WELD"), aliases)) == ["row-3"]
    assert _keys(filter_records(records, FilterState(term="#setup"), aliases)) == ["row-2"]
    assert filter_records(records, FilterState(term="nothing matches"), aliases) == []


def test_search_term_covers_identity_views_and_display_date():
    records, aliases = _sample()
    assert _keys(filter_records(records, FilterState(term="ROW-4"), aliases)) == ["row-4"]
    assert _keys(filter_records(records, FilterState(term="120"), aliases)) == ["row-2"]
    assert _keys(filter_records(records, FilterState(term="2024-03-05"), aliases)) == ["row-2"]


@pytest.mark.parametrize("category,expected", [("ADVANCED FEATURES", ["row-3"]), ("All", ["row-3", "row-4", "row-2"]), ("all", ["row-3", "row-4", "row-2"]), ("advanced features", [])])
def test_category_filter(category, expected):
    records, aliases = _sample()
    assert _keys(filter_records(records, FilterState(category=category), aliases)) == expected


def test_missing_main_category_matches_other():
    aliases = ColumnAliases.defaults()
    records = dedupe([{"rowNumber": 1, "Document Title": "Loose"}], aliases, now_ms=1)
    assert _keys(filter_records(records, FilterState(category="Other"), aliases)) == ["row-1"]


def test_linkedin_filter():
    records, aliases = _sample()
    assert _keys(filter_records(records, FilterState(linkedin=LinkedInFilter.YES), aliases)) == ["row-2"]
    assert _keys(filter_records(records, FilterState(linkedin=LinkedInFilter.NO), aliases)) == ["row-3", "row-4"]


def test_date_range_is_inclusive_and_excludes_undated():
    records, aliases = _sample()
    assert _keys(filter_records(records, FilterState(start="2024-04-01"), aliases)) == ["row-3"]
    assert _keys(filter_records(records, FilterState(end="2024-03-05"), aliases)) == ["row-2"]
    assert _keys(filter_records(records, FilterState(start="2024-3-5", end="2024/5/20"), aliases)) == ["row-3", "row-2"]


def test_filters_combine():
    records, aliases = _sample()
    state = FilterState(term="example.com", category="TM AI VISION", linkedin=LinkedInFilter.YES, start="2024-01-01")
    assert _keys(filter_records(records, state, aliases)) == ["row-2"]


def test_linkedin_filter_parse():
    assert LinkedInFilter.parse("yes") is LinkedInFilter.YES
    assert LinkedInFilter.parse(" NO ") is LinkedInFilter.NO
    assert LinkedInFilter.parse("garbage") is LinkedInFilter.ALL
    assert LinkedInFilter.parse(None) is LinkedInFilter.ALL


@pytest.mark.parametrize(
    "value,expected",
    [
        ("plain", "plain"),
        ("a,b", '"a,b"'),
        ('say "hi"', '"say ""hi"""'),
        ("line\nbreak", '"line\nbreak"'),
        (None, ""),
        (3.0, "3"),
        (2.5, "2.5"),
    ],
)
def test_csv_cell(value, expected):
    assert csv_cell(value) == expected


def test_to_csv_parses_back_with_csv_reader():
    aliases = ColumnAliases.defaults()
    records = dedupe(
        [
            {"rowNumber": 1, "Document Title": "Commas, quotes", "Article Summary": 'He said "go"\nthen left'},
            {"rowNumber": 2, "Document Title": "Plain", "Article Summary": ""},
        ],
        aliases,
        now_ms=1,
    )
    headers = derive_headers(records)
    text = to_csv(records, headers)

    assert text.startswith(CSV_BOM)
    rows = list(csv.reader(io.StringIO(text[len(CSV_BOM):])))
    assert rows == [
        ["Document Title", "Article Summary"],
        ["Commas, quotes", 'He said "go"\nthen left'],
        ["Plain", ""],
    ]


def test_to_csv_with_no_records_is_header_only():
    assert to_csv([], ["Document Title", "Date"]) == CSV_BOM + "Document Title,Date"


def test_export_filename():
    assert export_filename("TM_Articles", date(2024, 3, 5)) == "TM_Articles_Filtered_2024-03-05.csv"
