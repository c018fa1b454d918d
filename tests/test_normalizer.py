from __future__ import annotations

from datetime import datetime, timezone

import pytest

from article_source.aliases import ColumnAliases
from article_source.normalizer import (
    coerce_views,
    normalize_date,
    normalize_linkedin,
    normalize_record,
    row_identity,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2024-3-5", "2024-03-05"),
        ("2024/3/5", "2024-03-05"),
        ("2024-03-05", "2024-03-05"),
        ("March 5, 2024", "2024-03-05"),
        ("", ""),
        ("-", ""),
        (None, ""),
        ("not a date", ""),
    ],
)
def test_normalize_date(raw, expected):
    assert normalize_date(raw) == expected


def test_normalize_date_epoch_millis_uses_local_day():
    stamp = datetime(2024, 3, 5, 12, 0).timestamp() * 1000
    assert normalize_date(stamp) == "2024-03-05"
    assert normalize_date(int(stamp)) == "2024-03-05"


def test_normalize_date_offset_values_shift_to_local_time():
    expected = datetime(2024, 3, 5, 23, 30, tzinfo=timezone.utc).astimezone().strftime("%Y-%m-%d")
    assert normalize_date("2024-03-05T23:30:00Z") == expected


@pytest.mark.parametrize("raw", ["2024-3-5", "2024/12/1", "March 5, 2024", "", "garbage"])
def test_normalize_date_is_idempotent(raw):
    once = normalize_date(raw)
    assert normalize_date(once) == once


@pytest.mark.parametrize(
    "raw,expected",
    [("yes", "Yes"), ("TRUE", "Yes"), (" Yes ", "Yes"), (True, "Yes"), ("no", "No"), ("", "No"), (None, "No"), ("maybe", "No")],
)
def test_normalize_linkedin(raw, expected):
    assert normalize_linkedin(raw) == expected


@pytest.mark.parametrize(
    "raw,expected",
    [("120", 120), (40.7, 40), (None, 0), ("abc", 0), (-5, 0), (float("nan"), 0), (" 9 ", 9)],
)
def test_coerce_views(raw, expected):
    assert coerce_views(raw) == expected


def test_row_identity_accepts_spellings_and_skips_empty():
    assert row_identity({"Row Number": 7}) == 7
    assert row_identity({"rowNumber": ""}) is None
    assert row_identity({"rowNumber": 0, "row_number": 9}) == 9
    assert row_identity({"RowNumber": " 12 "}) == "12"
    assert row_identity({"Document Title": "x"}) is None


def test_normalize_record_strips_internal_keys_and_normalizes():
    raw = {
        "id": "local-1",
        "identityKey": "stale",
        "displayDate": "stale",
        "rowNumber": 5,
        "Document Title": "A",
        "Date": "2024/1/2",
        "LinkedIn": "TRUE",
        "Views": "9",
        "createdAt": 111,
    }
    aliases = ColumnAliases.resolve(raw.keys())
    record = normalize_record(raw, aliases, "row-5", now_ms=999)

    assert record.fields == {"Document Title": "A", "Date": "2024-01-02", "LinkedIn": "Yes"}
    assert record.identity_key == "row-5"
    assert record.row_number == 5
    assert record.created_at == 111
    assert record.views == 9
    assert record.published_date == "2024-01-02"
    assert record.display_date == "2024-01-02"
    assert record.linkedin == "Yes"


def test_normalize_record_without_date_or_linkedin_columns():
    raw = {"Document Title": "B", "createdAt": "oops"}
    aliases = ColumnAliases.resolve(raw.keys())
    record = normalize_record(raw, aliases, "b|", now_ms=999)

    assert record.fields == {"Document Title": "B"}
    assert record.published_date == ""
    assert record.linkedin == "No"
    assert record.created_at == 999
    assert record.row_number is None


def test_record_to_row_round_trips_internal_fields():
    raw = {"rowNumber": 3, "Document Title": "C", "views": 4, "createdAt": 50}
    aliases = ColumnAliases.resolve(raw.keys())
    record = normalize_record(raw, aliases, "row-3")
    assert record.to_row() == {"Document Title": "C", "rowNumber": 3, "createdAt": 50, "views": 4}
    payload = record.to_dict()
    assert payload["identityKey"] == "row-3"
    assert payload["displayDate"] == ""


@pytest.mark.parametrize("created_at", ["Infinity", "-inf", "nan", "1e400", -5, "0"])
def test_non_finite_or_non_positive_created_at_falls_back_to_now(created_at):
    raw = {"rowNumber": 1, "Document Title": "A", "createdAt": created_at}
    aliases = ColumnAliases.resolve(raw.keys())
    assert normalize_record(raw, aliases, "row-1", now_ms=777).created_at == 777
