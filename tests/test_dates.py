"""
Date extraction, timestamp normalization and grouping.
"""

import pytest

from continuity_backfill.pipeline.dates import (
    extract_date,
    group_by_date,
    normalize_timestamp,
    timestamp_sort_key,
)
from continuity_backfill.pipeline.models import CanonicalDocument

FALLBACK = "2025-11-01"


class TestExtractDate:

    @pytest.mark.parametrize(
        "timestamp, expected",
        [
            ("2025-09-28T00:17:47.323Z", "2025-09-28"),
            ("2025-09-24 23:08:53", "2025-09-24"),
            ("1696118400", "2023-10-01"),
            ("1696118400000", "2023-10-01"),
            (1696118400, "2023-10-01"),
            ("1696118400.5", "2023-10-01"),
        ],
    )
    def test_supported_encodings(self, timestamp, expected):
        assert extract_date(timestamp, FALLBACK) == expected

    @pytest.mark.parametrize(
        "timestamp",
        [None, "", "yesterday", "Tomorrow morning", "nan", "inf", "1e400"],
    )
    def test_unparseable_falls_back(self, timestamp):
        assert extract_date(timestamp, FALLBACK) == FALLBACK

    def test_fallback_is_caller_supplied(self):
        assert extract_date(None, "2020-02-29") == "2020-02-29"


class TestNormalizeTimestamp:

    def test_iso_is_kept(self):
        ts = "2025-09-01T10:00:00.000Z"
        assert normalize_timestamp(ts, FALLBACK) == ts

    def test_sql_datetime(self):
        assert normalize_timestamp("2025-09-24 23:08:53", FALLBACK) == "2025-09-24T23:08:53.000Z"

    def test_sql_datetime_keeps_fraction(self):
        assert (
            normalize_timestamp("2025-09-24 23:08:53.123", FALLBACK)
            == "2025-09-24T23:08:53.123Z"
        )

    def test_sql_datetime_keeps_offset(self):
        assert (
            normalize_timestamp("2025-09-24 23:08:53+02:00", FALLBACK)
            == "2025-09-24T23:08:53.000+02:00"
        )

    @pytest.mark.parametrize(
        "timestamp", ["2025-09-24 23:08:53.123", "2025-09-24 23:08:53+02:00"]
    )
    def test_sql_datetime_sorts_as_a_real_time(self, timestamp):
        normalized = normalize_timestamp(timestamp, FALLBACK)
        later = "2025-09-25T00:00:00.000Z"
        assert sorted([later, normalized], key=timestamp_sort_key) == [normalized, later]

    @pytest.mark.parametrize(
        "timestamp", ["2025-09-01Tgarbage", "2025-09-24 23:61:00", "2025-09-24 late"]
    )
    def test_malformed_datetime_defaults_to_noon(self, timestamp):
        assert normalize_timestamp(timestamp, "2025-09-01") == "2025-09-01T12:00:00.000Z"

    def test_epoch_seconds(self):
        assert normalize_timestamp("1696118400", FALLBACK) == "2023-10-01T00:00:00.000Z"

    def test_epoch_millis_keeps_milliseconds(self):
        assert normalize_timestamp("1696118400123", FALLBACK) == "2023-10-01T00:00:00.123Z"

    @pytest.mark.parametrize("timestamp", [None, "", "garbage"])
    def test_missing_time_defaults_to_noon(self, timestamp):
        assert normalize_timestamp(timestamp, "2024-05-06") == "2024-05-06T12:00:00.000Z"


class TestSortKey:

    def test_orders_mixed_offsets(self):
        values = ["2025-09-01T12:00:00.000Z", "2025-09-01T09:00:00", "2025-09-01T10:00:00+00:00"]
        assert sorted(values, key=timestamp_sort_key) == [
            "2025-09-01T09:00:00",
            "2025-09-01T10:00:00+00:00",
            "2025-09-01T12:00:00.000Z",
        ]

    def test_unparseable_sorts_last(self):
        values = [None, "not a time", "2025-09-01T12:00:00.000Z"]
        assert sorted(values, key=timestamp_sort_key)[0] == "2025-09-01T12:00:00.000Z"

    def test_epoch_numbers_are_ordered(self):
        values = ["2025-09-01T12:00:00.000Z", 1756720800000, None]
        assert sorted(values, key=timestamp_sort_key) == [1756720800000, "2025-09-01T12:00:00.000Z", None]


def test_group_by_date_keeps_scan_order():
    docs = [
        CanonicalDocument(legacy_id=1, text="a", display_type="t", timestamp="2025-09-02T01:00:00Z"),
        CanonicalDocument(legacy_id=2, text="b", display_type="t", timestamp="1696118400"),
        CanonicalDocument(legacy_id=3, text="c", display_type="t", timestamp="2025-09-02 00:00:00"),
        CanonicalDocument(legacy_id=4, text="d", display_type="t", timestamp=None),
    ]

    groups = group_by_date(docs, FALLBACK)

    assert list(groups) == ["2025-09-02", "2023-10-01", FALLBACK]
    assert [d.legacy_id for d in groups["2025-09-02"]] == [1, 3]
