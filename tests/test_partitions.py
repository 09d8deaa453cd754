from datetime import date, datetime, timedelta, timezone
import importlib

import pytest


partitions = importlib.import_module("src.tracker.partitions")


def test_partition_key_uses_zero_padded_utc_day():
    created_at = datetime(2024, 3, 5, 23, 30, tzinfo=timezone.utc)

    assert partitions.partition_prefix(created_at) == "events/2024/03/05/"
    assert partitions.partition_key(created_at) == "events/2024/03/05/flights.jsonl"


def test_partition_key_converts_offsets_to_utc_before_bucketing():
    created_at = datetime(2024, 3, 5, 23, 30, tzinfo=timezone(timedelta(hours=-5)))

    assert partitions.partition_key(created_at) == "events/2024/03/06/flights.jsonl"


def test_parse_timestamp_accepts_zulu_and_naive_values():
    zulu = partitions.parse_timestamp("2024-11-12T10:00:00Z")
    naive = partitions.parse_timestamp("2024-11-12T10:00:00")

    assert zulu == datetime(2024, 11, 12, 10, 0, tzinfo=timezone.utc)
    assert naive == zulu


def test_format_timestamp_round_trips_to_zulu_text():
    value = datetime(2024, 11, 12, 10, 0, tzinfo=timezone.utc)

    assert partitions.format_timestamp(value) == "2024-11-12T10:00:00Z"


def test_day_prefixes_are_inclusive_and_empty_for_inverted_ranges():
    prefixes = partitions.day_prefixes(date(2024, 2, 28), date(2024, 3, 1))

    assert prefixes == [
        "events/2024/02/28/",
        "events/2024/02/29/",
        "events/2024/03/01/",
    ]
    assert partitions.day_prefixes(date(2024, 3, 2), date(2024, 3, 1)) == []


def test_partition_day_rejects_keys_outside_the_layout():
    assert partitions.partition_day("events/2024/11/12/flights.jsonl") == date(2024, 11, 12)
    assert partitions.partition_day("events/readme.txt") is None
    assert partitions.partition_day("other/2024/11/12/flights.jsonl") is None
    assert partitions.partition_day("events/2024/13/40/flights.jsonl") is None


@pytest.mark.parametrize("raw", ["0001-01-01T00:30:00+01:00", "9999-12-31T23:30:00-01:00"])
def test_parse_timestamp_reports_out_of_range_offsets_as_value_errors(raw):
    with pytest.raises(ValueError, match="out of range"):
        partitions.parse_timestamp(raw)
