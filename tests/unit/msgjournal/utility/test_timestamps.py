"""
Tests for timestamp parsing and formatting.
"""
from datetime import datetime, timedelta, timezone

import pytest

from msgjournal.utility.timestamps import (
    ensure_utc,
    format_display,
    parse_timestamp,
    to_storage,
)

T0 = datetime(2000, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


class TestParseTimestamp:
    """Test suite for parse_timestamp()."""

    @pytest.mark.parametrize(
        "value",
        [
            "2000-01-01T00:00:00Z",
            "2000-01-01T00:00:00+00:00",
            "2000-01-01T02:00:00+02:00",
            "2000-01-01 00:00:00",
            "2000-01-01 00:00:00 +0000 UTC",
            "2000-01-01 00:00:00.000000 +0000 UTC",
            "  2000-01-01T00:00:00Z  ",
        ],
    )
    def test_accepted_forms(self, value):
        assert parse_timestamp(value) == T0

    def test_result_is_utc(self):
        parsed = parse_timestamp("2000-01-01T02:00:00+02:00")
        assert parsed.tzinfo == timezone.utc
        assert parsed.hour == 0

    def test_datetime_passthrough(self):
        naive = datetime(2000, 1, 1)
        assert parse_timestamp(naive) == T0
        assert parse_timestamp(naive).tzinfo == timezone.utc

    @pytest.mark.parametrize("value", ["", "   ", "yesterday", "2000-13-01T00:00:00"])
    def test_invalid_strings(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)

    def test_unsupported_type(self):
        with pytest.raises(ValueError, match="Unsupported timestamp type"):
            parse_timestamp(946684800)


class TestStorageForm:
    """Test suite for the fixed-width storage form."""

    def test_to_storage(self):
        assert to_storage(T0) == "2000-01-01 00:00:00.000000"
        assert (
            to_storage(datetime(2000, 1, 1, 1, 0, 0, 5, tzinfo=timezone(timedelta(hours=1))))
            == "2000-01-01 00:00:00.000005"
        )

    def test_storage_form_sorts_chronologically(self):
        values = [T0 + timedelta(microseconds=5), T0 + timedelta(seconds=10), T0]
        assert sorted(to_storage(v) for v in values) == [
            to_storage(v) for v in sorted(values)
        ]

    def test_years_before_1000_are_zero_padded(self):
        early = datetime(999, 6, 1, tzinfo=timezone.utc)

        assert to_storage(early) == "0999-06-01 00:00:00.000000"
        assert to_storage(early) < to_storage(T0)

    def test_out_of_range_offset_is_invalid(self):
        with pytest.raises(ValueError):
            to_storage("9999-12-31T23:59:59-01:00")


class TestFormatDisplay:
    """Test suite for format_display()."""

    def test_whole_seconds(self):
        assert format_display(T0) == "2000-01-01 00:00:00 +0000 UTC"

    def test_early_year_padded(self):
        value = datetime(5, 1, 1, tzinfo=timezone.utc)
        assert format_display(value) == "0005-01-01 00:00:00 +0000 UTC"
        assert parse_timestamp(format_display(value)) == value

    def test_fractional_seconds_trimmed(self):
        value = T0 + timedelta(microseconds=120000)
        assert format_display(value) == "2000-01-01 00:00:00.12 +0000 UTC"

    def test_converted_to_utc(self):
        value = datetime(2000, 1, 1, 5, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))
        assert format_display(value) == "2000-01-01 00:00:00 +0000 UTC"

    def test_display_form_parses_back(self):
        value = T0 + timedelta(microseconds=1)
        assert parse_timestamp(format_display(value)) == value


def test_ensure_utc_naive_taken_as_utc():
    assert ensure_utc(datetime(2000, 1, 1)) == T0


def test_ensure_utc_overflow_is_value_error():
    minus_one = timezone(timedelta(hours=-1))
    with pytest.raises(ValueError, match="out of range"):
        ensure_utc(datetime(9999, 12, 31, 23, 59, tzinfo=minus_one))
