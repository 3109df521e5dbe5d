"""Tests for calendar-day normalization."""

from datetime import date, datetime, timedelta, timezone

import pytest

from sales_core.dates import (
    inclusive_day_count,
    is_within_inclusive_range,
    iso_week_key,
    local_weekday,
    month_key,
    parse_calendar_date,
    preceding_range_of_equal_length,
    shift_utc_day,
    to_local_day,
    to_utc_day,
)
from sales_core.exceptions import DataQualityError, ParseError

EST = timezone(timedelta(hours=-5))
KST = timezone(timedelta(hours=9))


def test_calendar_dates_round_trip() -> None:
    """Every valid YYYY-MM-DD string is returned unchanged."""
    d = date(2023, 12, 25)
    for _ in range(500):
        s = d.isoformat()
        assert to_utc_day(s) == s
        assert to_local_day(s, KST) == s
        d += timedelta(days=1)


def test_parse_calendar_date_rejects_invalid_days() -> None:
    """Impossible days are rejected instead of rolling over."""
    with pytest.raises(ParseError):
        parse_calendar_date("2024-02-30")
    with pytest.raises(ParseError):
        parse_calendar_date("2023-02-29")
    assert parse_calendar_date("2024-02-29") == date(2024, 2, 29)


@pytest.mark.parametrize("value", ["", "2024-1-5", "15/01/2024", "not a date", "2024-13-01"])
def test_invalid_strings_raise_parse_error(value: str) -> None:
    with pytest.raises(ParseError):
        to_utc_day(value)


def test_timestamp_converted_to_utc_day() -> None:
    """Aware timestamps are reduced to their UTC calendar day."""
    assert to_utc_day("2024-01-15T23:30:00-05:00") == "2024-01-16"
    assert to_utc_day("2024-01-15T01:00:00+09:00") == "2024-01-14"
    assert to_utc_day("2024-01-15T12:00:00Z") == "2024-01-15"
    # Naive timestamps are UTC wall time
    assert to_utc_day("2024-01-15T23:59:59") == "2024-01-15"


def test_timestamp_converted_to_local_day() -> None:
    """Local days follow the viewer timezone."""
    assert to_local_day("2024-01-16T02:00:00Z", EST) == "2024-01-15"
    assert to_local_day("2024-01-15T20:00:00Z", KST) == "2024-01-16"
    # A calendar date is local midnight of the same day in any zone
    assert to_local_day("2024-01-15", EST) == "2024-01-15"


def test_date_and_datetime_objects() -> None:
    assert to_utc_day(date(2024, 3, 1)) == "2024-03-01"
    assert to_utc_day(datetime(2024, 3, 1, 23, 0, tzinfo=EST)) == "2024-03-02"
    assert to_local_day(datetime(2024, 3, 1, 23, 0, tzinfo=EST), EST) == "2024-03-01"


def test_is_within_inclusive_range() -> None:
    """Both bounds are inclusive; missing bounds are unbounded."""
    assert is_within_inclusive_range("2024-01-01", "2024-01-01", "2024-01-31")
    assert is_within_inclusive_range("2024-01-31", "2024-01-01", "2024-01-31")
    assert not is_within_inclusive_range("2023-12-31", "2024-01-01", "2024-01-31")
    assert is_within_inclusive_range("1999-01-01", None, "2024-01-31")
    assert is_within_inclusive_range("2099-01-01", "2024-01-01", None)
    assert is_within_inclusive_range("2024-06-01")


def test_preceding_range_of_equal_length_month() -> None:
    """January is preceded by December, with no gap and no overlap."""
    assert preceding_range_of_equal_length("2024-01-01", "2024-01-31") == (
        "2023-12-01",
        "2023-12-31",
    )


def test_preceding_range_properties() -> None:
    """Same inclusive length; preceding end is exactly one day before start."""
    starts = [date(2024, 1, 1) + timedelta(days=13 * i) for i in range(30)]
    for start in starts:
        for length in (1, 2, 7, 31, 45, 366):
            end = start + timedelta(days=length - 1)
            prev_start, prev_end = preceding_range_of_equal_length(
                start.isoformat(), end.isoformat()
            )
            assert inclusive_day_count(prev_start, prev_end) == length
            assert parse_calendar_date(prev_end) == start - timedelta(days=1)


def test_preceding_range_across_dst_change() -> None:
    """Calendar arithmetic ignores DST transitions."""
    prev_start, prev_end = preceding_range_of_equal_length("2024-03-10", "2024-03-16")
    assert (prev_start, prev_end) == ("2024-03-03", "2024-03-09")


def test_preceding_range_rejects_inverted_range() -> None:
    with pytest.raises(DataQualityError):
        preceding_range_of_equal_length("2024-02-01", "2024-01-01")


def test_preceding_range_rejects_invalid_bounds() -> None:
    with pytest.raises(ParseError):
        preceding_range_of_equal_length("2024-02-30", "2024-03-05")


def test_bucket_keys() -> None:
    assert month_key(to_utc_day("2024-02-29")) == "2024-02"
    assert iso_week_key(to_utc_day("2024-12-30")) == "2025-W01"
    assert iso_week_key(to_utc_day("2024-01-01")) == "2024-W01"
    assert shift_utc_day(to_utc_day("2024-03-01"), -1) == "2024-02-29"
    # 2024-01-15 is a Monday
    assert local_weekday(to_local_day("2024-01-15")) == 0
    assert local_weekday(to_local_day("2024-01-21")) == 6
