"""Tests for date presets and period labels."""

from datetime import date, datetime, timezone

import pytest

from sales_core.exceptions import DataQualityError
from sales_core.models import Period
from sales_core.periods import date_range_from_preset, format_period_info, whole_months_between


@pytest.mark.parametrize(
    "preset, expected",
    [
        ("last7", Period("2024-03-04", "2024-03-10")),
        ("thisMonth", Period("2024-03-01", "2024-03-10")),
        ("lastMonth", Period("2024-02-01", "2024-02-29")),
        ("last3Months", Period("2024-01-01", "2024-03-10")),
        ("last12Months", Period("2023-04-01", "2024-03-10")),
    ],
)
def test_date_range_from_preset(preset: str, expected: Period) -> None:
    assert date_range_from_preset(preset, "2024-03-10") == expected


def test_presets_cross_year_boundary() -> None:
    assert date_range_from_preset("lastMonth", date(2024, 1, 5)) == Period(
        "2023-12-01", "2023-12-31"
    )
    assert date_range_from_preset("last3Months", "2024-02-15").start == "2023-12-01"


def test_preset_today_uses_utc_day() -> None:
    late_evening = datetime(2024, 3, 31, 23, 30, tzinfo=timezone.utc)
    assert date_range_from_preset("thisMonth", late_evening) == Period("2024-03-01", "2024-03-31")


def test_unknown_preset() -> None:
    with pytest.raises(DataQualityError):
        date_range_from_preset("yesterday", "2024-03-10")


@pytest.mark.parametrize(
    "start, end, label",
    [
        ("2024-01-15", "2024-01-15", "Jan 15, 2024"),
        ("2024-01-15", "2024-01-19", "5 days"),
        ("2024-01-01", "2024-01-20", "Jan 1 - Jan 20, 2024"),
        ("2024-02-01", "2024-02-29", "February 2024"),
        ("2024-01-10", "2024-03-20", "Jan 10, 2024 - Mar 20, 2024"),
        ("2024-01-01", None, "Since Jan 1, 2024"),
        (None, "2024-01-31", "Until Jan 31, 2024"),
        (None, None, "All time"),
        ("2024-02-30", "2024-03-05", "Selected period"),
        ("bad", None, "Since selected date"),
        ("", "bad", "Until selected date"),
    ],
)
def test_format_period_info(start, end, label: str) -> None:
    assert format_period_info(start, end) == label


def test_whole_months_between() -> None:
    assert whole_months_between(date(2024, 1, 15), date(2024, 2, 14)) == 0
    assert whole_months_between(date(2024, 1, 15), date(2024, 2, 15)) == 1
    assert whole_months_between(date(2024, 3, 1), date(2024, 1, 1)) == 0
