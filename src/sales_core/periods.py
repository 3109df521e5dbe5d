"""Date-range presets and human-readable period labels.

Month names are spelled out here rather than taken from the host locale so
labels are identical on every machine.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from typing import Optional

from sales_core.dates import DateLike, UtcCalendarDay, parse_calendar_date, to_utc_day
from sales_core.exceptions import DataQualityError, ParseError
from sales_core.models import Period

logger = logging.getLogger(__name__)

# English month names (January through December)
MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

# English month abbreviations (January through December)
MONTH_ABBREVIATIONS = [name[:3] for name in MONTH_NAMES]

PRESET_LAST_7 = "last7"
PRESET_THIS_MONTH = "thisMonth"
PRESET_LAST_MONTH = "lastMonth"
PRESET_LAST_3_MONTHS = "last3Months"
PRESET_LAST_12_MONTHS = "last12Months"

DATE_PRESETS = (
    PRESET_LAST_7,
    PRESET_THIS_MONTH,
    PRESET_LAST_MONTH,
    PRESET_LAST_3_MONTHS,
    PRESET_LAST_12_MONTHS,
)


def format_display_date(d: date) -> str:
    """Format a date like 'Jan 15, 2024'."""
    return f"{MONTH_ABBREVIATIONS[d.month - 1]} {d.day}, {d.year}"


def format_compact_date(d: date) -> str:
    """Format a date like 'Jan 15'."""
    return f"{MONTH_ABBREVIATIONS[d.month - 1]} {d.day}"


def format_month(d: date) -> str:
    """Format a month like 'January 2024'."""
    return f"{MONTH_NAMES[d.month - 1]} {d.year}"


def _month_start(d: date, months_back: int) -> date:
    index = d.year * 12 + (d.month - 1) - months_back
    return date(index // 12, index % 12 + 1, 1)


def _month_end(d: date) -> date:
    return date(d.year, d.month, calendar.monthrange(d.year, d.month)[1])


def whole_months_between(start: date, end: date) -> int:
    """Number of complete months from start to end (0 if end is before start).

    Examples:
        >>> whole_months_between(date(2024, 1, 31), date(2024, 2, 29))
        0
        >>> whole_months_between(date(2024, 1, 1), date(2024, 2, 1))
        1

    """
    if end < start:
        return 0
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return months


def date_range_from_preset(preset: str, today: DateLike) -> Period:
    """Compute the inclusive UTC-day range for a named preset.

    Args:
        preset: One of ``last7``, ``thisMonth``, ``lastMonth``,
            ``last3Months``, ``last12Months``.
        today: Current date. Timestamps are reduced to their UTC day.

    Returns:
        Period with both bounds set.

    Raises:
        DataQualityError: If the preset is unknown.
        ParseError: If ``today`` cannot be parsed.

    Examples:
        >>> date_range_from_preset("lastMonth", "2024-03-10")
        Period(start='2024-02-01', end='2024-02-29')

    """
    today_day = to_utc_day(today)
    today_date = parse_calendar_date(today_day)

    if preset == PRESET_LAST_7:
        start = today_date - timedelta(days=6)
        end = today_date
    elif preset == PRESET_THIS_MONTH:
        start = _month_start(today_date, 0)
        end = today_date
    elif preset == PRESET_LAST_MONTH:
        start = _month_start(today_date, 1)
        end = _month_end(start)
    elif preset == PRESET_LAST_3_MONTHS:
        start = _month_start(today_date, 2)
        end = today_date
    elif preset == PRESET_LAST_12_MONTHS:
        start = _month_start(today_date, 11)
        end = today_date
    else:
        raise DataQualityError(f"Unknown date preset {preset!r}. Expected one of {DATE_PRESETS}")

    return Period(start=UtcCalendarDay(start.isoformat()), end=UtcCalendarDay(end.isoformat()))


def format_period_info(start: Optional[str], end: Optional[str]) -> str:
    """Describe a selected period for display.

    Args:
        start: Inclusive start day, or None/empty for unbounded.
        end: Inclusive end day, or None/empty for unbounded.

    Returns:
        Label such as "Jan 15, 2024", "5 days", "Jan 1 - Jan 20, 2024",
        "January 2024", "Since Jan 1, 2024", "Until ..." or "All time".
        A bound that fails to parse yields a generic label.

    Examples:
        >>> format_period_info("2024-02-01", "2024-02-29")
        'February 2024'
        >>> format_period_info(None, None)
        'All time'

    """
    if start and end:
        try:
            start_date = parse_calendar_date(start)
            end_date = parse_calendar_date(end)
        except ParseError as e:
            logger.debug("Cannot label period %s..%s: %s", start, end, e)
            return "Selected period"

        days = (end_date - start_date).days + 1
        if days <= 1:
            return format_display_date(start_date)
        if days <= 7:
            return f"{days} days"
        # Exactly one calendar month
        if start_date.day == 1 and end_date == _month_end(start_date):
            return format_month(start_date)
        if whole_months_between(start_date, end_date) < 1:
            return f"{format_compact_date(start_date)} - {format_display_date(end_date)}"
        return f"{format_display_date(start_date)} - {format_display_date(end_date)}"

    if start:
        try:
            return f"Since {format_display_date(parse_calendar_date(start))}"
        except ParseError:
            return "Since selected date"

    if end:
        try:
            return f"Until {format_display_date(parse_calendar_date(end))}"
        except ParseError:
            return "Until selected date"

    return "All time"
