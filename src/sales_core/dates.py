"""Calendar normalization for sale dates.

Sale dates arrive either as pure calendar dates (``YYYY-MM-DD``) or as full
ISO timestamps. This module turns both into unambiguous calendar-day keys in
one of two interpretations:

- **UTC days** (``UtcCalendarDay``): used for every cross-period numeric
  comparison, KPI totals, and chart bucket keys. Results do not depend on the
  caller's timezone or on DST transitions.
- **Local days** (``LocalCalendarDay``): used only for day-of-week and
  "last N local calendar days" questions, where the viewer's own day
  boundary matters.

The two key types are distinct ``NewType``s so a type checker rejects
passing one where the other is expected. Both are zero-padded ``YYYY-MM-DD``
strings, so inclusive range checks compare them lexicographically.

Examples:
    >>> to_utc_day("2024-01-15")
    '2024-01-15'
    >>> to_utc_day("2024-01-15T23:30:00-05:00")
    '2024-01-16'
    >>> preceding_range_of_equal_length("2024-01-01", "2024-01-31")
    ('2023-12-01', '2023-12-31')

"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import NewType, Union

from sales_core.exceptions import DataQualityError, ParseError

UtcCalendarDay = NewType("UtcCalendarDay", str)
LocalCalendarDay = NewType("LocalCalendarDay", str)

DateLike = Union[str, date, datetime]

DATE_ONLY_RE = re.compile(r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})$")
TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]")

# Weekday names indexed by date.weekday() (Monday is 0)
WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def parse_calendar_date(s: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string.

    Args:
        s: Date string.

    Returns:
        Parsed date object.

    Raises:
        ParseError: If the string is not zero-padded ``YYYY-MM-DD`` or names a
            day that does not exist (``2024-02-30`` is rejected, not rolled
            over to March).

    Examples:
        >>> parse_calendar_date("2024-02-29")
        datetime.date(2024, 2, 29)

    """
    if not isinstance(s, str):
        raise ParseError(f"Expected a YYYY-MM-DD string, got {type(s).__name__}")
    match = DATE_ONLY_RE.match(s)
    if not match:
        raise ParseError(f"Invalid calendar date {s!r}: expected YYYY-MM-DD")
    try:
        return date(int(match["year"]), int(match["month"]), int(match["day"]))
    except ValueError as e:
        raise ParseError(f"Invalid calendar date {s!r}: {e}") from e


def _parse_timestamp(s: str) -> datetime:
    if not TIMESTAMP_RE.match(s):
        raise ParseError(f"Invalid date or timestamp {s!r}")
    try:
        # fromisoformat does not accept a trailing Z before Python 3.11
        return datetime.fromisoformat(s[:-1] + "+00:00" if s.endswith("Z") else s)
    except ValueError as e:
        raise ParseError(f"Invalid timestamp {s!r}: {e}") from e


def to_utc_day(value: DateLike) -> UtcCalendarDay:
    """Normalize a date or timestamp to its UTC calendar day.

    Calendar dates are returned unchanged (a calendar date is its own UTC
    midnight). Aware timestamps are converted to UTC first; naive timestamps
    are taken as UTC wall time.

    Args:
        value: ``YYYY-MM-DD`` string, ISO timestamp string, ``date`` or ``datetime``.

    Returns:
        UTC calendar-day key.

    Raises:
        ParseError: If the value cannot be parsed.

    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return UtcCalendarDay(value.isoformat())
    elif isinstance(value, str):
        if DATE_ONLY_RE.match(value):
            return UtcCalendarDay(parse_calendar_date(value).isoformat())
        dt = _parse_timestamp(value)
    else:
        raise ParseError(f"Unsupported date value of type {type(value).__name__}")

    if dt.tzinfo is not None and dt.utcoffset() is not None:
        dt = dt.astimezone(timezone.utc)
    return UtcCalendarDay(dt.date().isoformat())


def to_local_day(value: DateLike, tz: tzinfo | None = None) -> LocalCalendarDay:
    """Normalize a date or timestamp to the viewer's local calendar day.

    Calendar dates are read as local midnight of that same day. Aware
    timestamps are converted to ``tz``; naive timestamps are already local
    wall time.

    Args:
        value: ``YYYY-MM-DD`` string, ISO timestamp string, ``date`` or ``datetime``.
        tz: Viewer timezone. If None, the host's local timezone is used.

    Returns:
        Local calendar-day key.

    Raises:
        ParseError: If the value cannot be parsed.

    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return LocalCalendarDay(value.isoformat())
    elif isinstance(value, str):
        if DATE_ONLY_RE.match(value):
            return LocalCalendarDay(parse_calendar_date(value).isoformat())
        dt = _parse_timestamp(value)
    else:
        raise ParseError(f"Unsupported date value of type {type(value).__name__}")

    if dt.tzinfo is not None and dt.utcoffset() is not None:
        dt = dt.astimezone(tz) if tz is not None else dt.astimezone()
    return LocalCalendarDay(dt.date().isoformat())


def day_to_date(day: str) -> date:
    """Convert a calendar-day key back to a ``date``."""
    return parse_calendar_date(day)


def shift_utc_day(day: UtcCalendarDay, days: int) -> UtcCalendarDay:
    """Move a UTC day key by a number of calendar days."""
    return UtcCalendarDay((day_to_date(day) + timedelta(days=days)).isoformat())


def shift_local_day(day: LocalCalendarDay, days: int) -> LocalCalendarDay:
    """Move a local day key by a number of calendar days."""
    return LocalCalendarDay((day_to_date(day) + timedelta(days=days)).isoformat())


def is_within_inclusive_range(
    day: str,
    start: str | None = None,
    end: str | None = None,
) -> bool:
    """Check whether a day key lies within ``[start, end]``.

    A missing bound is unbounded on that side. Keys are fixed-width,
    zero-padded ``YYYY-MM-DD`` strings, so lexicographic order is
    chronological order.

    Args:
        day: Calendar-day key.
        start: Inclusive lower bound, or None.
        end: Inclusive upper bound, or None.

    Returns:
        True if the day is within the range.

    Examples:
        >>> is_within_inclusive_range("2024-01-31", "2024-01-01", "2024-01-31")
        True
        >>> is_within_inclusive_range("2024-02-01", end="2024-01-31")
        False

    """
    if start and day < start:
        return False
    if end and day > end:
        return False
    return True


def inclusive_day_count(start: str, end: str) -> int:
    """Number of calendar days in ``[start, end]`` (both inclusive)."""
    return (day_to_date(end) - day_to_date(start)).days + 1


def preceding_range_of_equal_length(
    start: str,
    end: str,
) -> tuple[UtcCalendarDay, UtcCalendarDay]:
    """Compute the range immediately before ``[start, end]`` with the same length.

    The preceding range ends the day before ``start`` and covers exactly as
    many calendar days as the current range, so the two neither overlap nor
    leave a gap. Calendar-day arithmetic is used, so DST changes have no
    effect.

    Args:
        start: Inclusive start day (``YYYY-MM-DD``).
        end: Inclusive end day (``YYYY-MM-DD``).

    Returns:
        Tuple of (preceding_start, preceding_end) UTC day keys.

    Raises:
        ParseError: If either bound is not a valid calendar date.
        DataQualityError: If end is before start.

    Examples:
        >>> preceding_range_of_equal_length("2024-03-01", "2024-03-07")
        ('2024-02-23', '2024-02-29')

    """
    start_date = parse_calendar_date(start)
    days = inclusive_day_count(start, end)
    if days < 1:
        raise DataQualityError(f"Range end {end} is before start {start}")
    preceding_end = start_date - timedelta(days=1)
    preceding_start = preceding_end - timedelta(days=days - 1)
    return (
        UtcCalendarDay(preceding_start.isoformat()),
        UtcCalendarDay(preceding_end.isoformat()),
    )


def month_key(day: UtcCalendarDay) -> str:
    """Return the ``YYYY-MM`` key of a UTC day."""
    return day[:7]


def iso_week_key(day: UtcCalendarDay) -> str:
    """Return the ISO week key (``YYYY-Www``) of a UTC day.

    Examples:
        >>> iso_week_key("2024-12-30")
        '2025-W01'

    """
    iso = day_to_date(day).isocalendar()
    return f"{iso[0]}-W{iso[1]:02d}"


def local_weekday(day: LocalCalendarDay) -> int:
    """Return the weekday of a local day (Monday is 0, Sunday is 6)."""
    return day_to_date(day).weekday()
