"""Short-window trend and anomaly alerts.

Two independent analyses over a caller-supplied, period-filtered collection:

- **Short-window trend**: revenue of the last N transactions against the N
  transactions before them.
- **Alerts**: the last N local calendar days against the N days before
  them. Checks cover revenue drops, refund spikes, per-maker refund spikes
  and per-weekday order drops. Minimum-baseline and minimum-delta gates keep
  small numbers from raising alerts.

"Today" is always an explicit argument so results are deterministic.
The detector returns the complete alert set; filtering or capping what is
shown belongs to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Any, Optional

from sales_core.config import AlertThresholds
from sales_core.dates import (
    WEEKDAY_NAMES,
    DateLike,
    LocalCalendarDay,
    is_within_inclusive_range,
    local_weekday,
    shift_local_day,
    to_local_day,
    to_utc_day,
)
from sales_core.exceptions import ParseError
from sales_core.models import EnrichedSale

logger = logging.getLogger(__name__)

SEVERITY_LOW = "low"
SEVERITY_MEDIUM = "medium"
SEVERITY_HIGH = "high"

TREND_OK = "ok"
TREND_INSUFFICIENT_DATA = "insufficient_data"
TREND_NO_SIGNAL = "no_signal"


@dataclass(frozen=True)
class TrendResult:
    """Short-window revenue trend.

    Attributes:
        status: "ok", "insufficient_data" (too few sales in scope) or
            "no_signal" (previous window has no revenue).
        change_pct: Percentage change, or None unless status is "ok".
        direction: "up", "down" or "stable", or None unless status is "ok".
        recent_revenue: Revenue of the most recent window.
        previous_revenue: Revenue of the window before it.
    """

    status: str
    change_pct: Optional[float] = None
    direction: Optional[str] = None
    recent_revenue: float = 0.0
    previous_revenue: float = 0.0


@dataclass(frozen=True)
class Alert:
    """One anomaly finding.

    Attributes:
        kind: "revenue_drop", "refund_spike", "refund_new", "maker_refund_spike",
            "maker_refund_new" or "weekday_order_drop".
        severity: "low", "medium" or "high".
        title: Short headline.
        message: Human-readable explanation with the compared values.
        data: Numbers behind the finding (JSON-like values).
    """

    kind: str
    severity: str
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AlertWindows:
    """Non-overlapping recent/previous local-day windows (inclusive)."""

    recent_start: LocalCalendarDay
    recent_end: LocalCalendarDay
    previous_start: LocalCalendarDay
    previous_end: LocalCalendarDay


def _money(value: float) -> str:
    return f"${value:,.2f}"


def short_window_trend(
    sales: Sequence[EnrichedSale],
    thresholds: AlertThresholds | None = None,
) -> TrendResult:
    """Compare revenue of the latest transactions with the ones before them.

    Sales are ordered by UTC day (stable, so same-day sales keep input
    order). The last ``trend_window`` sales form the recent window and the
    ``trend_window`` sales before them the previous window.

    Args:
        sales: Enriched sales already filtered to the selected range.
        thresholds: Trend thresholds (defaults when None).

    Returns:
        TrendResult.

    """
    thresholds = thresholds or AlertThresholds()
    window = thresholds.trend_window

    dated: list[tuple[str, EnrichedSale]] = []
    for sale in sales:
        try:
            dated.append((to_utc_day(sale.sale_date), sale))
        except ParseError as e:
            logger.debug("Excluding sale %s from trend: %s", sale.id, e)

    required = max(thresholds.min_trend_sales, 2 * window)
    if len(dated) < required:
        return TrendResult(status=TREND_INSUFFICIENT_DATA)

    dated.sort(key=lambda pair: pair[0])
    ordered = [sale for _, sale in dated]
    recent = ordered[-window:]
    previous = ordered[-2 * window : -window]

    recent_revenue = sum(s.sale_price for s in recent if s.sale_price > 0)
    previous_revenue = sum(s.sale_price for s in previous if s.sale_price > 0)
    if previous_revenue == 0:
        return TrendResult(
            status=TREND_NO_SIGNAL,
            recent_revenue=recent_revenue,
            previous_revenue=previous_revenue,
        )

    change = (recent_revenue - previous_revenue) / previous_revenue * 100
    direction = "up" if change > 0 else "down" if change < 0 else "stable"
    return TrendResult(
        status=TREND_OK,
        change_pct=change,
        direction=direction,
        recent_revenue=recent_revenue,
        previous_revenue=previous_revenue,
    )


def alert_windows(today: LocalCalendarDay, days: int) -> AlertWindows:
    """Recent = ``[today-(days-1), today]``; previous = the ``days`` before it.

    Examples:
        >>> w = alert_windows(LocalCalendarDay("2024-01-14"), 7)
        >>> (w.recent_start, w.previous_start, w.previous_end)
        ('2024-01-08', '2024-01-01', '2024-01-07')

    """
    return AlertWindows(
        recent_start=shift_local_day(today, -(days - 1)),
        recent_end=today,
        previous_start=shift_local_day(today, -(2 * days - 1)),
        previous_end=shift_local_day(today, -days),
    )


@dataclass
class _WindowSplit:
    recent_sales: list[EnrichedSale] = field(default_factory=list)
    recent_refunds: list[EnrichedSale] = field(default_factory=list)
    previous_sales: list[EnrichedSale] = field(default_factory=list)
    previous_refunds: list[EnrichedSale] = field(default_factory=list)
    recent_days: list[LocalCalendarDay] = field(default_factory=list)
    previous_days: list[LocalCalendarDay] = field(default_factory=list)


def _split_windows(
    sales: Sequence[EnrichedSale],
    windows: AlertWindows,
    tz: tzinfo | None,
) -> _WindowSplit:
    split = _WindowSplit()
    for sale in sales:
        try:
            day = to_local_day(sale.sale_date, tz)
        except ParseError as e:
            logger.debug("Excluding sale %s from alerts: %s", sale.id, e)
            continue
        if is_within_inclusive_range(day, windows.recent_start, windows.recent_end):
            if sale.sale_price > 0:
                split.recent_sales.append(sale)
                split.recent_days.append(day)
            else:
                split.recent_refunds.append(sale)
        elif is_within_inclusive_range(day, windows.previous_start, windows.previous_end):
            if sale.sale_price > 0:
                split.previous_sales.append(sale)
                split.previous_days.append(day)
            else:
                split.previous_refunds.append(sale)
    return split


def revenue_drop_alert(
    recent_revenue: float,
    previous_revenue: float,
    thresholds: AlertThresholds,
) -> Optional[Alert]:
    """Alert when revenue fell against the previous window."""
    if previous_revenue <= 0:
        return None
    drop = (previous_revenue - recent_revenue) / previous_revenue * 100
    data = {"recent": recent_revenue, "previous": previous_revenue, "drop_pct": drop}
    if drop > thresholds.revenue_drop_medium_pct:
        severity = SEVERITY_HIGH if drop > thresholds.revenue_drop_high_pct else SEVERITY_MEDIUM
        return Alert(
            kind="revenue_drop",
            severity=severity,
            title="Revenue drop",
            message=(
                f"Revenue in the last window fell {round(drop)}% versus the previous one "
                f"({_money(recent_revenue)} vs {_money(previous_revenue)})."
            ),
            data=data,
        )
    if drop > thresholds.revenue_drop_low_pct:
        return Alert(
            kind="revenue_drop",
            severity=SEVERITY_LOW,
            title="Revenue slipping",
            message=f"Revenue in the last window fell {round(drop)}% versus the previous one.",
            data=data,
        )
    return None


def refund_spike_alert(
    recent_refund: float,
    previous_refund: float,
    thresholds: AlertThresholds,
) -> Optional[Alert]:
    """Alert on a refund increase, or on refunds appearing after none."""
    if previous_refund > 0:
        increase = (recent_refund - previous_refund) / previous_refund * 100
        if increase > thresholds.refund_spike_pct:
            severity = (
                SEVERITY_HIGH if increase > thresholds.refund_spike_high_pct else SEVERITY_MEDIUM
            )
            return Alert(
                kind="refund_spike",
                severity=severity,
                title="Refund spike",
                message=(
                    f"Refunds in the last window rose {round(increase)}% versus the previous "
                    f"one ({_money(recent_refund)} vs {_money(previous_refund)})."
                ),
                data={
                    "recent": recent_refund,
                    "previous": previous_refund,
                    "increase_pct": increase,
                },
            )
        return None
    if recent_refund > 0:
        return Alert(
            kind="refund_new",
            severity=SEVERITY_LOW,
            title="Refunds issued",
            message=f"{_money(recent_refund)} was refunded in the last window.",
            data={"recent": recent_refund, "previous": 0.0},
        )
    return None


def maker_refund_alerts(
    split: _WindowSplit,
    thresholds: AlertThresholds,
) -> list[Alert]:
    """Per-maker refund alerts, ordered by maker name.

    A spike needs all three gates at once: a previous refund total of at
    least ``maker_min_baseline``, an increase above
    ``maker_min_increase_pct``, and an absolute increase of at least
    ``maker_min_delta``.
    """
    totals: dict[str, dict[str, float]] = {}
    for bucket, refunds in (("recent", split.recent_refunds), ("previous", split.previous_refunds)):
        for sale in refunds:
            maker = sale.instrument.maker if sale.instrument else None
            if not maker:
                continue
            entry = totals.setdefault(maker, {"recent": 0.0, "previous": 0.0})
            entry[bucket] += abs(sale.sale_price)

    alerts = []
    for maker in sorted(totals):
        recent = totals[maker]["recent"]
        previous = totals[maker]["previous"]
        if previous > 0:
            increase = (recent - previous) / previous * 100
            if (
                previous >= thresholds.maker_min_baseline
                and increase > thresholds.maker_min_increase_pct
                and recent - previous >= thresholds.maker_min_delta
            ):
                alerts.append(
                    Alert(
                        kind="maker_refund_spike",
                        severity=SEVERITY_HIGH,
                        title=f"{maker} refund spike",
                        message=(
                            f"Refunds for {maker} rose {round(increase)}% versus the "
                            f"previous window ({_money(recent)} vs {_money(previous)})."
                        ),
                        data={
                            "maker": maker,
                            "recent": recent,
                            "previous": previous,
                            "increase_pct": increase,
                        },
                    )
                )
        elif recent > 0:
            alerts.append(
                Alert(
                    kind="maker_refund_new",
                    severity=SEVERITY_MEDIUM,
                    title=f"{maker} refunds issued",
                    message=f"{_money(recent)} was refunded on {maker} instruments.",
                    data={"maker": maker, "recent": recent, "previous": 0.0},
                )
            )
    return alerts


def weekday_order_alerts(
    split: _WindowSplit,
    thresholds: AlertThresholds,
) -> list[Alert]:
    """Alert for each local weekday whose order count dropped sharply."""
    recent_counts = [0] * 7
    previous_counts = [0] * 7
    for day in split.recent_days:
        recent_counts[local_weekday(day)] += 1
    for day in split.previous_days:
        previous_counts[local_weekday(day)] += 1

    alerts = []
    for weekday in range(7):
        previous = previous_counts[weekday]
        recent = recent_counts[weekday]
        if previous == 0 or previous < thresholds.weekday_min_prior_count:
            continue
        drop = (previous - recent) / previous * 100
        if drop > thresholds.weekday_drop_pct:
            name = WEEKDAY_NAMES[weekday]
            alerts.append(
                Alert(
                    kind="weekday_order_drop",
                    severity=SEVERITY_MEDIUM,
                    title=f"{name} orders down",
                    message=(
                        f"{name} orders fell {round(drop)}% versus the previous window "
                        f"({recent} vs {previous})."
                    ),
                    data={
                        "weekday": weekday,
                        "recent": recent,
                        "previous": previous,
                        "drop_pct": drop,
                    },
                )
            )
    return alerts


def detect_alerts(
    sales: Sequence[EnrichedSale],
    today: DateLike,
    thresholds: AlertThresholds | None = None,
    tz: tzinfo | None = None,
) -> list[Alert]:
    """Run every alert check over the recent and previous local-day windows.

    Args:
        sales: Enriched sales already filtered to the selected range.
        today: The viewer's current date (or an aware datetime converted to
            ``tz``). Never read from the system clock.
        thresholds: Alert thresholds (defaults when None).
        tz: Viewer timezone for local days (None = host zone).

    Returns:
        All alerts that fire, in a fixed order: revenue, refunds, makers by
        name, weekdays Monday to Sunday.

    Raises:
        ParseError: If ``today`` cannot be parsed.

    """
    thresholds = thresholds or AlertThresholds()
    if not sales:
        return []

    local_today = to_local_day(today, tz)
    windows = alert_windows(local_today, thresholds.alert_window_days)
    split = _split_windows(sales, windows, tz)

    alerts: list[Alert] = []
    revenue_alert = revenue_drop_alert(
        sum(s.sale_price for s in split.recent_sales),
        sum(s.sale_price for s in split.previous_sales),
        thresholds,
    )
    if revenue_alert:
        alerts.append(revenue_alert)

    refund_alert = refund_spike_alert(
        sum(abs(s.sale_price) for s in split.recent_refunds),
        sum(abs(s.sale_price) for s in split.previous_refunds),
        thresholds,
    )
    if refund_alert:
        alerts.append(refund_alert)

    alerts.extend(maker_refund_alerts(split, thresholds))
    alerts.extend(weekday_order_alerts(split, thresholds))

    logger.debug("Alert windows %s: %d alert(s)", windows, len(alerts))
    return alerts
