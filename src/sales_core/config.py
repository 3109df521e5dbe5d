"""Configuration for the sales analytics engine.

Business-tuned thresholds used by the anomaly detector and the chart
aggregations live here as named defaults that callers can override.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import tzinfo
from typing import Any

from sales_core.exceptions import ConfigError

# Short-window trend (last N transactions vs the N before them)
MIN_TREND_SALES = 14
TREND_WINDOW = 7

# Alert recency windows (local calendar days)
ALERT_WINDOW_DAYS = 7

# Revenue drop percentages
REVENUE_DROP_LOW_PCT = 15.0
REVENUE_DROP_MEDIUM_PCT = 30.0
REVENUE_DROP_HIGH_PCT = 50.0

# Refund spike percentages
REFUND_SPIKE_PCT = 50.0
REFUND_SPIKE_HIGH_PCT = 100.0

# Per-maker refund spike gates (currency units / percent)
MAKER_MIN_BASELINE = 200.0
MAKER_MIN_INCREASE_PCT = 100.0
MAKER_MIN_DELTA = 200.0

# Per-weekday order drop
WEEKDAY_MIN_PRIOR_COUNT = 1
WEEKDAY_DROP_PCT = 50.0

# Chart aggregations
TOP_N = 10
MONTH_LIMIT = 12

# Thresholds used as window sizes or counts
COUNT_FIELDS = frozenset(
    {"min_trend_sales", "trend_window", "alert_window_days", "weekday_min_prior_count"}
)


@dataclass(frozen=True)
class AlertThresholds:
    """Thresholds for trend and anomaly detection.

    Attributes:
        min_trend_sales: Minimum sales in scope before a trend is reported.
        trend_window: Number of transactions in each trend window.
        alert_window_days: Length in days of the recent and previous alert windows.
        revenue_drop_low_pct: Drop percentage that raises a low-severity alert.
        revenue_drop_medium_pct: Drop percentage that raises a medium-severity alert.
        revenue_drop_high_pct: Drop percentage above which severity is high.
        refund_spike_pct: Refund increase percentage that raises an alert.
        refund_spike_high_pct: Refund increase percentage above which severity is high.
        maker_min_baseline: Minimum previous refund total for a maker spike.
        maker_min_increase_pct: Minimum refund increase percentage for a maker spike.
        maker_min_delta: Minimum absolute refund increase for a maker spike.
        weekday_min_prior_count: Minimum previous order count for a weekday drop.
        weekday_drop_pct: Order drop percentage that raises a weekday alert.
    """

    min_trend_sales: int = MIN_TREND_SALES
    trend_window: int = TREND_WINDOW
    alert_window_days: int = ALERT_WINDOW_DAYS
    revenue_drop_low_pct: float = REVENUE_DROP_LOW_PCT
    revenue_drop_medium_pct: float = REVENUE_DROP_MEDIUM_PCT
    revenue_drop_high_pct: float = REVENUE_DROP_HIGH_PCT
    refund_spike_pct: float = REFUND_SPIKE_PCT
    refund_spike_high_pct: float = REFUND_SPIKE_HIGH_PCT
    maker_min_baseline: float = MAKER_MIN_BASELINE
    maker_min_increase_pct: float = MAKER_MIN_INCREASE_PCT
    maker_min_delta: float = MAKER_MIN_DELTA
    weekday_min_prior_count: int = WEEKDAY_MIN_PRIOR_COUNT
    weekday_drop_pct: float = WEEKDAY_DROP_PCT

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{f.name} must be a number, got {value!r}")
            if f.name in COUNT_FIELDS and not isinstance(value, int):
                raise ConfigError(f"{f.name} must be an integer, got {value!r}")
            if value < 0:
                raise ConfigError(f"{f.name} must be non-negative, got {value}")

        if self.trend_window < 1:
            raise ConfigError("trend_window must be at least 1")
        if self.alert_window_days < 1:
            raise ConfigError("alert_window_days must be at least 1")
        if not (
            self.revenue_drop_low_pct
            <= self.revenue_drop_medium_pct
            <= self.revenue_drop_high_pct
        ):
            raise ConfigError(
                "revenue drop thresholds must satisfy low <= medium <= high, got "
                f"{self.revenue_drop_low_pct}/{self.revenue_drop_medium_pct}/"
                f"{self.revenue_drop_high_pct}"
            )

    @classmethod
    def from_mapping(cls, overrides: Mapping[str, Any]) -> AlertThresholds:
        """Create thresholds from defaults plus named overrides.

        Args:
            overrides: Mapping of field name to value.

        Returns:
            AlertThresholds instance.

        Raises:
            ConfigError: If a key is not a known threshold or a value is invalid.

        Examples:
            >>> AlertThresholds.from_mapping({"maker_min_baseline": 500}).maker_min_baseline
            500
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigError(f"Unknown threshold(s): {unknown}. Known: {sorted(known)}")
        return replace(cls(), **dict(overrides))


@dataclass
class AnalyticsConfig:
    """Options shared by the dashboard entry points.

    Attributes:
        thresholds: Alert and trend thresholds.
        top_n: Number of maker/type/refund buckets kept for ranked charts.
        month_limit: Number of most recent months kept for the monthly chart.
        local_tz: Viewer timezone for local-day computations. If None, the
            host's local timezone is used.
    """

    thresholds: AlertThresholds = field(default_factory=AlertThresholds)
    top_n: int = TOP_N
    month_limit: int = MONTH_LIMIT
    local_tz: tzinfo | None = None

    def __post_init__(self) -> None:
        if self.top_n < 1:
            raise ConfigError(f"top_n must be at least 1, got {self.top_n}")
        if self.month_limit < 1:
            raise ConfigError(f"month_limit must be at least 1, got {self.month_limit}")
