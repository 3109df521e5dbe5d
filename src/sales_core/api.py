"""Public API for the sales analytics engine.

This module runs every component over an in-memory sale collection and
returns the results in one ``DashboardResult``:

- ``build_dashboard``: works on sales, clients and instruments already in
  memory.
- ``load_dashboard``: fetches them through the collaborator Protocols in
  ``sales_core.sources`` first, then calls ``build_dashboard``.

Neither function reads the system clock; ``today`` is always passed in.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Optional

import pandas as pd

from sales_core.aggregate import (
    aggregate,
    overall_refund_rate,
    refunds_by_client,
    refunds_by_instrument,
)
from sales_core.compare import PeriodComparison, compare_periods
from sales_core.config import AnalyticsConfig
from sales_core.dates import DateLike, preceding_range_of_equal_length
from sales_core.enrich import enrich_sales, sort_sales
from sales_core.exceptions import ParseError
from sales_core.filters import filter_by_client_presence, filter_by_period, filter_by_search
from sales_core.models import Client, EnrichedSale, Instrument, Period, Sale
from sales_core.periods import format_period_info
from sales_core.qa import DataQuality, check_data_quality
from sales_core.sources import ReferenceSource, SalesPage, SalesQuery, SalesSource
from sales_core.totals import SalesTotals, resolve_totals
from sales_core.trends import Alert, TrendResult, detect_alerts, short_window_trend

logger = logging.getLogger(__name__)

CHART_KEYS = ("day", "week", "weekday", "month", "type", "maker")

# Rows requested per call when loading a whole period for analysis
ANALYSIS_PAGE_SIZE = 1000


@dataclass
class DashboardResult:
    """Everything the sales dashboard shows for one selection.

    Attributes:
        period: Selected period, or None for all time.
        period_label: Human-readable label for the period.
        sales: Enriched sales in the selection, sorted for the table.
        totals: KPI totals (collaborator totals when supplied).
        comparison: Comparison with the preceding period, or None when the
            period is not bounded on both sides.
        trend: Short-window revenue trend.
        alerts: Every alert that fires for the last local-day window.
        charts: Bucket DataFrames keyed by "day", "week", "weekday", "month",
            "type", "maker", "refunds_by_client" and "refunds_by_instrument".
        refund_rate: Refunds as a percentage of gross revenue.
        data_quality: Data-quality flags for the selection.
    """

    period: Optional[Period]
    period_label: str
    sales: list[EnrichedSale]
    totals: SalesTotals
    comparison: Optional[PeriodComparison]
    trend: TrendResult
    alerts: list[Alert] = field(default_factory=list)
    charts: dict[str, pd.DataFrame] = field(default_factory=dict)
    refund_rate: float = 0.0
    data_quality: Optional[DataQuality] = None


def build_dashboard(
    sales: Iterable[Sale],
    clients: Iterable[Client],
    instruments: Iterable[Instrument],
    period: Optional[Period] = None,
    today: Optional[DateLike] = None,
    config: Optional[AnalyticsConfig] = None,
    *,
    search: Optional[str] = None,
    has_client: Optional[bool] = None,
    server_totals: SalesTotals | Mapping[str, Any] | None = None,
    total_count: Optional[int] = None,
    sort_column: str = "sale_date",
    sort_direction: str = "desc",
) -> DashboardResult:
    """Run every analytics component over an in-memory sale collection.

    This function:
    - does NOT read or write any files,
    - does NOT read the system clock,
    - does NOT print (logging only).

    Args:
        sales: Sale universe. It should cover the preceding period too, so
            the period comparison has its baseline.
        clients: Client reference data.
        instruments: Instrument reference data.
        period: Selected inclusive UTC-day range, or None for all time.
        today: Viewer's current date for alert windows. Alerts are skipped
            (empty list) when None.
        config: Engine options. Defaults when None.
        search: Free-text search applied to the selection.
        has_client: Keep only sales with (True) or without (False) a client.
        server_totals: Totals from the data-fetch collaborator, if any.
        total_count: Size of the full filtered set when ``sales`` is a page.
        sort_column: Table sort column.
        sort_direction: Table sort direction.

    Returns:
        DashboardResult.

    Raises:
        DataQualityError: If the period ends before it starts or a sort
            option is unknown.
        ParseError: If ``today`` cannot be parsed.

    Examples:
        >>> result = build_dashboard([], [], [], today="2024-01-31")
        >>> result.totals.revenue
        0.0

    """
    config = config or AnalyticsConfig()
    enriched = enrich_sales(sales, clients, instruments)

    universe = filter_by_client_presence(filter_by_search(enriched, search), has_client)
    selection = filter_by_period(universe, period)

    charts = {
        key: aggregate(
            selection,
            key,
            top_n=config.top_n,
            month_limit=config.month_limit,
            tz=config.local_tz,
        )
        for key in CHART_KEYS
    }
    charts["refunds_by_client"] = refunds_by_client(selection, config.top_n)
    charts["refunds_by_instrument"] = refunds_by_instrument(selection, config.top_n)

    alerts: list[Alert] = []
    if today is not None:
        alerts = detect_alerts(selection, today, config.thresholds, config.local_tz)

    result = DashboardResult(
        period=period,
        period_label=format_period_info(
            period.start if period else None,
            period.end if period else None,
        ),
        sales=sort_sales(selection, sort_column, sort_direction),
        totals=resolve_totals(server_totals, selection),
        comparison=compare_periods(universe, period),
        trend=short_window_trend(selection, config.thresholds),
        alerts=alerts,
        charts=charts,
        refund_rate=overall_refund_rate(selection),
        data_quality=check_data_quality(selection, total_count),
    )

    logger.info(
        f"Dashboard for {result.period_label}: {len(selection)} sale(s), "
        f"revenue {result.totals.revenue:.2f}, refunds {result.totals.refund:.2f}, "
        f"{len(alerts)} alert(s), trend {result.trend.status}"
    )
    return result


def _analysis_period(period: Optional[Period]) -> Optional[Period]:
    """Extend a bounded period back over the preceding period of equal length."""
    if period is None or not period.is_bounded:
        return period
    try:
        previous_start, _ = preceding_range_of_equal_length(period.start, period.end)  # type: ignore[arg-type]
    except ParseError as e:
        logger.debug(f"Cannot extend period for comparison: {e}")
        return period
    return Period(start=previous_start, end=period.end)


def fetch_all_sales(source: SalesSource, query: SalesQuery) -> list[Sale]:
    """Fetch every page of a query from the data-fetch collaborator.

    Args:
        source: Data-fetch collaborator.
        query: Filters; ``page`` is ignored and every page is requested.

    Returns:
        All sales matching the query, in collaborator order.

    """
    sales: list[Sale] = []
    page_number = 1
    while True:
        page: SalesPage = source.fetch_sales(replace(query, page=page_number))
        sales.extend(page.sales)
        if not page.sales or page_number >= page.total_pages:
            break
        page_number += 1
    logger.debug(f"Fetched {len(sales)} sale(s) in {page_number} page(s)")
    return sales


def load_dashboard(
    source: SalesSource,
    reference: ReferenceSource,
    query: SalesQuery,
    today: Optional[DateLike] = None,
    config: Optional[AnalyticsConfig] = None,
) -> DashboardResult:
    """Fetch sales and reference data through collaborators, then build the dashboard.

    The requested page supplies the collaborator's totals for the full
    filtered set. Analytics run over every sale in the selected period and
    the preceding period of equal length.

    Args:
        source: Data-fetch collaborator.
        reference: Reference-data collaborator.
        query: Filters, sort and pagination for the table.
        today: Viewer's current date for alert windows.
        config: Engine options. Defaults when None.

    Returns:
        DashboardResult over the full selection.

    """
    page = source.fetch_sales(query)
    analysis_query = replace(
        query,
        period=_analysis_period(query.period),
        page=1,
        page_size=ANALYSIS_PAGE_SIZE,
    )
    sales = fetch_all_sales(source, analysis_query)
    clients = list(reference.fetch_clients())
    instruments = list(reference.fetch_instruments())
    logger.info(
        f"Loaded {len(sales)} sale(s), {len(clients)} client(s), "
        f"{len(instruments)} instrument(s); {page.total_count} row(s) match the query"
    )

    return build_dashboard(
        sales,
        clients,
        instruments,
        period=query.period,
        today=today,
        config=config,
        search=query.search,
        has_client=query.has_client,
        server_totals=page.totals,
        sort_column=query.sort_column,
        sort_direction=query.sort_direction,
    )
