"""Sales Core - analytics engine for an instrument shop's sales history.

This package turns raw sale rows plus client and instrument reference data
into the numbers a sales dashboard shows:

- **Enrichment**: resolve each sale's client and instrument
- **Aggregation**: revenue, refund and net buckets by day, week, weekday,
  month, instrument type and maker
- **KPIs**: period totals, period-over-period comparison, revenue
  decomposition
- **Alerts**: short-window trend and anomaly detection
- **Export**: CSV text and receipt e-mails

Module Structure:
    sales_core.dates: UTC and local calendar-day normalization
    sales_core.models: Sale, Client, Instrument, EnrichedSale, Period
    sales_core.enrich: Enrichment, display names, sorting
    sales_core.filters: Period, search and client filters
    sales_core.aggregate: Bucketed DataFrames
    sales_core.totals: Period totals
    sales_core.compare: Period comparison
    sales_core.trends: Trend and alerts
    sales_core.export: CSV and receipt e-mail
    sales_core.periods: Date presets and period labels
    sales_core.qa: Data-quality heuristics
    sales_core.refunds: Refund and undo-refund patches
    sales_core.sources: Collaborator Protocols
    sales_core.api: One-call dashboard entry points

Quick Start:
    >>> from sales_core import Sale, build_dashboard, date_range_from_preset
    >>>
    >>> sales = [
    ...     Sale(id="s1", sale_price=1000.0, sale_date="2024-01-15"),
    ...     Sale(id="s2", sale_price=1500.0, sale_date="2024-01-20"),
    ... ]
    >>> period = date_range_from_preset("thisMonth", "2024-01-31")
    >>> result = build_dashboard(sales, [], [], period=period, today="2024-01-31")
    >>> result.totals.revenue
    2500.0
"""

__version__ = "0.1.0"

from sales_core.api import DashboardResult, build_dashboard, load_dashboard
from sales_core.config import AlertThresholds, AnalyticsConfig
from sales_core.exceptions import ConfigError, DataQualityError, ParseError, SalesCoreError
from sales_core.models import Client, EnrichedSale, Instrument, Period, Sale
from sales_core.periods import date_range_from_preset

__all__ = [
    "AlertThresholds",
    "AnalyticsConfig",
    "Client",
    "ConfigError",
    "DashboardResult",
    "DataQualityError",
    "EnrichedSale",
    "Instrument",
    "ParseError",
    "Period",
    "Sale",
    "SalesCoreError",
    "__version__",
    "build_dashboard",
    "date_range_from_preset",
    "load_dashboard",
]
