"""Calendar and category buckets for charting.

This module turns an enriched sale collection into bucket tables with one
row per key and the columns:

- ``key``: day (``YYYY-MM-DD``), ISO week (``YYYY-Www``), weekday index
  (0 = Monday), month (``YYYY-MM``), instrument type, maker, client id or
  instrument id
- ``revenue``: sum of positive sale prices
- ``refunds``: sum of absolute negative sale prices
- ``net``: revenue - refunds
- ``count``: number of positive sales (orders)
- ``refund_rate``: refunds / revenue * 100, or 0 when revenue is 0

Day, week and month keys use UTC calendar days so chart axes do not depend
on the viewer's timezone. Weekday keys use the viewer's local day.

Callers pass a collection already filtered to the overall range they want
charted; no bucketing function filters by date itself.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import tzinfo

import numpy as np
import pandas as pd

from sales_core.config import MONTH_LIMIT, TOP_N
from sales_core.dates import (
    WEEKDAY_NAMES,
    iso_week_key,
    local_weekday,
    month_key,
    to_local_day,
    to_utc_day,
)
from sales_core.enrich import client_display_name
from sales_core.exceptions import DataQualityError, ParseError
from sales_core.models import EnrichedSale

logger = logging.getLogger(__name__)

BUCKET_COLUMNS = ["key", "revenue", "refunds", "net", "count", "refund_rate"]

MISSING_TYPE_LABEL = "Missing instrument info"
UNKNOWN_CLIENT_KEY = "unknown"
UNKNOWN_CLIENT_NAME = "Unknown"

FRAME_COLUMNS = [
    "sale_id",
    "sale_price",
    "utc_day",
    "local_day",
    "client_id",
    "client_name",
    "instrument_id",
    "has_instrument",
    "maker",
    "type",
    "instrument_label",
]


def sales_frame(sales: Iterable[EnrichedSale], tz: tzinfo | None = None) -> pd.DataFrame:
    """Flatten enriched sales into a DataFrame, one row per sale.

    Sales whose date cannot be parsed are excluded and logged.

    Args:
        sales: Enriched sales.
        tz: Viewer timezone for the ``local_day`` column (None = host zone).

    Returns:
        DataFrame with FRAME_COLUMNS in input order.

    """
    rows = []
    skipped = 0
    for sale in sales:
        try:
            utc_day = to_utc_day(sale.sale_date)
            local_day = to_local_day(sale.sale_date, tz)
        except ParseError as e:
            logger.debug("Excluding sale %s from buckets: %s", sale.id, e)
            skipped += 1
            continue
        client, instrument = sale.client, sale.instrument
        rows.append(
            {
                "sale_id": sale.id,
                "sale_price": float(sale.sale_price),
                "utc_day": utc_day,
                "local_day": local_day,
                "client_id": sale.client_id or None,
                "client_name": client_display_name(client) if client else None,
                "instrument_id": sale.instrument_id or None,
                "has_instrument": instrument is not None,
                "maker": (instrument.maker or None) if instrument else None,
                "type": (instrument.type or None) if instrument else None,
                "instrument_label": instrument.label if instrument else None,
            }
        )

    if skipped:
        logger.info("Excluded %d sale(s) with invalid dates from aggregation", skipped)

    if not rows:
        return pd.DataFrame(columns=FRAME_COLUMNS)
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def _empty_buckets() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "key": pd.Series(dtype="object"),
            "revenue": pd.Series(dtype="float64"),
            "refunds": pd.Series(dtype="float64"),
            "net": pd.Series(dtype="float64"),
            "count": pd.Series(dtype="int64"),
            "refund_rate": pd.Series(dtype="float64"),
        }
    )


def _refund_rate(refunds: pd.Series, revenue: pd.Series) -> np.ndarray:
    revenue_arr = revenue.to_numpy(dtype=float)
    refunds_arr = refunds.to_numpy(dtype=float)
    rate = np.zeros(len(revenue_arr), dtype=float)
    np.divide(refunds_arr, revenue_arr, out=rate, where=revenue_arr > 0)
    return rate * 100.0


def summarize(frame: pd.DataFrame, key_col: str) -> pd.DataFrame:
    """Group a sales frame by ``key_col`` into revenue/refunds/count buckets.

    Rows with a null key are dropped; callers decide beforehand whether a
    missing key is excluded or mapped to an explicit bucket. Buckets appear
    in first-seen order.

    Args:
        frame: Output of ``sales_frame`` (optionally with extra key columns).
        key_col: Column to group by.

    Returns:
        DataFrame with BUCKET_COLUMNS.

    """
    frame = frame[frame[key_col].notna()]
    if frame.empty:
        return _empty_buckets()

    prices = frame["sale_price"].astype(float)
    work = pd.DataFrame(
        {
            "key": frame[key_col],
            "revenue": prices.clip(lower=0.0),
            "refunds": (-prices).clip(lower=0.0),
            "count": (prices > 0).astype(int),
        }
    )
    grouped = work.groupby("key", sort=False).sum().reset_index()
    grouped["net"] = grouped["revenue"] - grouped["refunds"]
    grouped["count"] = grouped["count"].astype("int64")
    grouped["refund_rate"] = _refund_rate(grouped["refunds"], grouped["revenue"])
    return grouped[BUCKET_COLUMNS]


def _top_n(buckets: pd.DataFrame, by: str, top_n: int) -> pd.DataFrame:
    # Stable sort keeps insertion order among ties
    return (
        buckets.sort_values(by, ascending=False, kind="stable")
        .head(top_n)
        .reset_index(drop=True)
    )


def aggregate_by_day(sales: Iterable[EnrichedSale]) -> pd.DataFrame:
    """Daily buckets keyed by UTC day, ascending."""
    frame = sales_frame(sales)
    buckets = summarize(frame, "utc_day")
    return buckets.sort_values("key", kind="stable").reset_index(drop=True)


def aggregate_by_week(sales: Iterable[EnrichedSale]) -> pd.DataFrame:
    """ISO-week buckets (``YYYY-Www``) from UTC days, ascending."""
    frame = sales_frame(sales)
    frame["week"] = frame["utc_day"].map(iso_week_key) if not frame.empty else []
    buckets = summarize(frame, "week")
    return buckets.sort_values("key", kind="stable").reset_index(drop=True)


def aggregate_by_weekday(
    sales: Iterable[EnrichedSale],
    tz: tzinfo | None = None,
) -> pd.DataFrame:
    """Buckets for every weekday (0 = Monday .. 6 = Sunday) by local day.

    All seven weekdays are present, with zeros where there were no sales,
    plus a ``day`` column with the weekday name.
    """
    frame = sales_frame(sales, tz)
    frame["weekday"] = frame["local_day"].map(local_weekday) if not frame.empty else []
    buckets = summarize(frame, "weekday").set_index("key")

    full = buckets.reindex(range(7))
    full[["revenue", "refunds", "net", "refund_rate"]] = full[
        ["revenue", "refunds", "net", "refund_rate"]
    ].fillna(0.0)
    full["count"] = full["count"].fillna(0).astype("int64")
    full = full.rename_axis("key").reset_index()
    full["day"] = [WEEKDAY_NAMES[i] for i in full["key"]]
    return full[["key", "day", "revenue", "refunds", "net", "count", "refund_rate"]]


def aggregate_by_month(
    sales: Iterable[EnrichedSale],
    limit: int = MONTH_LIMIT,
) -> pd.DataFrame:
    """Monthly buckets (``YYYY-MM``) for the most recent ``limit`` months present.

    Sorted ascending by month key.
    """
    frame = sales_frame(sales)
    frame["month"] = frame["utc_day"].map(month_key) if not frame.empty else []
    buckets = summarize(frame, "month")
    return buckets.sort_values("key", kind="stable").tail(limit).reset_index(drop=True)


def aggregate_by_instrument_type(
    sales: Iterable[EnrichedSale],
    top_n: int = TOP_N,
) -> pd.DataFrame:
    """Top instrument types by revenue.

    Sales without an instrument are excluded. An instrument without a type
    is grouped under ``"Missing instrument info"``.
    """
    frame = sales_frame(sales)
    frame = frame[frame["has_instrument"].astype(bool)].copy()
    frame["type_key"] = frame["type"].fillna(MISSING_TYPE_LABEL)
    return _top_n(summarize(frame, "type_key"), "revenue", top_n)


def aggregate_by_maker(
    sales: Iterable[EnrichedSale],
    top_n: int = TOP_N,
) -> pd.DataFrame:
    """Top makers by revenue. Sales without an instrument maker are excluded."""
    frame = sales_frame(sales)
    return _top_n(summarize(frame, "maker"), "revenue", top_n)


def refunds_by_client(
    sales: Iterable[EnrichedSale],
    top_n: int = TOP_N,
) -> pd.DataFrame:
    """Refund totals per client, highest first.

    Refunds without a client id are grouped under ``"unknown"`` so that every
    refund is accounted for.

    Returns:
        DataFrame with columns: key (client id), client_name, refunds, count.

    """
    frame = sales_frame(sales)
    frame = frame[frame["sale_price"] < 0].copy()
    if frame.empty:
        return pd.DataFrame(columns=["key", "client_name", "refunds", "count"])

    frame["client_key"] = frame["client_id"].fillna(UNKNOWN_CLIENT_KEY)
    frame["client_name"] = frame["client_name"].fillna(UNKNOWN_CLIENT_NAME)
    frame["refund"] = frame["sale_price"].abs()
    grouped = (
        frame.groupby("client_key", sort=False)
        .agg(
            client_name=("client_name", "first"),
            refunds=("refund", "sum"),
            count=("refund", "size"),
        )
        .rename_axis("key")
        .reset_index()
    )
    return _top_n(grouped, "refunds", top_n)


def refunds_by_instrument(
    sales: Iterable[EnrichedSale],
    top_n: int = TOP_N,
) -> pd.DataFrame:
    """Refund totals per resolved instrument, highest first.

    Returns:
        DataFrame with columns: key (instrument id), instrument_label, refunds, count.

    """
    frame = sales_frame(sales)
    frame = frame[(frame["sale_price"] < 0) & frame["has_instrument"].astype(bool)].copy()
    if frame.empty:
        return pd.DataFrame(columns=["key", "instrument_label", "refunds", "count"])

    frame["instrument_label"] = frame["instrument_label"].fillna(MISSING_TYPE_LABEL)
    frame["refund"] = frame["sale_price"].abs()
    grouped = (
        frame.groupby("instrument_id", sort=False)
        .agg(
            instrument_label=("instrument_label", "first"),
            refunds=("refund", "sum"),
            count=("refund", "size"),
        )
        .rename_axis("key")
        .reset_index()
    )
    return _top_n(grouped, "refunds", top_n)


def overall_refund_rate(sales: Iterable[EnrichedSale]) -> float:
    """Refunds as a percentage of gross revenue (0 when there is no revenue)."""
    revenue = 0.0
    refunds = 0.0
    for sale in sales:
        if sale.sale_price > 0:
            revenue += sale.sale_price
        else:
            refunds += abs(sale.sale_price)
    return refunds / revenue * 100 if revenue > 0 else 0.0


BUCKETERS = {
    "day": aggregate_by_day,
    "week": aggregate_by_week,
    "weekday": aggregate_by_weekday,
    "month": aggregate_by_month,
    "type": aggregate_by_instrument_type,
    "maker": aggregate_by_maker,
}


def aggregate(
    sales: Iterable[EnrichedSale],
    by: str,
    *,
    top_n: int = TOP_N,
    month_limit: int = MONTH_LIMIT,
    tz: tzinfo | None = None,
) -> pd.DataFrame:
    """Bucket sales by the named key selector.

    Args:
        sales: Enriched sales already filtered to the charted range.
        by: One of "day", "week", "weekday", "month", "type", "maker".
        top_n: Rank cap for "type" and "maker".
        month_limit: Number of recent months kept for "month".
        tz: Viewer timezone for "weekday".

    Returns:
        Bucket DataFrame.

    Raises:
        DataQualityError: If ``by`` is unknown.

    """
    if by == "weekday":
        return aggregate_by_weekday(sales, tz)
    if by == "month":
        return aggregate_by_month(sales, month_limit)
    if by in ("type", "maker"):
        return BUCKETERS[by](sales, top_n)
    if by in BUCKETERS:
        return BUCKETERS[by](sales)
    raise DataQualityError(f"Unknown bucket key '{by}'. Must be one of {sorted(BUCKETERS)}.")
