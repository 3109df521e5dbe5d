"""Data-quality heuristics for a sale collection.

Flags collections that are too small, contain extreme outliers, or have
sales spread over too few distinct days for charts and trends to be
meaningful. A paginated sample (``total_count`` larger than the sample) is
judged more leniently than a complete dataset.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

import numpy as np

from sales_core.dates import day_to_date, to_utc_day
from sales_core.exceptions import ParseError
from sales_core.models import EnrichedSale

logger = logging.getLogger(__name__)

MIN_SALES = 20

# Outlier rule: |price - mean| > mean * factor
FULL_DATASET_OUTLIER_FACTOR = 10
FULL_DATASET_OUTLIER_MIN_SALES = 10
SAMPLE_OUTLIER_FACTOR = 20
SAMPLE_OUTLIER_MIN_SALES = 20

# Sparse rule: distinct days / day span below ratio, only for small datasets
FULL_DATASET_SPARSE_RATIO = 0.03
FULL_DATASET_SPARSE_MAX_COUNT = 50
SAMPLE_SPARSE_RATIO = 0.05
SAMPLE_SPARSE_MAX_COUNT = 100


@dataclass
class DataQuality:
    """Result of the data-quality heuristics.

    Attributes:
        has_insufficient_data: Fewer than 20 sales in the (full) dataset.
        has_outliers: At least one positive sale far from the mean price.
        has_sparse_dates: Sales cover too few distinct days.
        is_low_quality: Any of the above.
    """

    has_insufficient_data: bool
    has_outliers: bool
    has_sparse_dates: bool

    @property
    def is_low_quality(self) -> bool:
        return self.has_insufficient_data or self.has_outliers or self.has_sparse_dates


def _has_outliers(prices: np.ndarray, factor: int) -> bool:
    mean = float(prices.mean())
    if mean <= 0:
        return False
    return bool(np.any(np.abs(prices - mean) > mean * factor))


def _has_sparse_dates(
    positive: Sequence[EnrichedSale],
    effective_count: int,
    ratio: float,
    max_count: int,
) -> bool:
    days = set()
    for sale in positive:
        try:
            days.add(to_utc_day(sale.sale_date))
        except ParseError as e:
            logger.debug("Excluding sale %s from date coverage: %s", sale.id, e)

    if len(days) < 2:
        return True
    ordered = sorted(days)
    span = (day_to_date(ordered[-1]) - day_to_date(ordered[0])).days
    return effective_count < max_count and span > 0 and len(days) / span < ratio


def check_data_quality(
    sales: Sequence[EnrichedSale],
    total_count: Optional[int] = None,
) -> DataQuality:
    """Run the data-quality heuristics.

    Args:
        sales: Sales in scope (possibly one page of a larger result).
        total_count: Size of the full filtered result when ``sales`` is a
            page of it. None means ``sales`` is the full dataset.

    Returns:
        DataQuality flags.

    Examples:
        >>> check_data_quality([]).has_insufficient_data
        True

    """
    positive = [s for s in sales if s.sale_price > 0]
    effective_count = total_count if total_count is not None else len(positive)
    is_full_dataset = total_count is None or len(sales) == total_count

    has_insufficient_data = effective_count < MIN_SALES
    has_outliers = False
    has_sparse_dates = False

    if positive:
        prices = np.array([s.sale_price for s in positive], dtype=float)
        if is_full_dataset:
            if len(positive) >= FULL_DATASET_OUTLIER_MIN_SALES:
                has_outliers = _has_outliers(prices, FULL_DATASET_OUTLIER_FACTOR)
            has_sparse_dates = _has_sparse_dates(
                positive, effective_count, FULL_DATASET_SPARSE_RATIO, FULL_DATASET_SPARSE_MAX_COUNT
            )
        else:
            if effective_count >= SAMPLE_OUTLIER_MIN_SALES:
                has_outliers = _has_outliers(prices, SAMPLE_OUTLIER_FACTOR)
            has_sparse_dates = _has_sparse_dates(
                positive, effective_count, SAMPLE_SPARSE_RATIO, SAMPLE_SPARSE_MAX_COUNT
            )

    result = DataQuality(
        has_insufficient_data=has_insufficient_data,
        has_outliers=has_outliers,
        has_sparse_dates=has_sparse_dates,
    )
    if result.is_low_quality:
        logger.debug(f"Low data quality for {len(sales)} sale(s): {result}")
    return result
