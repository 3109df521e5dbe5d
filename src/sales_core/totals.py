"""Period KPI totals.

Reduces an already period-filtered sale collection to summary KPIs in a
single pass. No rounding is applied here; rounding is a presentation
concern.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from typing import Any

from sales_core.exceptions import DataQualityError
from sales_core.models import EnrichedSale

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SalesTotals:
    """Summary KPIs for a set of sales.

    Attributes:
        revenue: Sum of positive sale prices.
        refund: Sum of absolute negative sale prices.
        net: revenue - refund.
        count: Number of positive sales (refund-only rows are not orders).
        avg_ticket: revenue / count, or 0 when there are no orders.
        refund_rate: refund / revenue * 100, or 0 when there is no revenue.
            Always relative to gross revenue, never to total absolute flow.
    """

    revenue: float = 0.0
    refund: float = 0.0
    net: float = 0.0
    count: int = 0
    avg_ticket: float = 0.0
    refund_rate: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SalesTotals:
        """Build totals from a collaborator payload.

        ``net``, ``avg_ticket`` and ``refund_rate`` are derived when absent.

        Raises:
            DataQualityError: If revenue, refund or count is missing or not a
                finite number.

        """
        try:
            revenue = float(data["revenue"])
            refund = float(data["refund"])
            count = int(data["count"])
        except (KeyError, TypeError, ValueError) as e:
            raise DataQualityError(f"Invalid totals payload {dict(data)!r}: {e}") from e
        if not (math.isfinite(revenue) and math.isfinite(refund)):
            raise DataQualityError(f"Totals must be finite, got {dict(data)!r}")

        derived = _derive(revenue, refund, count)
        return cls(
            revenue=revenue,
            refund=refund,
            net=float(data.get("net", derived.net)),
            count=count,
            avg_ticket=float(data.get("avg_ticket", derived.avg_ticket)),
            refund_rate=float(data.get("refund_rate", derived.refund_rate)),
        )

    def to_dict(self) -> dict[str, float | int]:
        return asdict(self)


def _derive(revenue: float, refund: float, count: int) -> SalesTotals:
    return SalesTotals(
        revenue=revenue,
        refund=refund,
        net=revenue - refund,
        count=count,
        avg_ticket=revenue / count if count > 0 else 0.0,
        refund_rate=refund / revenue * 100 if revenue > 0 else 0.0,
    )


def calculate_totals(sales: Iterable[EnrichedSale]) -> SalesTotals:
    """Compute KPI totals for a period-filtered collection.

    Args:
        sales: Enriched sales already filtered to the period of interest.

    Returns:
        SalesTotals.

    Examples:
        >>> from sales_core.models import Sale
        >>> rows = [EnrichedSale(Sale("a", 100.0, "2024-01-01")),
        ...         EnrichedSale(Sale("b", -25.0, "2024-01-02"))]
        >>> calculate_totals(rows).refund_rate
        25.0

    """
    revenue = 0.0
    refund = 0.0
    count = 0
    for sale in sales:
        price = sale.sale_price
        if price > 0:
            revenue += price
            count += 1
        elif price < 0:
            refund += -price
    return _derive(revenue, refund, count)


def resolve_totals(
    server_totals: SalesTotals | Mapping[str, Any] | None,
    page_sales: Iterable[EnrichedSale],
) -> SalesTotals:
    """Prefer totals computed by the data API over the current page.

    The data API computes totals over the full filtered set. When it does
    not supply them, totals are computed locally from the rows at hand,
    which may be a single page.

    Args:
        server_totals: Totals from the data-fetch collaborator, or None.
        page_sales: The enriched rows currently loaded.

    Returns:
        SalesTotals.

    """
    if server_totals is None:
        logger.debug("No server totals supplied; computing totals from the current page")
        return calculate_totals(page_sales)
    if isinstance(server_totals, SalesTotals):
        return server_totals
    return SalesTotals.from_dict(server_totals)
