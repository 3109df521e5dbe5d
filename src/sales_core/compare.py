"""Period-over-period comparison.

Compares a selected ``[start, end]`` period with the immediately preceding
period of equal length, reporting growth percentages and a decomposition of
the revenue change into a client-count effect, a ticket-size effect, and
their interaction.

Growth for a metric is None ("not applicable") whenever the previous value
is zero, so no reported number is ever NaN or infinite.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Optional

from sales_core.dates import preceding_range_of_equal_length
from sales_core.exceptions import ParseError
from sales_core.filters import filter_by_period
from sales_core.models import EnrichedSale, Period
from sales_core.totals import SalesTotals, calculate_totals

logger = logging.getLogger(__name__)

DRIVER_CLIENTS = "clients"
DRIVER_TICKET = "ticket"


@dataclass(frozen=True)
class PeriodMetrics:
    """KPIs for one side of a comparison.

    Attributes:
        totals: Revenue, refund, net, order count, average ticket, refund rate.
        unique_clients: Distinct non-null client ids among positive sales.
            Clients that only appear through a refund are not counted.
        avg_ticket_per_client: revenue / unique_clients, or 0 without clients.
    """

    totals: SalesTotals
    unique_clients: int
    avg_ticket_per_client: float

    @property
    def revenue(self) -> float:
        return self.totals.revenue


@dataclass(frozen=True)
class RevenueDecomposition:
    """Attribution of the revenue change between two periods.

    With C = unique clients and T = revenue per client (so C * T = revenue):

    - client_contribution = dC * T_previous
    - ticket_contribution = dT * C_previous
    - interaction = dC * dT

    The three terms sum to the revenue change. Revenue that cannot be
    attributed to any client (a period with revenue but no client ids) is
    reported separately in ``unattributed``; it is 0 otherwise.
    """

    client_change: int
    ticket_change: float
    revenue_change: float
    client_contribution: float
    ticket_contribution: float
    interaction: float
    unattributed: float
    primary_driver: str


@dataclass(frozen=True)
class PeriodComparison:
    """Result of comparing a period with the one before it.

    Attributes:
        current_period: The selected period.
        previous_period: Preceding period of equal length.
        current: Metrics for the selected period.
        previous: Metrics for the preceding period.
        growth: Percentage change per metric (revenue, refund, net, orders,
            clients, avg_ticket). None where the previous value is zero.
        decomposition: Revenue change attribution.
    """

    current_period: Period
    previous_period: Period
    current: PeriodMetrics
    previous: PeriodMetrics
    growth: dict[str, Optional[float]] = field(default_factory=dict)
    decomposition: Optional[RevenueDecomposition] = None


def period_metrics(sales: Sequence[EnrichedSale]) -> PeriodMetrics:
    """Compute totals and client metrics for a period-filtered collection."""
    totals = calculate_totals(sales)
    unique_clients = len({s.client_id for s in sales if s.sale_price > 0 and s.client_id})
    per_client = totals.revenue / unique_clients if unique_clients > 0 else 0.0
    return PeriodMetrics(
        totals=totals,
        unique_clients=unique_clients,
        avg_ticket_per_client=per_client,
    )


def growth_pct(current: float, previous: float) -> Optional[float]:
    """Percentage change, or None when the previous value is zero.

    Examples:
        >>> round(growth_pct(2500.0, 1700.0), 1)
        47.1
        >>> growth_pct(10.0, 0.0) is None
        True

    """
    if previous == 0:
        return None
    return (current - previous) / previous * 100


def decompose_revenue_change(
    current: PeriodMetrics,
    previous: PeriodMetrics,
) -> RevenueDecomposition:
    """Split the revenue change into client-count and ticket-size effects."""
    client_change = current.unique_clients - previous.unique_clients
    ticket_change = current.avg_ticket_per_client - previous.avg_ticket_per_client
    revenue_change = current.revenue - previous.revenue

    client_contribution = client_change * previous.avg_ticket_per_client
    ticket_contribution = ticket_change * previous.unique_clients
    interaction = client_change * ticket_change
    unattributed = revenue_change - (client_contribution + ticket_contribution + interaction)
    # Float residue from the per-client division is not unattributed revenue
    if abs(unattributed) <= 1e-9 * max(1.0, abs(current.revenue), abs(previous.revenue)):
        unattributed = 0.0

    primary_driver = (
        DRIVER_CLIENTS
        if abs(client_contribution) > abs(ticket_contribution)
        else DRIVER_TICKET
    )
    return RevenueDecomposition(
        client_change=client_change,
        ticket_change=ticket_change,
        revenue_change=revenue_change,
        client_contribution=client_contribution,
        ticket_contribution=ticket_contribution,
        interaction=interaction,
        unattributed=unattributed,
        primary_driver=primary_driver,
    )


def compare_periods(
    sales: Sequence[EnrichedSale],
    period: Period | None,
) -> Optional[PeriodComparison]:
    """Compare the selected period with the preceding period of equal length.

    Args:
        sales: The full sale universe, not filtered by date.
        period: Selected period. Both bounds are required.

    Returns:
        PeriodComparison, or None when no comparison is available (a bound
        is missing or unparsable).

    Raises:
        DataQualityError: If the period ends before it starts.

    Examples:
        >>> compare_periods([], Period(start="2024-01-01")) is None
        True

    """
    if period is None or not period.is_bounded:
        logger.debug("Period comparison skipped: both bounds are required")
        return None

    try:
        prev_start, prev_end = preceding_range_of_equal_length(period.start, period.end)  # type: ignore[arg-type]
    except ParseError as e:
        logger.debug("Period comparison skipped: %s", e)
        return None
    previous_period = Period(start=prev_start, end=prev_end)

    current = period_metrics(filter_by_period(sales, period))
    previous = period_metrics(filter_by_period(sales, previous_period))

    growth = {
        "revenue": growth_pct(current.totals.revenue, previous.totals.revenue),
        "refund": growth_pct(current.totals.refund, previous.totals.refund),
        "net": growth_pct(current.totals.net, previous.totals.net),
        "orders": growth_pct(current.totals.count, previous.totals.count),
        "clients": growth_pct(current.unique_clients, previous.unique_clients),
        "avg_ticket": growth_pct(current.totals.avg_ticket, previous.totals.avg_ticket),
    }

    return PeriodComparison(
        current_period=period,
        previous_period=previous_period,
        current=current,
        previous=previous,
        growth=growth,
        decomposition=decompose_revenue_change(current, previous),
    )
