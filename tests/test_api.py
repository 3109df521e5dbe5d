"""Tests for the dashboard entry points."""

from typing import Sequence

import pytest

from sales_core import build_dashboard, load_dashboard
from sales_core.api import CHART_KEYS, DashboardResult, fetch_all_sales
from sales_core.dates import is_within_inclusive_range, to_utc_day
from sales_core.exceptions import ParseError
from sales_core.models import Client, EnrichedSale, Instrument, Period, Sale
from sales_core.sources import SalesPage, SalesQuery
from sales_core.totals import calculate_totals

JANUARY = Period("2024-01-01", "2024-01-31")


@pytest.fixture
def raw_sales() -> list[Sale]:
    return [
        Sale("j1", 1000.0, "2024-01-15", instrument_id="i1", client_id="c1"),
        Sale("j2", 1500.0, "2024-01-20", instrument_id="i2", client_id="c2"),
        Sale("j3", -200.0, "2024-01-21", instrument_id="i1", client_id="c1"),
        Sale("d1", 800.0, "2023-12-15", client_id="c1"),
        Sale("d2", 900.0, "2023-12-20", client_id="c2"),
        Sale("bad", 50.0, "2024-01-32"),
    ]


class FakeSalesSource:
    """Data-fetch collaborator filtering by period and paginating in memory."""

    def __init__(self, sales: list[Sale], with_totals: bool = True) -> None:
        self.sales = sales
        self.with_totals = with_totals
        self.queries: list[SalesQuery] = []

    def _in_period(self, sale: Sale, period) -> bool:
        if period is None:
            return True
        try:
            day = to_utc_day(sale.sale_date)
        except ParseError:
            return False
        return is_within_inclusive_range(day, period.start, period.end)

    def fetch_sales(self, query: SalesQuery) -> SalesPage:
        self.queries.append(query)
        matching = [s for s in self.sales if self._in_period(s, query.period)]
        offset = (query.page - 1) * query.page_size
        totals = calculate_totals(EnrichedSale(s) for s in matching) if self.with_totals else None
        return SalesPage(
            sales=matching[offset : offset + query.page_size],
            total_count=len(matching),
            totals=totals,
            page=query.page,
            page_size=query.page_size,
        )


class FakeReferenceSource:
    def __init__(self, clients: Sequence[Client], instruments: Sequence[Instrument]) -> None:
        self.clients = clients
        self.instruments = instruments

    def fetch_clients(self) -> Sequence[Client]:
        return self.clients

    def fetch_instruments(self) -> Sequence[Instrument]:
        return self.instruments


def test_build_dashboard(raw_sales, clients, instruments) -> None:
    result = build_dashboard(raw_sales, clients, instruments, period=JANUARY, today="2024-01-31")

    assert isinstance(result, DashboardResult)
    assert result.period_label == "January 2024"
    assert [s.id for s in result.sales] == ["j3", "j2", "j1"]
    assert result.totals.revenue == 2500.0
    assert result.totals.refund == 200.0
    assert result.refund_rate == pytest.approx(8.0)

    assert result.comparison is not None
    assert result.comparison.previous.revenue == 1700.0
    assert round(result.comparison.growth["revenue"], 1) == 47.1

    assert set(result.charts) == set(CHART_KEYS) | {"refunds_by_client", "refunds_by_instrument"}
    assert list(result.charts["day"]["key"]) == ["2024-01-15", "2024-01-20", "2024-01-21"]
    assert result.trend.status == "insufficient_data"
    assert [a.kind for a in result.alerts] == ["revenue_drop", "weekday_order_drop"]
    assert result.data_quality.has_insufficient_data


def test_build_dashboard_without_today_or_period(raw_sales, clients, instruments) -> None:
    result = build_dashboard(raw_sales, clients, instruments)

    assert result.alerts == []
    assert result.comparison is None
    assert result.period_label == "All time"
    # The unparsable row is excluded everywhere
    assert len(result.sales) == 5
    assert result.totals.revenue == 4200.0


def test_build_dashboard_applies_search_and_server_totals(raw_sales, clients, instruments) -> None:
    result = build_dashboard(
        raw_sales,
        clients,
        instruments,
        period=JANUARY,
        search="cello",
        server_totals={"revenue": 99999, "refund": 0, "count": 1},
    )

    assert [s.id for s in result.sales] == ["j2"]
    assert result.totals.revenue == 99999.0
    assert result.comparison.current.revenue == 1500.0


def test_fetch_all_sales_walks_every_page(raw_sales) -> None:
    source = FakeSalesSource(raw_sales)

    sales = fetch_all_sales(source, SalesQuery(page_size=2))

    assert [s.id for s in sales] == [s.id for s in raw_sales]
    assert [q.page for q in source.queries] == [1, 2, 3]


def test_load_dashboard(raw_sales, clients, instruments) -> None:
    source = FakeSalesSource(raw_sales)
    reference = FakeReferenceSource(clients, instruments)
    query = SalesQuery(period=JANUARY, page_size=2)

    result = load_dashboard(source, reference, query, today="2024-01-31")

    # Table page first, then the analysis range including December
    assert source.queries[0] == query
    assert source.queries[1].period == Period("2023-12-01", "2024-01-31")
    assert result.totals.revenue == 2500.0
    assert result.totals.count == 2
    assert result.comparison.previous.revenue == 1700.0
    assert [s.id for s in result.sales] == ["j3", "j2", "j1"]


def test_load_dashboard_falls_back_to_local_totals(raw_sales, clients, instruments) -> None:
    source = FakeSalesSource(raw_sales, with_totals=False)
    reference = FakeReferenceSource(clients, instruments)

    result = load_dashboard(source, reference, SalesQuery(period=JANUARY))

    assert result.totals.revenue == 2500.0
    assert result.alerts == []
