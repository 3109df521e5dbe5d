"""Tests for chart buckets."""

from datetime import timezone

import pandas as pd
import pytest

from sales_core.aggregate import (
    BUCKET_COLUMNS,
    MISSING_TYPE_LABEL,
    UNKNOWN_CLIENT_KEY,
    aggregate,
    aggregate_by_day,
    aggregate_by_instrument_type,
    aggregate_by_maker,
    aggregate_by_month,
    aggregate_by_week,
    aggregate_by_weekday,
    overall_refund_rate,
    refunds_by_client,
    refunds_by_instrument,
)
from sales_core.exceptions import DataQualityError
from sales_core.totals import calculate_totals


@pytest.fixture
def sales(make_sale) -> list:
    """A small mixed collection over two months."""
    return [
        make_sale(1000.0, "2024-01-15", client_id="c1", instrument_id="i1"),
        make_sale(500.0, "2024-01-15", client_id="c2", instrument_id="i2"),
        make_sale(-200.0, "2024-01-16", client_id="c1", instrument_id="i1"),
        make_sale(300.0, "2024-02-05", instrument_id="i3"),
        make_sale(-100.0, "2024-02-06"),
        make_sale(800.0, "2024-02-06", client_id="c2"),
        make_sale(999.0, "bad-date"),
    ]


def test_day_buckets(sales) -> None:
    buckets = aggregate_by_day(sales)

    assert list(buckets.columns) == BUCKET_COLUMNS
    assert list(buckets["key"]) == ["2024-01-15", "2024-01-16", "2024-02-05", "2024-02-06"]
    first = buckets.iloc[0]
    assert first["revenue"] == 1500.0
    assert first["count"] == 2
    refund_day = buckets.iloc[1]
    assert refund_day["revenue"] == 0.0
    assert refund_day["refunds"] == 200.0
    assert refund_day["net"] == -200.0
    # No revenue means a zero rate, never NaN
    assert refund_day["refund_rate"] == 0.0


def test_buckets_conserve_revenue(sales) -> None:
    """Bucket revenue sums to the total revenue of valid-dated sales."""
    valid = sales[:-1]
    total = calculate_totals(valid)
    for bucketer in (aggregate_by_day, aggregate_by_week, aggregate_by_month):
        buckets = bucketer(sales)
        assert buckets["revenue"].sum() == pytest.approx(total.revenue)
        assert buckets["refunds"].sum() == pytest.approx(total.refund)
        assert int(buckets["count"].sum()) == total.count


def test_week_and_month_keys(sales) -> None:
    weeks = aggregate_by_week(sales)
    assert list(weeks["key"]) == ["2024-W03", "2024-W06"]
    months = aggregate_by_month(sales)
    assert list(months["key"]) == ["2024-01", "2024-02"]
    assert months.iloc[1]["refund_rate"] == pytest.approx(100.0 / 1100.0 * 100)


def test_month_limit_keeps_most_recent(make_sale) -> None:
    sales = [make_sale(100.0, f"2023-{m:02d}-10") for m in range(1, 13)]
    sales.append(make_sale(100.0, "2024-01-10"))
    months = aggregate_by_month(sales, limit=3)
    assert list(months["key"]) == ["2023-11", "2023-12", "2024-01"]


def test_weekday_buckets_cover_all_days(sales) -> None:
    buckets = aggregate_by_weekday(sales, tz=timezone.utc)

    assert list(buckets["key"]) == list(range(7))
    assert list(buckets["day"])[:2] == ["Monday", "Tuesday"]
    # 2024-01-15 and 2024-02-05 are Mondays
    monday = buckets.iloc[0]
    assert monday["revenue"] == 1800.0
    assert monday["count"] == 3
    assert buckets.iloc[6]["revenue"] == 0.0
    assert buckets.iloc[6]["count"] == 0


def test_weekday_buckets_empty() -> None:
    buckets = aggregate_by_weekday([], tz=timezone.utc)
    assert len(buckets) == 7
    assert buckets["revenue"].sum() == 0.0


def test_instrument_type_buckets(sales) -> None:
    buckets = aggregate_by_instrument_type(sales)
    by_key = buckets.set_index("key")

    assert list(buckets["key"]) == ["Violin", "Cello", MISSING_TYPE_LABEL]
    assert by_key.loc["Violin", "revenue"] == 1000.0
    assert by_key.loc["Violin", "refunds"] == 200.0
    assert by_key.loc[MISSING_TYPE_LABEL, "revenue"] == 300.0


def test_maker_buckets_top_n(sales) -> None:
    buckets = aggregate_by_maker(sales, top_n=1)
    assert list(buckets["key"]) == ["Stradivarius"]


def test_refunds_by_client_groups_unknown(sales) -> None:
    result = refunds_by_client(sales)

    assert list(result["key"]) == ["c1", UNKNOWN_CLIENT_KEY]
    assert list(result["refunds"]) == [200.0, 100.0]
    assert result.iloc[0]["client_name"] == "Ana Lopez"


def test_refunds_by_instrument(sales) -> None:
    result = refunds_by_instrument(sales)
    assert list(result["key"]) == ["i1"]
    assert result.iloc[0]["instrument_label"] == "Stradivarius Violin"


def test_overall_refund_rate(sales, make_sale) -> None:
    assert overall_refund_rate(sales[:-1]) == pytest.approx(300.0 / 2600.0 * 100)
    assert overall_refund_rate([make_sale(-50.0, "2024-01-01")]) == 0.0
    assert overall_refund_rate([]) == 0.0


def test_aggregate_dispatch(sales) -> None:
    pd.testing.assert_frame_equal(aggregate(sales, "day"), aggregate_by_day(sales))
    assert len(aggregate(sales, "maker", top_n=1)) == 1
    with pytest.raises(DataQualityError):
        aggregate(sales, "hour")


def test_empty_collection() -> None:
    buckets = aggregate_by_day([])
    assert buckets.empty
    assert list(buckets.columns) == BUCKET_COLUMNS
