"""Tests for enrichment, display names and sorting."""

import pytest

from sales_core.enrich import (
    client_display_name,
    create_maps,
    enrich_sales,
    sort_by_client_name,
    sort_sales,
)
from sales_core.exceptions import DataQualityError
from sales_core.models import Client, EnrichedSale, Sale


def test_create_maps(clients, instruments) -> None:
    client_map, instrument_map = create_maps(clients, instruments)
    assert set(client_map) == {"c1", "c2", "c3"}
    assert instrument_map["i1"].maker == "Stradivarius"


def test_enrich_sales_resolves_and_tolerates_missing_keys(clients, instruments) -> None:
    """Unknown or null foreign keys leave the field as None."""
    sales = [
        Sale(id="s1", sale_price=100.0, sale_date="2024-01-01", client_id="c1", instrument_id="i2"),
        Sale(id="s2", sale_price=200.0, sale_date="2024-01-02", client_id="missing"),
        Sale(id="s3", sale_price=-50.0, sale_date="2024-01-03"),
    ]

    enriched = enrich_sales(sales, clients, instruments)

    assert [e.id for e in enriched] == ["s1", "s2", "s3"]
    assert enriched[0].client.first_name == "Ana"
    assert enriched[0].instrument.type == "Cello"
    assert enriched[1].client is None
    assert enriched[1].client_id == "missing"
    assert enriched[2].client is None
    assert enriched[2].instrument is None
    assert enriched[2].status == "Refunded"


def test_client_display_name_fallbacks(clients) -> None:
    """Full name, then email, then id."""
    assert client_display_name(clients[0]) == "Ana Lopez"
    assert client_display_name(clients[1]) == "bob@example.com"
    assert client_display_name(clients[2]) == "c3"


def test_sort_by_client_name_puts_client_less_sales_last(make_sale) -> None:
    """Sales without a client come last in both directions."""
    no_client = make_sale(10.0, "2024-01-01", sale_id="none")
    ana = make_sale(10.0, "2024-01-01", client_id="c1", sale_id="ana")
    bob = make_sale(10.0, "2024-01-01", client_id="c2", sale_id="bob")
    sales = [no_client, bob, ana]

    assert [s.id for s in sort_by_client_name(sales, "asc")] == ["ana", "bob", "none"]
    assert [s.id for s in sort_by_client_name(sales, "desc")] == ["bob", "ana", "none"]


def test_sort_by_client_name_is_accent_insensitive_and_stable() -> None:
    emile = EnrichedSale(Sale("e1", 1.0, "2024-01-01", client_id="x"), client=Client("x", "Émile"))
    emma = EnrichedSale(Sale("e2", 1.0, "2024-01-01", client_id="y"), client=Client("y", "emma"))
    dup = EnrichedSale(Sale("e3", 1.0, "2024-01-01", client_id="x"), client=Client("x", "Émile"))

    ordered = sort_by_client_name([emma, emile, dup], "asc")
    assert [s.id for s in ordered] == ["e1", "e3", "e2"]


def test_sort_sales_by_date_and_amount(make_sale) -> None:
    a = make_sale(300.0, "2024-01-02", sale_id="a")
    b = make_sale(-100.0, "2024-01-03", sale_id="b")
    c = make_sale(200.0, "not-a-date", sale_id="c")
    d = make_sale(50.0, "2024-01-01", sale_id="d")

    assert [s.id for s in sort_sales([a, b, c, d], "sale_date", "desc")] == ["b", "a", "d", "c"]
    assert [s.id for s in sort_sales([a, b, c, d], "sale_date", "asc")] == ["d", "a", "b", "c"]
    assert [s.id for s in sort_sales([a, b, c, d], "sale_price", "asc")] == ["b", "d", "c", "a"]


def test_sort_sales_rejects_unknown_options(make_sale) -> None:
    sales = [make_sale(1.0, "2024-01-01")]
    with pytest.raises(DataQualityError):
        sort_sales(sales, "client_email")
    with pytest.raises(DataQualityError):
        sort_sales(sales, "sale_date", "up")
