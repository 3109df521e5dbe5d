"""Shared fixtures for sales_core tests."""

from typing import Callable, Optional

import pytest

from sales_core.models import Client, EnrichedSale, Instrument, Sale

SaleFactory = Callable[..., EnrichedSale]


@pytest.fixture
def clients() -> list[Client]:
    """Three clients: full name, email only, and nothing but an id."""
    return [
        Client(id="c1", first_name="Ana", last_name="Lopez", email="ana@example.com"),
        Client(id="c2", email="bob@example.com"),
        Client(id="c3"),
    ]


@pytest.fixture
def instruments() -> list[Instrument]:
    """Instruments from two makers plus one with no descriptive fields."""
    return [
        Instrument(id="i1", maker="Stradivarius", type="Violin", serial_number="S-001"),
        Instrument(id="i2", maker="Guarneri", type="Cello", subtype="4/4"),
        Instrument(id="i3"),
    ]


@pytest.fixture
def make_sale(clients: list[Client], instruments: list[Instrument]) -> SaleFactory:
    """Build an EnrichedSale, resolving client/instrument ids from the fixtures."""
    client_map = {c.id: c for c in clients}
    instrument_map = {i.id: i for i in instruments}
    counter = {"n": 0}

    def _make(
        price: float,
        sale_date: str,
        client_id: Optional[str] = None,
        instrument_id: Optional[str] = None,
        notes: Optional[str] = None,
        sale_id: Optional[str] = None,
    ) -> EnrichedSale:
        counter["n"] += 1
        sale = Sale(
            id=sale_id or f"s{counter['n']}",
            sale_price=price,
            sale_date=sale_date,
            client_id=client_id,
            instrument_id=instrument_id,
            notes=notes,
        )
        return EnrichedSale(
            sale=sale,
            client=client_map.get(client_id) if client_id else None,
            instrument=instrument_map.get(instrument_id) if instrument_id else None,
        )

    return _make
