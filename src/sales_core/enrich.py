"""Record enrichment and sorting.

Joins raw sale rows to client and instrument reference data by foreign key
and provides the stable sort orders used by the sales table.
"""

from __future__ import annotations

import logging
import unicodedata
from collections.abc import Callable, Iterable, Sequence
from typing import Optional

from sales_core.dates import to_utc_day
from sales_core.exceptions import DataQualityError, ParseError
from sales_core.models import Client, EnrichedSale, Instrument, Sale

logger = logging.getLogger(__name__)

SORT_COLUMNS = ("sale_date", "sale_price", "client_name")
SORT_DIRECTIONS = ("asc", "desc")

# Ordered fallback chain for a client's display name. The first resolver
# returning a non-empty string wins.
ClientNameResolver = Callable[[Client], Optional[str]]
CLIENT_NAME_RESOLVERS: tuple[ClientNameResolver, ...] = (
    lambda c: c.full_name,
    lambda c: c.email,
    lambda c: c.id,
)


def create_maps(
    clients: Iterable[Client],
    instruments: Iterable[Instrument],
) -> tuple[dict[str, Client], dict[str, Instrument]]:
    """Build id -> object lookup maps for the reference collections.

    Args:
        clients: Client collection.
        instruments: Instrument collection.

    Returns:
        Tuple of (client_map, instrument_map).

    """
    client_map = {client.id: client for client in clients}
    instrument_map = {instrument.id: instrument for instrument in instruments}
    return client_map, instrument_map


def enrich_sales(
    sales: Iterable[Sale],
    clients: Iterable[Client],
    instruments: Iterable[Instrument],
) -> list[EnrichedSale]:
    """Attach the matching Client and Instrument to every sale.

    Unresolvable or null foreign keys are not an error; the field is simply
    left as None.

    Args:
        sales: Raw sale rows.
        clients: Full client collection.
        instruments: Full instrument collection.

    Returns:
        List of EnrichedSale in input order.

    Examples:
        >>> sale = Sale(id="s1", sale_price=100.0, sale_date="2024-01-15", client_id="c1")
        >>> [e.client.first_name for e in enrich_sales([sale], [Client("c1", "Ana")], [])]
        ['Ana']

    """
    client_map, instrument_map = create_maps(clients, instruments)
    enriched = [
        EnrichedSale(
            sale=sale,
            client=client_map.get(sale.client_id) if sale.client_id else None,
            instrument=instrument_map.get(sale.instrument_id) if sale.instrument_id else None,
        )
        for sale in sales
    ]
    unresolved = sum(1 for e in enriched if e.client_id and e.client is None)
    if unresolved:
        logger.debug("%d sale(s) reference a client that is not in the reference data", unresolved)
    return enriched


def client_display_name(client: Client) -> str:
    """Resolve a client's display name: full name, then email, then id."""
    for resolver in CLIENT_NAME_RESOLVERS:
        value = resolver(client)
        if value and value.strip():
            return value.strip()
    return client.id


def collation_key(text: str) -> str:
    """Accent- and case-insensitive key for human-facing string comparison.

    Examples:
        >>> collation_key("Émile") == collation_key("emile")
        True

    """
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def sort_by_client_name(
    sales: Sequence[EnrichedSale],
    direction: str = "asc",
) -> list[EnrichedSale]:
    """Sort by resolved client display name.

    Sales without a resolved client always come after those with one, in
    both directions. Ties keep their input order.

    Args:
        sales: Enriched sales.
        direction: "asc" or "desc".

    Returns:
        New sorted list.

    """
    _check_direction(direction)
    with_client = [s for s in sales if s.client is not None]
    without_client = [s for s in sales if s.client is None]
    # sorted() is stable for reverse=True as well
    ordered = sorted(
        with_client,
        key=lambda s: collation_key(client_display_name(s.client)),  # type: ignore[arg-type]
        reverse=direction == "desc",
    )
    return ordered + without_client


def sort_by_date(sales: Sequence[EnrichedSale], direction: str = "desc") -> list[EnrichedSale]:
    """Sort by UTC sale day. Unparsable dates go last in both directions."""
    _check_direction(direction)
    dated: list[tuple[str, EnrichedSale]] = []
    undated: list[EnrichedSale] = []
    for sale in sales:
        try:
            dated.append((to_utc_day(sale.sale_date), sale))
        except ParseError as e:
            logger.debug("Sale %s has an invalid date, sorting it last: %s", sale.id, e)
            undated.append(sale)
    dated.sort(key=lambda pair: pair[0], reverse=direction == "desc")
    return [sale for _, sale in dated] + undated


def sort_by_amount(sales: Sequence[EnrichedSale], direction: str = "desc") -> list[EnrichedSale]:
    """Sort by signed sale price."""
    _check_direction(direction)
    return sorted(sales, key=lambda s: s.sale_price, reverse=direction == "desc")


def sort_sales(
    sales: Sequence[EnrichedSale],
    column: str = "sale_date",
    direction: str = "desc",
) -> list[EnrichedSale]:
    """Sort enriched sales by one of the table columns.

    Args:
        sales: Enriched sales.
        column: One of "sale_date", "sale_price", "client_name".
        direction: "asc" or "desc".

    Returns:
        New sorted list; the input is left untouched.

    Raises:
        DataQualityError: If column or direction is unknown.

    """
    if column == "sale_date":
        return sort_by_date(sales, direction)
    if column == "sale_price":
        return sort_by_amount(sales, direction)
    if column == "client_name":
        return sort_by_client_name(sales, direction)
    raise DataQualityError(f"Unknown sort column '{column}'. Must be one of {SORT_COLUMNS}.")


def _check_direction(direction: str) -> None:
    if direction not in SORT_DIRECTIONS:
        raise DataQualityError(
            f"Invalid sort direction '{direction}'. Must be 'asc' or 'desc'."
        )
