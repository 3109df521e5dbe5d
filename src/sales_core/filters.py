"""Filters applied to enriched sale collections before reporting."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Optional

from sales_core.dates import is_within_inclusive_range, to_utc_day
from sales_core.exceptions import ParseError
from sales_core.models import EnrichedSale, Period

logger = logging.getLogger(__name__)


def filter_by_period(sales: Iterable[EnrichedSale], period: Period | None) -> list[EnrichedSale]:
    """Keep sales whose UTC sale day falls within the inclusive period.

    Sales with an unparsable date are excluded and logged, never raised.

    Args:
        sales: Enriched sales.
        period: Inclusive range; None or missing bounds are unbounded.

    Returns:
        Filtered list in input order.

    """
    start = period.start if period else None
    end = period.end if period else None
    result = []
    for sale in sales:
        try:
            day = to_utc_day(sale.sale_date)
        except ParseError as e:
            logger.debug("Excluding sale %s: %s", sale.id, e)
            continue
        if is_within_inclusive_range(day, start, end):
            result.append(sale)
    return result


def _search_fields(sale: EnrichedSale) -> list[str]:
    parts: list[str] = []
    if sale.client is not None:
        parts.append(sale.client.full_name)
        parts.append(sale.client.email or "")
    if sale.instrument is not None:
        inst = sale.instrument
        parts.append(
            " ".join(
                [inst.maker or "", inst.type or "", inst.subtype or "", inst.serial_number or ""]
            )
        )
    return [part.lower() for part in parts if part.strip()]


def filter_by_search(sales: Iterable[EnrichedSale], search: str | None) -> list[EnrichedSale]:
    """Case-insensitive substring search over client and instrument fields.

    Matches the client's "first last" name, the client email, and the
    instrument's "maker type subtype serial" string. A search may span the
    words of one of these strings. An empty search returns every sale.
    """
    sales = list(sales)
    if not search:
        return sales
    needle = search.lower()
    return [
        sale for sale in sales if any(needle in field for field in _search_fields(sale))
    ]


def filter_by_client_presence(
    sales: Iterable[EnrichedSale],
    has_client: Optional[bool],
) -> list[EnrichedSale]:
    """Keep sales with (True) or without (False) a client id. None keeps all."""
    sales = list(sales)
    if has_client is None:
        return sales
    return [sale for sale in sales if bool(sale.client_id) is has_client]
