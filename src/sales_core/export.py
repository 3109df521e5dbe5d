"""CSV export and receipt text for enriched sales.

Produces strings only; turning them into a downloaded file or an e-mail is
the caller's job.
"""

from __future__ import annotations

import csv
import logging
import re
from collections.abc import Callable, Sequence
from datetime import date
from urllib.parse import quote

import pandas as pd

from sales_core.dates import day_to_date, to_utc_day
from sales_core.exceptions import ParseError
from sales_core.models import EnrichedSale

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "Date",
    "Sale ID",
    "Client Name",
    "Client Email",
    "Instrument",
    "Amount",
    "Status",
    "Notes",
]

NOT_AVAILABLE = "N/A"
BUSINESS_NAME = "HC Violins and Bows"

# A quoted field (which may hold line breaks) or a record separator
_QUOTED_FIELD_OR_BREAK = re.compile(r'"(?:[^"]|"")*"|\r\n')

DateFormatter = Callable[[date], str]
CurrencyFormatter = Callable[[float], str]


def format_currency(value: float) -> str:
    """Format an amount like ``$1,234.56``."""
    return f"${value:,.2f}"


def format_iso_date(d: date) -> str:
    return d.isoformat()


def _format_sale_date(sale: EnrichedSale, date_format: DateFormatter) -> str:
    try:
        return date_format(day_to_date(to_utc_day(sale.sale_date)))
    except ParseError as e:
        # Keep the row; export never drops or reorders records
        logger.debug("Sale %s has an invalid date, exporting it raw: %s", sale.id, e)
        return sale.sale_date


def sale_to_row(
    sale: EnrichedSale,
    date_format: DateFormatter = format_iso_date,
    currency_format: CurrencyFormatter = format_currency,
) -> dict[str, str]:
    """Serialize one enriched sale to the export columns."""
    client = sale.client
    instrument = sale.instrument
    return {
        "Date": _format_sale_date(sale, date_format),
        "Sale ID": str(sale.id),
        "Client Name": (client.full_name or NOT_AVAILABLE) if client else NOT_AVAILABLE,
        "Client Email": (client.email or NOT_AVAILABLE) if client else NOT_AVAILABLE,
        "Instrument": (instrument.label or NOT_AVAILABLE) if instrument else NOT_AVAILABLE,
        "Amount": currency_format(sale.amount),
        "Status": sale.status,
        "Notes": sale.notes or "",
    }


def generate_csv(
    sales: Sequence[EnrichedSale],
    date_format: DateFormatter = format_iso_date,
    currency_format: CurrencyFormatter = format_currency,
) -> str:
    """Serialize enriched sales to CSV text.

    Fields containing a comma, double quote, carriage return or newline are
    wrapped in double quotes with inner quotes doubled. Rows keep the input
    order exactly. Records are separated by ``\\n`` without a trailing newline.

    Args:
        sales: Enriched sales, already sorted by the caller.
        date_format: Formatter for the UTC sale date.
        currency_format: Formatter for the absolute amount.

    Returns:
        CSV text with a header row, or ``""`` when there are no sales.

    Examples:
        >>> generate_csv([])
        ''

    """
    if not sales:
        return ""

    rows = [sale_to_row(sale, date_format, currency_format) for sale in sales]
    df = pd.DataFrame(rows, columns=CSV_HEADERS, dtype=str)
    # A "\r\n" terminator makes the writer quote fields holding a bare "\r"
    text = df.to_csv(index=False, lineterminator="\r\n", quoting=csv.QUOTE_MINIMAL)
    text = _QUOTED_FIELD_OR_BREAK.sub(
        lambda m: "\n" if m.group() == "\r\n" else m.group(), text
    )
    return text[:-1] if text.endswith("\n") else text


def _encode_component(text: str) -> str:
    # Same unreserved set as JavaScript's encodeURIComponent
    return quote(text, safe="!*'()")


def generate_receipt_email(
    sale: EnrichedSale,
    date_format: DateFormatter = format_iso_date,
    currency_format: CurrencyFormatter = format_currency,
    business_name: str = BUSINESS_NAME,
) -> dict[str, str]:
    """Build a URL-encoded receipt e-mail subject and body for a sale.

    Empty lines are dropped, so the body is one line per item.

    Args:
        sale: The sale to describe.
        date_format: Formatter for the sale date.
        currency_format: Formatter for the absolute amount.
        business_name: Signature line closing the body.

    Returns:
        Dictionary with ``subject`` and ``body``, both URL-encoded.

    """
    client = sale.client
    if client is not None:
        client_name = client.full_name or client.email or "Customer"
    else:
        client_name = "Customer"

    instrument = sale.instrument
    if instrument is not None:
        instrument_info = " ".join(p for p in (instrument.maker, instrument.type) if p)
    else:
        instrument_info = sale.instrument_id or ""

    lines = [
        f"Dear {client_name},",
        "Thank you for your purchase!",
        "--- Sale Details ---",
        f"Date: {_format_sale_date(sale, date_format)}",
        f"Amount: {currency_format(sale.amount)}",
        f"Instrument: {instrument_info}" if instrument_info else "",
        f"Notes: {sale.notes}" if sale.notes else "",
        "We appreciate your business!",
        "Best regards,",
        business_name,
    ]

    return {
        "subject": _encode_component(f"Receipt for Sale #{str(sale.id)[:8]}"),
        "body": _encode_component("\n".join(line for line in lines if line)),
    }
