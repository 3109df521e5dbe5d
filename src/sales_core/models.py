"""Record types consumed and produced by the analytics engine.

Sale, Client and Instrument mirror the rows returned by the data API.
EnrichedSale is the ephemeral view-model built by ``sales_core.enrich``.
None of these objects are mutated after creation; derived values are
computed on access.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from sales_core.exceptions import DataQualityError

STATUS_PAID = "Paid"
STATUS_REFUNDED = "Refunded"


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _require_id(row: Mapping[str, Any], kind: str) -> str:
    value = row.get("id")
    if value is None or str(value) == "":
        raise DataQualityError(f"{kind} row is missing an id: {dict(row)!r}")
    return str(value)


@dataclass(frozen=True)
class Sale:
    """One sales-history row.

    A refund is the same record with its price sign flipped, so status is
    derived from the sign of ``sale_price`` rather than stored.

    Attributes:
        id: Opaque identifier.
        sale_price: Signed amount; positive is a sale, negative a refund. Never zero.
        sale_date: Calendar date string (``YYYY-MM-DD``). Validated lazily by
            consumers so one malformed row cannot fail a report.
        instrument_id: Foreign key to an Instrument, or None.
        client_id: Foreign key to a Client, or None.
        notes: Free text, or None.
        created_at: Audit timestamp, or None.
    """

    id: str
    sale_price: float
    sale_date: str
    instrument_id: Optional[str] = None
    client_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.sale_price, bool) or not isinstance(self.sale_price, (int, float)):
            raise DataQualityError(
                f"Sale {self.id}: sale_price must be a number, got {self.sale_price!r}"
            )
        if not math.isfinite(self.sale_price):
            raise DataQualityError(f"Sale {self.id}: sale_price must be finite")
        if self.sale_price == 0:
            raise DataQualityError(f"Sale {self.id}: sale_price must not be zero")

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> Sale:
        """Build a Sale from an API row.

        Args:
            row: Mapping with at least ``id``, ``sale_price`` and ``sale_date``.

        Returns:
            Sale instance.

        Raises:
            DataQualityError: If the id is missing or the price is zero or not numeric.

        """
        sale_id = _require_id(row, "Sale")
        raw_price = row.get("sale_price")
        try:
            price = float(raw_price)  # type: ignore[arg-type]
        except (TypeError, ValueError) as e:
            raise DataQualityError(
                f"Sale {sale_id}: sale_price must be numeric, got {raw_price!r}"
            ) from e
        return cls(
            id=sale_id,
            sale_price=price,
            sale_date=str(row.get("sale_date") or ""),
            instrument_id=_optional_str(row.get("instrument_id")),
            client_id=_optional_str(row.get("client_id")),
            notes=_optional_str(row.get("notes")),
            created_at=_optional_str(row.get("created_at")),
        )

    @property
    def is_refund(self) -> bool:
        return self.sale_price < 0

    @property
    def status(self) -> str:
        return STATUS_REFUNDED if self.sale_price < 0 else STATUS_PAID

    @property
    def amount(self) -> float:
        """Absolute amount, as shown in tables and exports."""
        return abs(self.sale_price)


@dataclass(frozen=True)
class Client:
    """Reference data: a customer."""

    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> Client:
        return cls(
            id=_require_id(row, "Client"),
            first_name=_optional_str(row.get("first_name")),
            last_name=_optional_str(row.get("last_name")),
            email=_optional_str(row.get("email")),
        )

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


@dataclass(frozen=True)
class Instrument:
    """Reference data: an instrument in stock or sold."""

    id: str
    maker: Optional[str] = None
    type: Optional[str] = None
    subtype: Optional[str] = None
    serial_number: Optional[str] = None

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> Instrument:
        return cls(
            id=_require_id(row, "Instrument"),
            maker=_optional_str(row.get("maker")),
            type=_optional_str(row.get("type")),
            subtype=_optional_str(row.get("subtype")),
            serial_number=_optional_str(row.get("serial_number")),
        )

    @property
    def label(self) -> Optional[str]:
        """``"maker type subtype"`` with blanks removed, or None if all are empty."""
        parts = [p for p in (self.maker, self.type, self.subtype) if p]
        return " ".join(parts) or None


@dataclass(frozen=True)
class EnrichedSale:
    """A Sale with its Client and Instrument resolved, when they exist.

    Attributes:
        sale: The underlying sale row.
        client: Resolved client, or None if the key is null or unknown.
        instrument: Resolved instrument, or None if the key is null or unknown.
    """

    sale: Sale
    client: Optional[Client] = None
    instrument: Optional[Instrument] = None

    @property
    def id(self) -> str:
        return self.sale.id

    @property
    def sale_price(self) -> float:
        return self.sale.sale_price

    @property
    def sale_date(self) -> str:
        return self.sale.sale_date

    @property
    def client_id(self) -> Optional[str]:
        return self.sale.client_id

    @property
    def instrument_id(self) -> Optional[str]:
        return self.sale.instrument_id

    @property
    def notes(self) -> Optional[str]:
        return self.sale.notes

    @property
    def is_refund(self) -> bool:
        return self.sale.is_refund

    @property
    def status(self) -> str:
        return self.sale.status

    @property
    def amount(self) -> float:
        return self.sale.amount


@dataclass(frozen=True)
class Period:
    """Inclusive ``[start, end]`` calendar-day range.

    A None bound means unbounded on that side.
    """

    start: Optional[str] = None
    end: Optional[str] = None

    @property
    def is_bounded(self) -> bool:
        return bool(self.start) and bool(self.end)
