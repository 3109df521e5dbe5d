"""Refund and undo-refund decisions.

A refund flips the sign of an existing sale rather than creating a new row.
The ``*_patch`` functions decide which values to send; ``apply_*`` hand the
patch to a mutation collaborator.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Union

from sales_core.exceptions import DataQualityError
from sales_core.models import EnrichedSale, Sale
from sales_core.sources import SaleMutator

logger = logging.getLogger(__name__)

NOTE_SEPARATOR = " | "

SaleLike = Union[Sale, EnrichedSale]


def _base_sale(sale: SaleLike) -> Sale:
    return sale.sale if isinstance(sale, EnrichedSale) else sale


def merge_notes(note: Optional[str], existing: Optional[str]) -> Optional[str]:
    """Prefix a new note to existing notes.

    Examples:
        >>> merge_notes("Refund issued", "Gift")
        'Refund issued | Gift'
        >>> merge_notes(None, "Gift")
        'Gift'

    """
    if not note:
        return existing
    return f"{note}{NOTE_SEPARATOR}{existing}" if existing else note


def refund_note(at: datetime) -> str:
    return f"Refund issued on {at.isoformat()}"


def undo_refund_note(at: datetime) -> str:
    return f"Refund undone on {at.isoformat()}"


def refund_patch(sale: SaleLike, note: Optional[str] = None) -> dict[str, Any]:
    """Values to send to refund a sale.

    Refunding an already refunded sale keeps its price negative.

    Args:
        sale: Sale to refund.
        note: Note to prefix to the existing notes.

    Returns:
        Patch with ``sale_price`` and ``notes``.

    Examples:
        >>> refund_patch(Sale(id="s1", sale_price=500.0, sale_date="2024-01-15"))
        {'sale_price': -500.0, 'notes': None}

    """
    base = _base_sale(sale)
    return {
        "sale_price": -abs(base.sale_price),
        "notes": merge_notes(note, base.notes),
    }


def undo_refund_patch(sale: SaleLike, note: Optional[str] = None) -> dict[str, Any]:
    """Values to send to restore a refunded sale to its original price.

    Args:
        sale: Refunded sale.
        note: Optional note to prefix to the existing notes.

    Returns:
        Patch with ``sale_price`` and, when a note is given, ``notes``.

    Raises:
        DataQualityError: If the sale is not a refund.

    """
    base = _base_sale(sale)
    if not base.is_refund:
        raise DataQualityError(f"Sale {base.id} is not refunded (sale_price={base.sale_price})")

    patch: dict[str, Any] = {"sale_price": abs(base.sale_price)}
    if note:
        patch["notes"] = merge_notes(note, base.notes)
    return patch


def apply_refund(mutator: SaleMutator, sale: SaleLike, note: Optional[str] = None) -> Sale:
    """Refund a sale through the mutation collaborator and return the stored row."""
    base = _base_sale(sale)
    patch = refund_patch(base, note)
    logger.info(f"Refunding sale {base.id}: {base.sale_price} -> {patch['sale_price']}")
    return mutator.patch_sale(base.id, patch)


def apply_undo_refund(mutator: SaleMutator, sale: SaleLike, note: Optional[str] = None) -> Sale:
    """Undo a refund through the mutation collaborator and return the stored row.

    Raises:
        DataQualityError: If the sale is not a refund.

    """
    base = _base_sale(sale)
    patch = undo_refund_patch(base, note)
    logger.info(f"Undoing refund of sale {base.id}: {base.sale_price} -> {patch['sale_price']}")
    return mutator.patch_sale(base.id, patch)
