"""Collaborator interfaces and the paginated page shape.

Fetching, persisting and mutating sales happen outside this package. These
Protocols describe what the entry points in ``sales_core.api`` and
``sales_core.refunds`` need from those collaborators, without requiring a
concrete base class.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from sales_core.models import Client, Instrument, Period, Sale
from sales_core.totals import SalesTotals

PAGE_SIZE = 10


@dataclass(frozen=True)
class SalesQuery:
    """Server-side filters and pagination for one page of sales.

    Attributes:
        period: Inclusive UTC-day range, or None for all time.
        search: Free-text search, or None.
        has_client: True/False to require/exclude an attached client, None for both.
        page: 1-based page number.
        page_size: Rows per page.
        sort_column: ``sale_date``, ``sale_price`` or ``client_name``.
        sort_direction: ``asc`` or ``desc``.
    """

    period: Optional[Period] = None
    search: Optional[str] = None
    has_client: Optional[bool] = None
    page: int = 1
    page_size: int = PAGE_SIZE
    sort_column: str = "sale_date"
    sort_direction: str = "desc"


@dataclass
class SalesPage:
    """One page of sales plus totals for the whole filtered set.

    Attributes:
        sales: Rows on this page.
        total_count: Number of rows in the full filtered set.
        totals: Totals for the full filtered set, or None when the
            collaborator did not compute them.
        page: 1-based page number.
        page_size: Rows per page.
    """

    sales: list[Sale] = field(default_factory=list)
    total_count: int = 0
    totals: Optional[SalesTotals] = None
    page: int = 1
    page_size: int = PAGE_SIZE

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)


class SalesSource(Protocol):
    """Data-fetch collaborator returning filtered, paginated sales."""

    def fetch_sales(self, query: SalesQuery) -> SalesPage: ...


class ReferenceSource(Protocol):
    """Reference-data collaborator supplying clients and instruments."""

    def fetch_clients(self) -> Sequence[Client]: ...

    def fetch_instruments(self) -> Sequence[Instrument]: ...


class SaleMutator(Protocol):
    """Mutation collaborator applying patches to stored sales.

    ``patch_sale`` returns the stored row after the update.
    """

    def create_sale(self, data: Mapping[str, Any]) -> Sale: ...

    def patch_sale(self, sale_id: str, patch: Mapping[str, Any]) -> Sale: ...
