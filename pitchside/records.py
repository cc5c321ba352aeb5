"""
Pitchside — In-Memory Sale Values

Immutable values produced by the ingestion adapter and consumed by every
engine function. A SaleRecord lives for exactly one fetch cycle; the next
fetch builds a new Snapshot that supersedes the old one wholesale.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class CategoryInfo(BaseModel):
    """Category row. Grouping only."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    parent_id: str | None = None


class EventInfo(BaseModel):
    """Event joined onto a sale, or listed on its own for the events grid."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    event_date: datetime | None = None
    venue: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    round: str | None = Field(default=None, description="Tournament round label")


class SaleRecord(BaseModel):
    """
    One resale transaction.

    quantity >= 1 and ticket_price >= 0 are guaranteed by ingestion; rows
    that violate them never become a SaleRecord.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    sold_at: datetime
    ticket_price: Decimal
    quantity: int
    platform: str
    section: str | None = None
    event_id: str | None = None
    notes: str | None = None
    event: EventInfo | None = None

    @property
    def revenue(self) -> Decimal:
        return self.ticket_price * self.quantity

    @property
    def event_name(self) -> str | None:
        return self.event.name if self.event is not None else None


class Snapshot(BaseModel):
    """Everything one view renders from, produced by a single fetch."""

    model_config = ConfigDict(frozen=True)

    sequence: int
    fetched_at: datetime
    sales: tuple[SaleRecord, ...] = ()
    events: tuple[EventInfo, ...] = ()
    skipped_rows: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.sales
