"""
Pitchside — Sale Write Path

Manual single-sale entry and bulk CSV import. Both go through the same
SaleStore.insert_sales call. Bulk import never aborts on a bad row:
unknown event names and malformed rows are skipped and counted.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, NamedTuple
from zoneinfo import ZoneInfo

import structlog
from pydantic import BaseModel, Field, field_validator

from pitchside.pipeline.store import SaleStore
from pitchside.utils.csv_io import parse_import_rows, resolve_platform

logger = structlog.get_logger(__name__)


class NewSale(BaseModel):
    """A manually entered sale. Rejected input raises pydantic ValidationError."""

    event_id: str = Field(min_length=1)
    section: str | None = None
    quantity: int = Field(ge=1)
    ticket_price: Decimal = Field(ge=Decimal("0.01"), max_digits=10, decimal_places=2)
    platform: str
    sold_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    notes: str | None = None

    @field_validator("platform")
    @classmethod
    def canonical_platform(cls, value: str) -> str:
        platform = resolve_platform(value)
        if platform is None:
            raise ValueError(f"Unknown platform: {value}")
        return platform

    @field_validator("sold_at")
    @classmethod
    def aware_timestamp(cls, value: datetime) -> datetime:
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)

    @field_validator("section", "notes")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    def to_row(self) -> dict[str, Any]:
        return self.model_dump()


class ImportReport(NamedTuple):
    total_rows: int
    imported: int
    unmatched: int
    malformed: int

    @property
    def skipped(self) -> int:
        return self.unmatched + self.malformed


async def record_sale(store: SaleStore, sale: NewSale) -> int:
    inserted = await store.insert_sales([sale.to_row()])
    logger.info(
        "sale_recorded",
        event_id=sale.event_id,
        quantity=sale.quantity,
        ticket_price=str(sale.ticket_price),
        platform=sale.platform,
    )
    return inserted


async def import_sales_csv(
    store: SaleStore,
    text: str,
    tz: ZoneInfo | None = None,
    now: datetime | None = None,
) -> ImportReport:
    """
    Bulk import from CSV text (header: Event Name, Category, Section,
    Quantity, Price, Platform, Date).

    Events are matched by exact name, case-insensitive. Rows with a blank
    date are stamped with `now`. All matched rows go to the store in one
    insert; a store failure raises StoreError.
    """
    rows, malformed = parse_import_rows(text, tz)
    stamp = now or datetime.now(timezone.utc)

    event_rows = await store.fetch_events(None)
    events_by_name: dict[str, str] = {}
    for event in event_rows:
        name = (event.get("name") or "").strip().lower()
        if name and name not in events_by_name:
            events_by_name[name] = str(event["id"])

    inserts: list[dict[str, Any]] = []
    unmatched = 0
    for row in rows:
        event_id = events_by_name.get(row.event_name.strip().lower())
        if event_id is None:
            unmatched += 1
            logger.warning("import_event_unmatched", line=row.line, event_name=row.event_name)
            continue
        inserts.append({
            "event_id": event_id,
            "section": row.section,
            "quantity": row.quantity,
            "ticket_price": row.price,
            "platform": row.platform,
            "sold_at": row.sold_at or stamp,
            "notes": None,
        })

    imported = await store.insert_sales(inserts)
    report = ImportReport(
        total_rows=len(rows) + len(malformed),
        imported=imported,
        unmatched=unmatched,
        malformed=len(malformed),
    )
    logger.info("csv_import_complete", **report._asdict())
    return report
