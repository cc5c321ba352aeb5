"""
Pitchside — Ingestion Adapter

Turns joined store rows into immutable SaleRecord / EventInfo values.

Rules:
- category keyword matches nothing -> empty result, not an error
- category matches but owns no events -> empty result
- missing event / category joins leave the optional fields unset
- rows with a missing or non-numeric price or quantity, quantity < 1,
  negative price or an unparseable timestamp are skipped and counted
- naive timestamps are read as UTC
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, NamedTuple

import structlog

from pitchside.pipeline.store import SaleFilter, SaleStore
from pitchside.records import EventInfo, SaleRecord

logger = structlog.get_logger(__name__)

_ZERO = Decimal("0")


class IngestResult(NamedTuple):
    sales: tuple[SaleRecord, ...]
    events: tuple[EventInfo, ...]
    skipped: int


EMPTY_RESULT = IngestResult(sales=(), events=(), skipped=0)


def parse_timestamp(value: Any) -> datetime | None:
    """Accept datetime objects or ISO-8601 strings; return an aware datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_price(value: Any) -> Decimal | None:
    """Exact Decimal from whatever numeric form the store sent. None if unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price < _ZERO:
        return None
    return price


def parse_quantity(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        as_decimal = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not as_decimal.is_finite() or as_decimal != as_decimal.to_integral_value():
        return None
    quantity = int(as_decimal)
    return quantity if quantity >= 1 else None


def normalize_event_row(row: dict[str, Any] | None) -> EventInfo | None:
    if not row or not row.get("id") or not row.get("name"):
        return None
    category = row.get("categories") or {}
    return EventInfo(
        id=str(row["id"]),
        name=str(row["name"]),
        event_date=parse_timestamp(row.get("event_date")),
        venue=row.get("venue"),
        category_id=row.get("category_id"),
        category_name=category.get("name") if isinstance(category, dict) else None,
        round=row.get("round"),
    )


def normalize_sale_row(row: dict[str, Any]) -> SaleRecord | None:
    """
    Build a SaleRecord from one joined row, or None when the row is malformed.

    Rejection reasons are logged at warning level with the row id.
    """
    row_id = row.get("id")
    price = parse_price(row.get("ticket_price"))
    quantity = parse_quantity(row.get("quantity"))
    sold_at = parse_timestamp(row.get("sold_at"))
    platform = row.get("platform")

    problems = []
    if row_id is None:
        problems.append("id")
    if price is None:
        problems.append("ticket_price")
    if quantity is None:
        problems.append("quantity")
    if sold_at is None:
        problems.append("sold_at")
    if not platform:
        problems.append("platform")

    if problems:
        logger.warning("sale_row_skipped", sale_id=row_id, invalid_fields=problems)
        return None

    return SaleRecord(
        id=str(row_id),
        sold_at=sold_at,
        ticket_price=price,
        quantity=quantity,
        platform=str(platform),
        section=row.get("section"),
        event_id=row.get("event_id"),
        notes=row.get("notes"),
        event=normalize_event_row(row.get("events")),
    )


def normalize_rows(rows: list[dict[str, Any]]) -> tuple[tuple[SaleRecord, ...], int]:
    sales = []
    skipped = 0
    for row in rows:
        record = normalize_sale_row(row)
        if record is None:
            skipped += 1
        else:
            sales.append(record)
    return tuple(sales), skipped


async def fetch_sales(store: SaleStore, sale_filter: SaleFilter) -> IngestResult:
    """
    Resolve the filter against the store and return normalized values.

    A category keyword is resolved to category ids, then to event ids, which
    are intersected with any explicit event ids before the sales query runs.
    Raises StoreError when the store fails.
    """
    event_ids = sale_filter.event_ids

    if sale_filter.category_keyword:
        category_ids = await store.fetch_category_ids(sale_filter.category_keyword)
        if not category_ids:
            logger.info("ingest_no_categories", keyword=sale_filter.category_keyword)
            return EMPTY_RESULT
        event_rows = await store.fetch_events(category_ids)
        category_event_ids = [str(row["id"]) for row in event_rows if row.get("id")]
        if event_ids is not None:
            wanted = set(event_ids)
            category_event_ids = [eid for eid in category_event_ids if eid in wanted]
        if not category_event_ids:
            logger.info("ingest_no_events", keyword=sale_filter.category_keyword)
            return EMPTY_RESULT
        event_ids = category_event_ids
        kept = set(event_ids)
        event_rows = [row for row in event_rows if str(row.get("id")) in kept]
    else:
        event_rows = await store.fetch_events(None)
        if event_ids is not None:
            wanted = set(event_ids)
            event_rows = [row for row in event_rows if str(row.get("id")) in wanted]

    rows = await store.fetch_sales(sale_filter.model_copy(update={"event_ids": event_ids}))
    sales, skipped = normalize_rows(rows)
    events = tuple(
        event for event in (normalize_event_row(row) for row in event_rows) if event is not None
    )

    logger.info(
        "ingest_complete",
        sales=len(sales),
        events=len(events),
        skipped=skipped,
        keyword=sale_filter.category_keyword,
    )
    return IngestResult(sales=sales, events=events, skipped=skipped)
