"""Tests for manual sale entry and bulk CSV import."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from pitchside.pipeline.importer import NewSale, import_sales_csv, record_sale
from pitchside.pipeline.store import StoreError

UTC = timezone.utc
LONDON = ZoneInfo("Europe/London")
NOW = datetime(2025, 3, 1, 12, tzinfo=UTC)

HEADER = "Event Name,Category,Section,Quantity,Price,Platform,Date\n"


@pytest.fixture
def store(fake_store):
    fake_store.add_category("c-lfc", "Liverpool FC")
    fake_store.add_event("e-1", "Liverpool vs Arsenal", "c-lfc")
    fake_store.add_event("e-2", "Liverpool vs Chelsea", "c-lfc")
    return fake_store


# ---------------------------------------------------------------------------
# Manual entry
# ---------------------------------------------------------------------------


def test_new_sale_normalizes_input() -> None:
    sale = NewSale(
        event_id="e-1",
        section="  ",
        quantity=2,
        ticket_price=Decimal("120.50"),
        platform="lft",
        sold_at=datetime(2025, 3, 1, 10),
    )

    assert sale.platform == "LiveFootballTickets"
    assert sale.section is None
    assert sale.sold_at.tzinfo is UTC


@pytest.mark.parametrize(
    "overrides",
    [
        {"quantity": 0},
        {"ticket_price": Decimal("0")},
        {"ticket_price": Decimal("1.234")},
        {"platform": "StubHub"},
        {"event_id": ""},
    ],
)
def test_new_sale_rejects_invalid_input(overrides) -> None:
    fields = {
        "event_id": "e-1",
        "quantity": 1,
        "ticket_price": Decimal("50.00"),
        "platform": "Tixstock",
    }
    fields.update(overrides)
    with pytest.raises(ValidationError):
        NewSale(**fields)


@pytest.mark.asyncio
async def test_record_sale_inserts_one_row(store) -> None:
    sale = NewSale(event_id="e-1", quantity=2, ticket_price=Decimal("99.99"), platform="TIX")

    assert await record_sale(store, sale) == 1
    row = store.sales[-1]
    assert row["event_id"] == "e-1"
    assert row["platform"] == "Tixstock"
    assert row["ticket_price"] == Decimal("99.99")


# ---------------------------------------------------------------------------
# Bulk import
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_import_skips_unmatched_event_without_aborting(store) -> None:
    text = HEADER + (
        "Liverpool vs Arsenal,Liverpool FC,Kop,2,120,LFT,2025-02-20 19:00\n"
        "Liverpool vs Spurs,Liverpool FC,Kop,1,90,LFT,2025-02-21 19:00\n"
        "liverpool vs chelsea,Liverpool FC,Main,3,75.50,Tixstock,\n"
    )

    report = await import_sales_csv(store, text, tz=LONDON, now=NOW)

    assert report.total_rows == 3
    assert report.imported == report.total_rows - 1
    assert report.unmatched == 1
    assert report.malformed == 0
    assert [row["event_id"] for row in store.sales] == ["e-1", "e-2"]
    assert store.sales[0]["sold_at"] == datetime(2025, 2, 20, 19, tzinfo=LONDON)
    assert store.sales[1]["sold_at"] == NOW
    assert store.sales[1]["ticket_price"] == Decimal("75.50")


@pytest.mark.asyncio
async def test_import_counts_malformed_rows(store) -> None:
    text = HEADER + (
        "Liverpool vs Arsenal,Liverpool FC,Kop,2,120,LFT,2025-02-20\n"
        "Liverpool vs Arsenal,Liverpool FC,Kop,two,120,LFT,2025-02-20\n"
        "Liverpool vs Arsenal,Liverpool FC,Kop,1,120,Viagogo,2025-02-20\n"
    )

    report = await import_sales_csv(store, text, tz=LONDON, now=NOW)

    assert report.imported == 1
    assert report.malformed == 2
    assert report.skipped == 2


@pytest.mark.asyncio
async def test_import_store_failure_raises(store) -> None:
    store.fail = True
    with pytest.raises(StoreError):
        await import_sales_csv(store, HEADER + "A,B,C,1,10,LFT,\n", now=NOW)
