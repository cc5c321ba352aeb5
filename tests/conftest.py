"""
Pitchside — Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- In-memory aiosqlite session factory with every table created
- SaleRecord / EventInfo builders for engine tests
- A fixed "now" so window arithmetic is deterministic
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from itertools import count
from typing import Any, AsyncGenerator, Awaitable, Callable
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pitchside.models.base import Base
from pitchside.pipeline.store import ChangeMarker, SaleFilter, StoreError
from pitchside.records import EventInfo, SaleRecord


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

pytest_plugins = ("pytest_asyncio",)

UTC = timezone.utc
LONDON = ZoneInfo("Europe/London")


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for anyio tests."""
    return "asyncio"


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """
    Session factory over a fresh in-memory SQLite database.

    A single shared connection keeps the in-memory database alive across
    sessions for the duration of one test.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    yield factory

    await engine.dispose()


# ---------------------------------------------------------------------------
# Record Builders
# ---------------------------------------------------------------------------


@pytest.fixture
def now() -> datetime:
    """Fixed reference time: Wednesday 15 Jan 2025, 12:00 UTC."""
    return datetime(2025, 1, 15, 12, 0, tzinfo=UTC)


def make_event(
    event_id: str = "evt-1",
    name: str = "Liverpool vs Arsenal",
    event_date: datetime | None = None,
    category_name: str | None = "Liverpool FC",
    round: str | None = None,
) -> EventInfo:
    return EventInfo(
        id=event_id,
        name=name,
        event_date=event_date,
        category_id="cat-1" if category_name else None,
        category_name=category_name,
        round=round,
    )


_sale_ids = count(1)


def make_sale(
    price: str | Decimal = "100.00",
    quantity: int = 1,
    platform: str = "LiveFootballTickets",
    sold_at: datetime | None = None,
    event: EventInfo | None = None,
    section: str | None = None,
    attach: bool = True,
) -> SaleRecord:
    """
    SaleRecord builder. event defaults to make_event(); pass attach=False
    for a sale with no event.
    """
    if attach and event is None:
        event = make_event()
    if not attach:
        event = None
    return SaleRecord(
        id=f"sale-{next(_sale_ids)}",
        sold_at=sold_at or datetime(2025, 1, 15, 10, 0, tzinfo=UTC),
        ticket_price=Decimal(price),
        quantity=quantity,
        platform=platform,
        section=section,
        event_id=event.id if event is not None else None,
        event=event,
    )


@pytest.fixture
def sale_factory() -> Callable[..., SaleRecord]:
    return make_sale


@pytest.fixture
def event_factory() -> Callable[..., EventInfo]:
    return make_event


# ---------------------------------------------------------------------------
# In-memory SaleStore
# ---------------------------------------------------------------------------


class FakeStore:
    """
    SaleStore over plain lists of joined rows.

    Set `fail` to make every call raise StoreError. `before_fetch` is an
    optional coroutine function awaited at the start of fetch_sales so tests
    can hold a fetch in flight.
    """

    def __init__(self) -> None:
        self.categories: list[dict[str, Any]] = []
        self.events: list[dict[str, Any]] = []
        self.sales: list[dict[str, Any]] = []
        self.service_health: dict[str, dict[str, str]] = {}
        self.health_logs: list[dict[str, str]] = []
        self.fail = False
        self.fetch_calls = 0
        self.before_fetch: Callable[[int], Awaitable[None]] | None = None

    def _check(self) -> None:
        if self.fail:
            raise StoreError("store unavailable")

    def add_category(self, category_id: str, name: str) -> dict[str, Any]:
        row = {"id": category_id, "name": name}
        self.categories.append(row)
        return row

    def add_event(
        self,
        event_id: str,
        name: str,
        category_id: str | None = None,
        event_date: str | None = None,
        round: str | None = None,
    ) -> dict[str, Any]:
        category = next((c for c in self.categories if c["id"] == category_id), None)
        row = {
            "id": event_id,
            "name": name,
            "event_date": event_date,
            "venue": None,
            "round": round,
            "category_id": category_id,
            "categories": {"name": category["name"]} if category else None,
        }
        self.events.append(row)
        return row

    def add_sale(
        self,
        sale_id: str,
        event_id: str | None,
        price: Any = "100.00",
        quantity: Any = 1,
        platform: str = "LiveFootballTickets",
        sold_at: str = "2025-01-15T10:00:00+00:00",
    ) -> dict[str, Any]:
        row = {
            "id": sale_id,
            "sold_at": sold_at,
            "ticket_price": price,
            "quantity": quantity,
            "platform": platform,
            "section": None,
            "event_id": event_id,
            "notes": None,
        }
        self.sales.append(row)
        return row

    def _joined_sale(self, row: dict[str, Any]) -> dict[str, Any]:
        event = next((e for e in self.events if e["id"] == row.get("event_id")), None)
        return {**row, "events": event}

    async def ping(self) -> None:
        self._check()

    async def fetch_category_ids(self, keyword: str) -> list[str]:
        self._check()
        return [c["id"] for c in self.categories if keyword.lower() in c["name"].lower()]

    async def fetch_events(self, category_ids: list[str] | None = None) -> list[dict[str, Any]]:
        self._check()
        if category_ids is None:
            return list(self.events)
        return [e for e in self.events if e["category_id"] in category_ids]

    async def fetch_sales(self, sale_filter: SaleFilter) -> list[dict[str, Any]]:
        self.fetch_calls += 1
        call = self.fetch_calls
        if self.before_fetch is not None:
            await self.before_fetch(call)
        self._check()
        rows = [self._joined_sale(r) for r in self.sales]
        if sale_filter.event_ids is not None:
            rows = [r for r in rows if r["event_id"] in sale_filter.event_ids]
        rows.sort(key=lambda r: str(r["sold_at"]), reverse=not sale_filter.ascending)
        if sale_filter.limit is not None:
            rows = rows[:sale_filter.limit]
        return rows

    async def insert_sales(self, rows: list[dict[str, Any]]) -> int:
        self._check()
        for index, row in enumerate(rows):
            self.sales.append({"id": f"new-{len(self.sales) + index}", **row})
        return len(rows)

    async def count_rows(self, table: str, null_column: str | None = None) -> int:
        self._check()
        rows = getattr(self, table)
        if null_column is None:
            return len(rows)
        return sum(1 for r in rows if r.get(null_column) is None)

    async def change_marker(self, table: str) -> ChangeMarker:
        self._check()
        rows = getattr(self, table)
        return ChangeMarker(row_count=len(rows), latest=str(rows[-1]["id"]) if rows else None)

    async def upsert_service_health(self, service_name: str, status: str, detail: str) -> None:
        self._check()
        self.service_health[service_name] = {"status": status, "detail": detail}

    async def append_health_log(self, service_name: str, level: str, message: str) -> None:
        self._check()
        self.health_logs.append({"service_name": service_name, "level": level, "message": message})


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()
