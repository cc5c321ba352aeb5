"""
Pitchside — Sale Record Store Contract

The read/write boundary the ingestion adapter talks to. Two implementations
exist: SupabaseStore (PostgREST over httpx) and DatabaseStore (SQLAlchemy
async session). Both return rows in the same joined shape:

    sale row:  {id, sold_at, ticket_price, quantity, platform, section,
                event_id, notes, events: <event row> | None}
    event row: {id, name, event_date, venue, round, category_id,
                categories: {name} | None}

Any transport or query failure surfaces as StoreError.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from pydantic import BaseModel, Field, model_validator


class StoreError(RuntimeError):
    """The backing store could not be reached or rejected the query."""


class SaleFilter(BaseModel):
    """Server-side constraints applied when fetching sales."""

    category_keyword: str | None = Field(
        default=None, description="Case-insensitive substring of the owning category name"
    )
    event_ids: list[str] | None = None
    sold_from: datetime | None = None
    sold_to: datetime | None = None
    ascending: bool = False
    limit: int | None = None

    @model_validator(mode="after")
    def check_range(self) -> SaleFilter:
        if self.sold_from and self.sold_to and self.sold_from > self.sold_to:
            raise ValueError("sold_from must not be after sold_to")
        if self.limit is not None and self.limit < 1:
            raise ValueError("limit must be positive")
        return self


class ChangeMarker(BaseModel):
    """Cheap per-table fingerprint used to detect row changes by polling."""

    model_config = {"frozen": True}

    row_count: int
    latest: str | None = None


class SaleStore(Protocol):
    async def ping(self) -> None: ...

    async def fetch_category_ids(self, keyword: str) -> list[str]: ...

    async def fetch_events(self, category_ids: list[str] | None = None) -> list[dict[str, Any]]: ...

    async def fetch_sales(self, sale_filter: SaleFilter) -> list[dict[str, Any]]: ...

    async def insert_sales(self, rows: list[dict[str, Any]]) -> int: ...

    async def count_rows(self, table: str, null_column: str | None = None) -> int: ...

    async def change_marker(self, table: str) -> ChangeMarker: ...

    async def upsert_service_health(self, service_name: str, status: str, detail: str) -> None: ...

    async def append_health_log(self, service_name: str, level: str, message: str) -> None: ...


# Column that moves whenever a row in the table is inserted or updated.
CHANGE_COLUMNS: dict[str, str] = {
    "sales": "updated_at",
    "events": "updated_at",
    "categories": "created_at",
    "service_health": "last_seen",
    "health_logs": "created_at",
}
