"""
Pitchside — Supabase (PostgREST) Store

Reads and writes the sales/events/categories relations through the hosted
PostgREST API. Joins are expressed as embedded selects so each sale row
arrives with its event and category attached.

Transport failures are retried with exponential backoff, then raised as
StoreError. The caller never sees raw httpx exceptions.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from pitchside.config import settings
from pitchside.pipeline.store import CHANGE_COLUMNS, ChangeMarker, SaleFilter, StoreError

logger = structlog.get_logger(__name__)

REST_PREFIX = "/rest/v1"

EVENT_COLUMNS = "id,name,event_date,venue,round,category_id,categories(name)"
SALE_COLUMNS = (
    "id,sold_at,ticket_price,quantity,platform,section,event_id,notes,"
    f"events({EVENT_COLUMNS})"
)


def _in_list(values: list[str]) -> str:
    return "in.(" + ",".join(values) + ")"


def _parse_content_range(header: str | None) -> int:
    """PostgREST count header: '0-24/3573' or '*/0'."""
    if not header or "/" not in header:
        return 0
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


class SupabaseStore:
    """
    Async PostgREST client implementing the SaleStore contract.

    Usage:
        async with SupabaseStore() as store:
            rows = await store.fetch_sales(SaleFilter(limit=2000))
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        max_retries: int | None = None,
        base_backoff: float | None = None,
    ):
        self._base_url = (base_url or settings.SUPABASE_URL).rstrip("/")
        self._api_key = api_key if api_key is not None else settings.SUPABASE_ANON_KEY
        self._max_retries = max_retries if max_retries is not None else settings.HTTP_MAX_RETRIES
        self._base_backoff = (
            base_backoff if base_backoff is not None else settings.HTTP_BASE_BACKOFF_SECONDS
        )
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> SupabaseStore:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "apikey": self._api_key,
                "Authorization": f"Bearer {self._api_key}",
            },
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        table: str,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Make a PostgREST request with retry logic and exponential backoff.

        429 and 5xx responses and connection errors are retried; other 4xx
        responses fail immediately.
        """
        if self._client is None:
            raise StoreError("Store not initialized. Use 'async with'.")

        path = f"{REST_PREFIX}/{table}"
        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                response = await self._client.request(
                    method, path, params=params, json=json, headers=headers
                )

                if response.status_code == 429:
                    wait_time = self._base_backoff * (2 ** attempt)
                    logger.warning(
                        "supabase_rate_limited",
                        table=table,
                        attempt=attempt + 1,
                        wait_seconds=wait_time,
                    )
                    last_error = httpx.HTTPStatusError(
                        "rate limited", request=response.request, response=response
                    )
                    await asyncio.sleep(wait_time)
                    continue

                response.raise_for_status()
                return response

            except httpx.HTTPStatusError as e:
                last_error = e
                logger.error(
                    "supabase_http_error",
                    status_code=e.response.status_code,
                    attempt=attempt + 1,
                    table=table,
                )
                if e.response.status_code >= 500:
                    await asyncio.sleep(self._base_backoff * (2 ** attempt))
                    continue
                raise StoreError(
                    f"{method} {table} rejected with HTTP {e.response.status_code}"
                ) from e

            except httpx.RequestError as e:
                last_error = e
                logger.error(
                    "supabase_request_error",
                    error=str(e),
                    attempt=attempt + 1,
                    table=table,
                )
                await asyncio.sleep(self._base_backoff * (2 ** attempt))
                continue

        raise StoreError(
            f"{method} {table} failed after {self._max_retries + 1} attempts"
        ) from last_error

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    async def ping(self) -> None:
        await self._request("GET", "categories", params=[("select", "id"), ("limit", "1")])

    async def fetch_category_ids(self, keyword: str) -> list[str]:
        response = await self._request(
            "GET",
            "categories",
            params=[("select", "id"), ("name", f"ilike.*{keyword}*")],
        )
        ids = [row["id"] for row in response.json()]
        logger.debug("supabase_categories_matched", keyword=keyword, count=len(ids))
        return ids

    async def fetch_events(self, category_ids: list[str] | None = None) -> list[dict[str, Any]]:
        params: list[tuple[str, str]] = [
            ("select", EVENT_COLUMNS),
            ("order", "event_date.asc.nullslast"),
        ]
        if category_ids is not None:
            if not category_ids:
                return []
            params.append(("category_id", _in_list(category_ids)))

        response = await self._request("GET", "events", params=params)
        rows = response.json()
        logger.debug("supabase_events_fetched", count=len(rows))
        return rows

    async def fetch_sales(self, sale_filter: SaleFilter) -> list[dict[str, Any]]:
        direction = "asc" if sale_filter.ascending else "desc"
        params: list[tuple[str, str]] = [
            ("select", SALE_COLUMNS),
            ("order", f"sold_at.{direction}"),
        ]
        if sale_filter.event_ids is not None:
            if not sale_filter.event_ids:
                return []
            params.append(("event_id", _in_list(sale_filter.event_ids)))
        if sale_filter.sold_from is not None:
            params.append(("sold_at", f"gte.{sale_filter.sold_from.isoformat()}"))
        if sale_filter.sold_to is not None:
            params.append(("sold_at", f"lte.{sale_filter.sold_to.isoformat()}"))
        if sale_filter.limit is not None:
            params.append(("limit", str(sale_filter.limit)))

        response = await self._request("GET", "sales", params=params)
        rows = response.json()
        logger.info(
            "supabase_sales_fetched",
            count=len(rows),
            limit=sale_filter.limit,
            event_filter=sale_filter.event_ids is not None,
        )
        return rows

    async def count_rows(self, table: str, null_column: str | None = None) -> int:
        params: list[tuple[str, str]] = [("select", "id"), ("limit", "1")]
        if null_column:
            params.append((null_column, "is.null"))
        response = await self._request(
            "GET", table, params=params, headers={"Prefer": "count=exact"}
        )
        return _parse_content_range(response.headers.get("content-range"))

    async def change_marker(self, table: str) -> ChangeMarker:
        column = CHANGE_COLUMNS[table]
        response = await self._request(
            "GET",
            table,
            params=[("select", column), ("order", f"{column}.desc"), ("limit", "1")],
            headers={"Prefer": "count=exact"},
        )
        rows = response.json()
        latest = str(rows[0][column]) if rows else None
        return ChangeMarker(
            row_count=_parse_content_range(response.headers.get("content-range")),
            latest=latest,
        )

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    async def insert_sales(self, rows: list[dict[str, Any]]) -> int:
        if not rows:
            return 0
        payload = [
            {k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in row.items()}
            for row in rows
        ]
        for row in payload:
            if row.get("ticket_price") is not None:
                row["ticket_price"] = str(row["ticket_price"])
        await self._request("POST", "sales", json=payload, headers={"Prefer": "return=minimal"})
        logger.info("supabase_sales_inserted", count=len(payload))
        return len(payload)

    async def upsert_service_health(self, service_name: str, status: str, detail: str) -> None:
        await self._request(
            "POST",
            "service_health",
            params=[("on_conflict", "service_name")],
            json={
                "service_name": service_name,
                "status": status,
                "detail": detail,
                "last_seen": datetime.now(timezone.utc).isoformat(),
            },
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def append_health_log(self, service_name: str, level: str, message: str) -> None:
        await self._request(
            "POST",
            "health_logs",
            json={"service_name": service_name, "level": level, "message": message},
            headers={"Prefer": "return=minimal"},
        )
