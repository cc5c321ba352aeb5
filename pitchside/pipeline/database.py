"""
Pitchside — Direct Database Store

SaleStore implementation over a SQLAlchemy async session factory, for
deployments that talk to Postgres directly instead of through PostgREST.
Rows are returned in the same joined dict shape as SupabaseStore so the
ingestion adapter never knows which backend it is reading.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pitchside.models import Category, Event, HealthLog, Sale, ServiceHealth
from pitchside.pipeline.store import CHANGE_COLUMNS, ChangeMarker, SaleFilter, StoreError

logger = structlog.get_logger(__name__)

TABLE_MODELS: dict[str, Any] = {
    model.__tablename__: model
    for model in (Category, Event, Sale, ServiceHealth, HealthLog)
}


def _event_row(event: Event, category: Category | None) -> dict[str, Any]:
    return {
        "id": event.id,
        "name": event.name,
        "event_date": event.event_date,
        "venue": event.venue,
        "round": event.round,
        "category_id": event.category_id,
        "categories": {"name": category.name} if category is not None else None,
    }


def _sale_row(sale: Sale, event_row: dict[str, Any] | None) -> dict[str, Any]:
    return {
        "id": sale.id,
        "sold_at": sale.sold_at,
        "ticket_price": sale.ticket_price,
        "quantity": sale.quantity,
        "platform": sale.platform,
        "section": sale.section,
        "event_id": sale.event_id,
        "notes": sale.notes,
        "events": event_row,
    }


class DatabaseStore:
    """SaleStore backed by an async_sessionmaker. One session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    def _model(self, table: str) -> Any:
        try:
            return TABLE_MODELS[table]
        except KeyError:
            raise ValueError(f"Unknown table: {table}") from None

    async def ping(self) -> None:
        try:
            async with self.session_factory() as session:
                await session.execute(select(Category.id).limit(1))
        except SQLAlchemyError as e:
            logger.error("database_ping_failed", error=str(e))
            raise StoreError("Database unreachable") from e

    async def fetch_category_ids(self, keyword: str) -> list[str]:
        stmt = select(Category.id).where(Category.name.ilike(f"%{keyword}%"))
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return [row[0] for row in result.all()]
        except SQLAlchemyError as e:
            logger.error("database_category_lookup_failed", keyword=keyword, error=str(e))
            raise StoreError("Category lookup failed") from e

    async def fetch_events(self, category_ids: list[str] | None = None) -> list[dict[str, Any]]:
        if category_ids is not None and not category_ids:
            return []

        stmt = (
            select(Event, Category)
            .outerjoin(Category, Event.category_id == Category.id)
            .order_by(Event.event_date.asc())
        )
        if category_ids is not None:
            stmt = stmt.where(Event.category_id.in_(category_ids))

        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                rows = [_event_row(event, category) for event, category in result.all()]
        except SQLAlchemyError as e:
            logger.error("database_events_fetch_failed", error=str(e))
            raise StoreError("Event fetch failed") from e

        logger.debug("database_events_fetched", count=len(rows))
        return rows

    async def fetch_sales(self, sale_filter: SaleFilter) -> list[dict[str, Any]]:
        if sale_filter.event_ids is not None and not sale_filter.event_ids:
            return []

        order = Sale.sold_at.asc() if sale_filter.ascending else Sale.sold_at.desc()
        stmt = (
            select(Sale, Event, Category)
            .outerjoin(Event, Sale.event_id == Event.id)
            .outerjoin(Category, Event.category_id == Category.id)
            .order_by(order)
        )
        if sale_filter.event_ids is not None:
            stmt = stmt.where(Sale.event_id.in_(sale_filter.event_ids))
        if sale_filter.sold_from is not None:
            stmt = stmt.where(Sale.sold_at >= sale_filter.sold_from)
        if sale_filter.sold_to is not None:
            stmt = stmt.where(Sale.sold_at <= sale_filter.sold_to)
        if sale_filter.limit is not None:
            stmt = stmt.limit(sale_filter.limit)

        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                rows = [
                    _sale_row(sale, _event_row(event, category) if event is not None else None)
                    for sale, event, category in result.all()
                ]
        except SQLAlchemyError as e:
            logger.error("database_sales_fetch_failed", error=str(e))
            raise StoreError("Sales fetch failed") from e

        logger.info("database_sales_fetched", count=len(rows), limit=sale_filter.limit)
        return rows

    async def count_rows(self, table: str, null_column: str | None = None) -> int:
        model = self._model(table)
        stmt = select(func.count()).select_from(model)
        if null_column:
            stmt = stmt.where(getattr(model, null_column).is_(None))
        try:
            async with self.session_factory() as session:
                return int((await session.execute(stmt)).scalar_one())
        except SQLAlchemyError as e:
            logger.error("database_count_failed", table=table, error=str(e))
            raise StoreError(f"Count on {table} failed") from e

    async def change_marker(self, table: str) -> ChangeMarker:
        model = self._model(table)
        column = getattr(model, CHANGE_COLUMNS[table])
        stmt = select(func.count(), func.max(column)).select_from(model)
        try:
            async with self.session_factory() as session:
                count, latest = (await session.execute(stmt)).one()
        except SQLAlchemyError as e:
            logger.error("database_change_marker_failed", table=table, error=str(e))
            raise StoreError(f"Change marker on {table} failed") from e
        return ChangeMarker(row_count=int(count), latest=str(latest) if latest is not None else None)

    async def insert_sales(self, rows: list[dict[str, Any]]) -> int:
        if not rows:
            return 0
        try:
            async with self.session_factory() as session:
                session.add_all([Sale(**row) for row in rows])
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("database_sales_insert_failed", count=len(rows), error=str(e))
            raise StoreError("Sales insert failed") from e

        logger.info("database_sales_inserted", count=len(rows))
        return len(rows)

    async def upsert_service_health(self, service_name: str, status: str, detail: str) -> None:
        now = datetime.now(timezone.utc)
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(ServiceHealth).where(ServiceHealth.service_name == service_name)
                )
                row = result.scalar_one_or_none()
                if row is None:
                    session.add(
                        ServiceHealth(
                            service_name=service_name, status=status, detail=detail, last_seen=now
                        )
                    )
                else:
                    row.status = status
                    row.detail = detail
                    row.last_seen = now
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("database_service_health_failed", service=service_name, error=str(e))
            raise StoreError("service_health upsert failed") from e

    async def append_health_log(self, service_name: str, level: str, message: str) -> None:
        try:
            async with self.session_factory() as session:
                session.add(HealthLog(service_name=service_name, level=level, message=message))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("database_health_log_failed", service=service_name, error=str(e))
            raise StoreError("health_logs insert failed") from e
