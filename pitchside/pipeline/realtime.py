"""
Pitchside — Change Notifications

ChangeFeed fans table-change notifications out to subscribers (snapshot
controllers). Payloads are never applied: a notification only says "this
table moved", and every subscriber answers with a full re-fetch.

ChangePoller is the transport used when no push channel is wired. It
compares a cheap per-table marker (row count + newest change timestamp) on
a fixed cadence and publishes a notification for every table whose marker
moved.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, NamedTuple

import structlog

from pitchside.config import WATCHED_TABLES, settings
from pitchside.pipeline.store import ChangeMarker, SaleStore, StoreError

logger = structlog.get_logger(__name__)


class ChangeNotification(NamedTuple):
    table: str
    observed_at: datetime


Subscriber = Callable[[ChangeNotification], Awaitable[None]]


class ChangeFeed:
    """In-process pub/sub for table change notifications."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def publish(self, notification: ChangeNotification) -> None:
        """
        Deliver to every subscriber in registration order.

        A failing subscriber is logged and does not stop delivery to the rest.
        """
        logger.info(
            "change_published",
            table=notification.table,
            subscribers=len(self._subscribers),
        )
        for callback in list(self._subscribers):
            try:
                await callback(notification)
            except Exception as e:
                logger.error(
                    "change_subscriber_failed",
                    table=notification.table,
                    error=str(e),
                )


class ChangePoller:
    """
    Polls change markers for the watched tables.

    The first poll only records a baseline; later polls publish one
    notification per table whose marker differs from the last one seen.
    """

    def __init__(
        self,
        store: SaleStore,
        feed: ChangeFeed,
        tables: tuple[str, ...] = WATCHED_TABLES,
        interval_seconds: float | None = None,
    ):
        self.store = store
        self.feed = feed
        self.tables = tables
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else settings.CHANGE_POLL_INTERVAL_SECONDS
        )
        self._markers: dict[str, ChangeMarker] = {}
        self._shutdown_event = asyncio.Event()

    async def shutdown(self) -> None:
        logger.info("change_poller_shutdown_requested")
        self._shutdown_event.set()

    async def poll_once(self) -> list[ChangeNotification]:
        """Check every table once. Returns the notifications published."""
        published: list[ChangeNotification] = []
        for table in self.tables:
            try:
                marker = await self.store.change_marker(table)
            except StoreError as e:
                logger.warning("change_marker_unavailable", table=table, error=str(e))
                continue

            previous = self._markers.get(table)
            self._markers[table] = marker
            if previous is None or previous == marker:
                continue

            notification = ChangeNotification(table=table, observed_at=datetime.now(timezone.utc))
            logger.debug(
                "change_detected",
                table=table,
                row_count=marker.row_count,
                previous_row_count=previous.row_count,
            )
            await self.feed.publish(notification)
            published.append(notification)
        return published

    async def run(self) -> None:
        """Poll until shutdown is signaled."""
        logger.info(
            "change_poller_started",
            tables=list(self.tables),
            interval_seconds=self.interval_seconds,
        )
        try:
            while not self._shutdown_event.is_set():
                await self.poll_once()
                try:
                    await asyncio.wait_for(
                        self._shutdown_event.wait(),
                        timeout=self.interval_seconds,
                    )
                except asyncio.TimeoutError:
                    continue
        finally:
            logger.info("change_poller_stopped")
