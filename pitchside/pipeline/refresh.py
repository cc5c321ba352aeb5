"""
Pitchside — Snapshot Controller

Owns the current Snapshot for one dashboard view and decides when fetches
run and which completions are applied.

Ordering rules:
- fetches for a view never overlap; they run one at a time under a lock
- any number of refresh requests that arrive while a fetch is in flight
  are served by exactly one follow-up fetch
- changing the filter bumps a generation counter; a completion from an
  older generation is discarded
- sequences grow under the lock, so a completion is never older than the
  applied snapshot
- a cancelled fetch puts the view back to its resting status
- ViewState is replaced by a single assignment, never mutated
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, NamedTuple

import structlog

from pitchside.config import WATCHED_TABLES, RefreshStatus, settings
from pitchside.pipeline.ingest import fetch_sales
from pitchside.pipeline.realtime import ChangeFeed, ChangeNotification
from pitchside.pipeline.store import SaleFilter, SaleStore, StoreError
from pitchside.records import Snapshot

logger = structlog.get_logger(__name__)


class ViewState(NamedTuple):
    status: RefreshStatus
    snapshot: Snapshot | None = None
    error: str | None = None
    stale: bool = False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotController:
    """
    Stale-while-revalidate snapshot holder for one view.

    Usage:
        controller = SnapshotController(store, SaleFilter(category_keyword="liverpool"))
        state = await controller.refresh()
    """

    def __init__(
        self,
        store: SaleStore,
        sale_filter: SaleFilter | None = None,
        name: str = "dashboard",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.name = name
        self._clock = clock
        self._filter = sale_filter or SaleFilter(limit=settings.SALES_FETCH_LIMIT)
        self._lock = asyncio.Lock()
        self._generation = 0
        self._sequence = 0
        self._requested = 0
        self._served = 0
        self._state = ViewState(status=RefreshStatus.IDLE)
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def sale_filter(self) -> SaleFilter:
        return self._filter

    @property
    def generation(self) -> int:
        return self._generation

    async def set_filter(self, sale_filter: SaleFilter) -> ViewState:
        """Swap the filter and fetch for it. In-flight results for the old filter are dropped."""
        self._filter = sale_filter
        self._generation += 1
        logger.info("view_filter_changed", view=self.name, generation=self._generation)
        return await self.refresh()

    async def refresh(self) -> ViewState:
        """
        Request a fresh snapshot and wait until a fetch covering this request completes.

        Never raises on store failure; the returned state carries status ERROR.
        """
        self._requested += 1
        ticket = self._requested

        async with self._lock:
            if self._served >= ticket:
                logger.debug("refresh_coalesced", view=self.name, ticket=ticket)
                return self._state

            covers = self._requested
            generation = self._generation
            sale_filter = self._filter
            self._sequence += 1
            sequence = self._sequence

            prior = self._state.snapshot
            self._state = ViewState(
                status=RefreshStatus.LOADING if prior is None else RefreshStatus.REVALIDATING,
                snapshot=prior,
                error=None,
                stale=prior is not None,
            )

            try:
                result = await fetch_sales(self.store, sale_filter)
            except asyncio.CancelledError:
                logger.info("refresh_cancelled", view=self.name, sequence=sequence)
                self._state = ViewState(
                    status=self._resting_status(prior),
                    snapshot=prior,
                )
                raise
            except StoreError as e:
                logger.error(
                    "refresh_failed",
                    view=self.name,
                    sequence=sequence,
                    error=str(e),
                )
                self._served = covers
                self._state = ViewState(
                    status=RefreshStatus.ERROR,
                    snapshot=prior,
                    error=str(e),
                    stale=prior is not None,
                )
                return self._state

            self._served = covers

            if generation != self._generation:
                logger.info(
                    "refresh_discarded_superseded_filter",
                    view=self.name,
                    sequence=sequence,
                    generation=generation,
                    current_generation=self._generation,
                )
                self._state = self._state._replace(status=self._resting_status(prior))
                return self._state

            snapshot = Snapshot(
                sequence=sequence,
                fetched_at=self._clock(),
                sales=result.sales,
                events=result.events,
                skipped_rows=result.skipped,
            )
            self._state = ViewState(
                status=RefreshStatus.EMPTY if snapshot.is_empty else RefreshStatus.READY,
                snapshot=snapshot,
            )
            logger.info(
                "snapshot_applied",
                view=self.name,
                sequence=sequence,
                sales=len(snapshot.sales),
                skipped=snapshot.skipped_rows,
                status=self._state.status.value,
            )
            return self._state

    @staticmethod
    def _resting_status(snapshot: Snapshot | None) -> RefreshStatus:
        if snapshot is None:
            return RefreshStatus.IDLE
        return RefreshStatus.EMPTY if snapshot.is_empty else RefreshStatus.READY

    # -----------------------------------------------------------------------
    # Change feed wiring
    # -----------------------------------------------------------------------

    async def on_change(self, notification: ChangeNotification) -> None:
        if notification.table not in WATCHED_TABLES:
            return
        logger.info("refresh_triggered_by_change", view=self.name, table=notification.table)
        await self.refresh()

    def attach(self, feed: ChangeFeed) -> None:
        self.detach()
        self._unsubscribe = feed.subscribe(self.on_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
