"""
Pitchside — Event & Platform Rollups

Group-by aggregation over a snapshot. Revenue is always recomputed from
price x quantity and kept as an exact Decimal, so the rollup totals sum
to the snapshot total with no rounding drift.

Sales without an event group under UNATTACHED_EVENT_KEY.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, NamedTuple, Sequence

from pitchside.config import settings
from pitchside.engine.metrics import average_price
from pitchside.records import EventInfo, SaleRecord

_ZERO = Decimal("0")

UNATTACHED_EVENT_KEY = "unattached"
UNKNOWN_EVENT_NAME = "Unknown"

TOP_GAME_METRICS = ("revenue", "units", "avg_price", "order_count")


class EventRollup(NamedTuple):
    event_key: str
    event_id: str | None
    event_name: str
    event_date: datetime | None
    category_name: str | None
    round: str | None
    revenue: Decimal
    units: int
    order_count: int
    platform_revenue: dict[str, Decimal]

    @property
    def avg_price(self) -> Decimal:
        return average_price(self.revenue, self.units)

    @property
    def is_attached(self) -> bool:
        return self.event_key != UNATTACHED_EVENT_KEY


class PlatformSplit(NamedTuple):
    platform: str
    revenue: Decimal
    units: int
    order_count: int

    @property
    def avg_price(self) -> Decimal:
        return average_price(self.revenue, self.units)


class EventSummary(NamedTuple):
    """Events grid row. Events with no sales carry zeros."""
    event: EventInfo
    revenue: Decimal
    units: int
    order_count: int


def event_key(sale: SaleRecord) -> str:
    return sale.event_id if sale.event_id else UNATTACHED_EVENT_KEY


def rollup_by_event(sales: Iterable[SaleRecord]) -> dict[str, EventRollup]:
    """
    Per-event revenue, units, order count and per-platform revenue.

    Keys are event ids, in first-seen order. Event metadata comes from the
    first sale of each group that carries a joined event.
    """
    meta: dict[str, EventInfo | None] = {}
    revenue: dict[str, Decimal] = {}
    units: dict[str, int] = {}
    orders: dict[str, int] = {}
    by_platform: dict[str, dict[str, Decimal]] = {}

    for sale in sales:
        key = event_key(sale)
        if key not in revenue:
            meta[key] = None
            revenue[key] = _ZERO
            units[key] = 0
            orders[key] = 0
            by_platform[key] = {}
        if meta[key] is None and sale.event is not None:
            meta[key] = sale.event

        amount = sale.revenue
        revenue[key] += amount
        units[key] += sale.quantity
        orders[key] += 1
        by_platform[key][sale.platform] = by_platform[key].get(sale.platform, _ZERO) + amount

    rollups: dict[str, EventRollup] = {}
    for key in revenue:
        event = meta[key]
        rollups[key] = EventRollup(
            event_key=key,
            event_id=None if key == UNATTACHED_EVENT_KEY else key,
            event_name=event.name if event is not None else UNKNOWN_EVENT_NAME,
            event_date=event.event_date if event is not None else None,
            category_name=event.category_name if event is not None else None,
            round=event.round if event is not None else None,
            revenue=revenue[key],
            units=units[key],
            order_count=orders[key],
            platform_revenue=by_platform[key],
        )
    return rollups


def split_by_platform(sales: Iterable[SaleRecord]) -> list[PlatformSplit]:
    """One entry per platform present in the input, in first-seen order."""
    revenue: dict[str, Decimal] = {}
    units: dict[str, int] = {}
    orders: dict[str, int] = {}
    for sale in sales:
        if sale.platform not in revenue:
            revenue[sale.platform] = _ZERO
            units[sale.platform] = 0
            orders[sale.platform] = 0
        revenue[sale.platform] += sale.revenue
        units[sale.platform] += sale.quantity
        orders[sale.platform] += 1

    return [
        PlatformSplit(
            platform=platform,
            revenue=revenue[platform],
            units=units[platform],
            order_count=orders[platform],
        )
        for platform in revenue
    ]


def top_games(
    sales: Iterable[SaleRecord],
    metric: str = "revenue",
    limit: int | None = None,
) -> list[EventRollup]:
    """Event rollups ranked by `metric` descending. Ties keep first-seen order."""
    if metric not in TOP_GAME_METRICS:
        raise ValueError(f"metric must be one of {TOP_GAME_METRICS}")
    size = limit if limit is not None else settings.TOP_GAMES_LIMIT
    ranked = sorted(
        rollup_by_event(sales).values(),
        key=lambda r: getattr(r, metric),
        reverse=True,
    )
    return ranked[:size]


def summarize_events(
    events: Sequence[EventInfo], sales: Iterable[SaleRecord]
) -> list[EventSummary]:
    """Every event in `events`, in the given order, with its sale totals."""
    rollups = rollup_by_event(sales)
    summaries = []
    for event in events:
        rollup = rollups.get(event.id)
        summaries.append(
            EventSummary(
                event=event,
                revenue=rollup.revenue if rollup else _ZERO,
                units=rollup.units if rollup else 0,
                order_count=rollup.order_count if rollup else 0,
            )
        )
    return summaries
