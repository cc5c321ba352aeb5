"""
Pitchside — Demand Heatmap

One bubble per event. Size is always units relative to the busiest event;
change is the event's average price against the median average price of
all events, in percent.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, NamedTuple

from pitchside.config import settings
from pitchside.engine.metrics import median
from pitchside.engine.rollup import rollup_by_event
from pitchside.records import SaleRecord

_ONE = Decimal("1")
_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


class HeatmapBubble(NamedTuple):
    event_key: str
    event_name: str
    category_name: str | None
    event_date: datetime | None
    revenue: Decimal
    units: int
    order_count: int
    avg_price: Decimal
    size: Decimal               # 0..1, units / max units
    change_pct: Decimal         # avg price vs median avg price


def heatmap_bubbles(
    sales: Iterable[SaleRecord], limit: int | None = None
) -> list[HeatmapBubble]:
    size_limit = limit if limit is not None else settings.HEATMAP_LIMIT
    rollups = list(rollup_by_event(sales).values())
    if not rollups:
        return []

    max_units = Decimal(max(max(r.units for r in rollups), 1))
    baseline = median([r.avg_price for r in rollups])
    divisor = baseline if baseline != _ZERO else _ONE

    bubbles = [
        HeatmapBubble(
            event_key=r.event_key,
            event_name=r.event_name,
            category_name=r.category_name,
            event_date=r.event_date,
            revenue=r.revenue,
            units=r.units,
            order_count=r.order_count,
            avg_price=r.avg_price,
            size=Decimal(r.units) / max_units,
            change_pct=(r.avg_price - baseline) / divisor * _HUNDRED,
        )
        for r in rollups
    ]
    bubbles.sort(key=lambda b: b.size, reverse=True)
    return bubbles[:size_limit]
