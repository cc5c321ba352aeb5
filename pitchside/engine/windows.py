"""
Pitchside — Rolling Window Stats

Per-event comparison of the recent window [now - N days, now) against the
prior window [now - 2N days, now - N days). N defaults to WINDOW_DAYS.
Shared by the risk scorer, market leaderboards and insights.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, NamedTuple

from pitchside.config import settings
from pitchside.engine.metrics import average_price, percent_change
from pitchside.engine.rollup import UNKNOWN_EVENT_NAME, event_key
from pitchside.records import SaleRecord

_ZERO = Decimal("0")


class WindowBounds(NamedTuple):
    prior_start: datetime
    recent_start: datetime
    end: datetime


class EventWindowStats(NamedTuple):
    event_key: str
    event_name: str
    event_date: datetime | None
    units_recent: int
    units_prior: int
    revenue_recent: Decimal
    revenue_prior: Decimal
    total_revenue: Decimal
    total_units: int

    @property
    def avg_price_recent(self) -> Decimal:
        return average_price(self.revenue_recent, self.units_recent)

    @property
    def avg_price_prior(self) -> Decimal:
        return average_price(self.revenue_prior, self.units_prior)

    @property
    def units_change_pct(self) -> Decimal:
        return percent_change(self.units_recent, self.units_prior)

    @property
    def price_change_pct(self) -> Decimal:
        return percent_change(self.avg_price_recent, self.avg_price_prior)


def window_bounds(now: datetime, window_days: int | None = None) -> WindowBounds:
    days = window_days if window_days is not None else settings.WINDOW_DAYS
    if days < 1:
        raise ValueError("window_days must be positive")
    span = timedelta(days=days)
    return WindowBounds(prior_start=now - 2 * span, recent_start=now - span, end=now)


def compute_window_stats(
    sales: Iterable[SaleRecord],
    now: datetime,
    window_days: int | None = None,
) -> dict[str, EventWindowStats]:
    """
    Window stats per event key, in first-seen order.

    total_revenue and total_units cover every sale in the input, not just
    the two windows.
    """
    bounds = window_bounds(now, window_days)

    names: dict[str, str] = {}
    dates: dict[str, datetime | None] = {}
    acc: dict[str, list] = {}

    for sale in sales:
        key = event_key(sale)
        if key not in acc:
            acc[key] = [0, 0, _ZERO, _ZERO, _ZERO, 0]
            names[key] = UNKNOWN_EVENT_NAME
            dates[key] = None
        if sale.event is not None and names[key] == UNKNOWN_EVENT_NAME:
            names[key] = sale.event.name
            dates[key] = sale.event.event_date

        row = acc[key]
        amount = sale.revenue
        if bounds.recent_start <= sale.sold_at < bounds.end:
            row[0] += sale.quantity
            row[2] += amount
        elif bounds.prior_start <= sale.sold_at < bounds.recent_start:
            row[1] += sale.quantity
            row[3] += amount
        row[4] += amount
        row[5] += sale.quantity

    return {
        key: EventWindowStats(
            event_key=key,
            event_name=names[key],
            event_date=dates[key],
            units_recent=row[0],
            units_prior=row[1],
            revenue_recent=row[2],
            revenue_prior=row[3],
            total_revenue=row[4],
            total_units=row[5],
        )
        for key, row in acc.items()
    }
