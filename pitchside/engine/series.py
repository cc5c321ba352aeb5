"""
Pitchside — Time Series

Calendar-day bucketing in the dashboard timezone. A sale belongs to the
local date of its sold_at, so a sale at 23:30 UTC in summer lands on the
next day in Europe/London.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, NamedTuple, Sequence
from zoneinfo import ZoneInfo

from pitchside.config import settings
from pitchside.engine.metrics import average_price
from pitchside.records import SaleRecord

_ZERO = Decimal("0")


class DailyBucket(NamedTuple):
    date: date
    revenue: Decimal
    units: int
    order_count: int


class DrilldownPoint(NamedTuple):
    date: date
    units: int
    avg_price: Decimal
    listings: int
    velocity: Decimal


def dashboard_zone(tz: ZoneInfo | None = None) -> ZoneInfo:
    return tz if tz is not None else ZoneInfo(settings.DASHBOARD_TIMEZONE)


def local_date(moment: datetime, tz: ZoneInfo | None = None) -> date:
    return moment.astimezone(dashboard_zone(tz)).date()


def _as_local_date(value: date | datetime, tz: ZoneInfo) -> date:
    if isinstance(value, datetime):
        return value.astimezone(tz).date()
    return value


def day_range(start: date, end: date) -> list[date]:
    """Every calendar day from start to end inclusive. Empty if end < start."""
    if end < start:
        return []
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def bucket_by_day(
    sales: Iterable[SaleRecord],
    range_start: date | datetime,
    range_end: date | datetime,
    tz: ZoneInfo | None = None,
) -> list[DailyBucket]:
    """
    One bucket per calendar day in [range_start, range_end], chronological,
    zero-filled. Sales whose local date falls outside the range are ignored.
    """
    zone = dashboard_zone(tz)
    first = _as_local_date(range_start, zone)
    last = _as_local_date(range_end, zone)
    days = day_range(first, last)
    if not days:
        return []

    revenue: dict[date, Decimal] = {day: _ZERO for day in days}
    units: dict[date, int] = {day: 0 for day in days}
    orders: dict[date, int] = {day: 0 for day in days}

    for sale in sales:
        day = local_date(sale.sold_at, zone)
        if day not in revenue:
            continue
        revenue[day] += sale.revenue
        units[day] += sale.quantity
        orders[day] += 1

    return [
        DailyBucket(date=day, revenue=revenue[day], units=units[day], order_count=orders[day])
        for day in days
    ]


def daily_units(
    sales: Iterable[SaleRecord],
    days: Sequence[date],
    tz: ZoneInfo | None = None,
) -> list[int]:
    """Units per day aligned to `days`. Days with no sales are 0."""
    zone = dashboard_zone(tz)
    counts = {day: 0 for day in days}
    for sale in sales:
        day = local_date(sale.sold_at, zone)
        if day in counts:
            counts[day] += sale.quantity
    return [counts[day] for day in days]


def event_daily_series(
    sales: Iterable[SaleRecord], tz: ZoneInfo | None = None
) -> list[DrilldownPoint]:
    """
    Drilldown series for one event's sales: days that had sales only,
    chronological. velocity is cumulative units / days seen so far.
    """
    zone = dashboard_zone(tz)
    revenue: dict[date, Decimal] = {}
    units: dict[date, int] = {}
    listings: dict[date, int] = {}

    for sale in sales:
        day = local_date(sale.sold_at, zone)
        revenue[day] = revenue.get(day, _ZERO) + sale.revenue
        units[day] = units.get(day, 0) + sale.quantity
        listings[day] = listings.get(day, 0) + 1

    points = []
    cumulative = 0
    for index, day in enumerate(sorted(units), start=1):
        cumulative += units[day]
        points.append(
            DrilldownPoint(
                date=day,
                units=units[day],
                avg_price=average_price(revenue[day], units[day]),
                listings=listings[day],
                velocity=Decimal(cumulative) / Decimal(index),
            )
        )
    return points
