"""
Pitchside — Velocity Tracker

Units per day for the busiest events over a selectable window (7, 14, 30,
60 or 90 days in the dashboard). Trend compares the unit total of the
second half of the window against the first half.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import NamedTuple, Sequence
from zoneinfo import ZoneInfo

import structlog

from pitchside.config import TrendDirection, settings
from pitchside.engine.metrics import safe_divide
from pitchside.engine.rollup import rollup_by_event, event_key
from pitchside.engine.series import daily_units, dashboard_zone, day_range, local_date
from pitchside.records import SaleRecord

logger = structlog.get_logger(__name__)


class EventVelocity(NamedTuple):
    event_key: str
    event_name: str
    total_units: int
    units_per_day: Decimal
    daily: list[int]
    trend: TrendDirection


class VelocityReport(NamedTuple):
    days: list[date]
    events: list[EventVelocity]
    overall_velocity: Decimal

    @property
    def fastest(self) -> EventVelocity | None:
        return self.events[0] if self.events else None

    @property
    def slowest(self) -> EventVelocity | None:
        return self.events[-1] if len(self.events) > 1 else None


def trend_direction(daily: Sequence[int]) -> TrendDirection:
    half = len(daily) // 2
    first = sum(daily[:half])
    second = sum(daily[half:])
    return TrendDirection.ACCELERATING if second >= first else TrendDirection.SLOWING


def velocity_report(
    sales: Sequence[SaleRecord],
    now: datetime,
    window_days: int = 30,
    top_n: int | None = None,
    tz: ZoneInfo | None = None,
) -> VelocityReport:
    """
    The window runs from local midnight `window_days` days ago through now.
    Events are ranked by units inside the window; the top N get a zero-filled
    per-day series.
    """
    if window_days < 1:
        raise ValueError("window_days must be positive")
    limit = top_n if top_n is not None else settings.VELOCITY_TOP_EVENTS
    zone = dashboard_zone(tz)

    first_day = local_date(now - timedelta(days=window_days), zone)
    days = day_range(first_day, local_date(now, zone))
    in_range = [s for s in sales if first_day <= local_date(s.sold_at, zone) and s.sold_at <= now]

    rollups = rollup_by_event(in_range)
    ranked = sorted(rollups.values(), key=lambda r: r.units, reverse=True)[:limit]
    divisor = Decimal(window_days)

    events = []
    for rollup in ranked:
        own = [s for s in in_range if event_key(s) == rollup.event_key]
        daily = daily_units(own, days, zone)
        events.append(
            EventVelocity(
                event_key=rollup.event_key,
                event_name=rollup.event_name,
                total_units=rollup.units,
                units_per_day=Decimal(rollup.units) / divisor,
                daily=daily,
                trend=trend_direction(daily),
            )
        )

    overall = safe_divide(sum(s.quantity for s in in_range), window_days)
    logger.debug(
        "velocity_report_built",
        window_days=window_days,
        events=len(events),
        overall_velocity=str(overall),
    )
    return VelocityReport(days=days, events=events, overall_velocity=overall)
