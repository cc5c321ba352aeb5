"""
Pitchside — Market Intelligence

Headline KPIs and event leaderboards over the same recent / prior 7-day
windows the risk scorer uses. Events that resolve to the "Unknown" name
(unattached sales or a missing join) never appear on a leaderboard.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import NamedTuple, Sequence

import structlog

from pitchside.config import settings
from pitchside.engine.metrics import Totals, in_window, percent_change, safe_divide, totals
from pitchside.engine.rollup import UNKNOWN_EVENT_NAME
from pitchside.engine.windows import EventWindowStats, compute_window_stats, window_bounds
from pitchside.records import SaleRecord

logger = structlog.get_logger(__name__)


class MarketKpis(NamedTuple):
    units_24h: int
    units_recent: int
    units_prior: int
    avg_price: Decimal
    velocity: Decimal          # recent units per day

    @property
    def units_change_pct(self) -> Decimal:
        return percent_change(self.units_recent, self.units_prior)


class Leaderboards(NamedTuple):
    most_sold: list[EventWindowStats]
    highest_revenue: list[EventWindowStats]
    fastest_growth: list[EventWindowStats]
    declining: list[EventWindowStats]


def market_kpis(sales: Sequence[SaleRecord], now: datetime) -> MarketKpis:
    bounds = window_bounds(now)
    overall: Totals = totals(sales)
    recent = totals(in_window(sales, bounds.recent_start, bounds.end))
    prior = totals(in_window(sales, bounds.prior_start, bounds.recent_start))
    last_day = totals(in_window(sales, now - timedelta(days=1), bounds.end))

    return MarketKpis(
        units_24h=last_day.units,
        units_recent=recent.units,
        units_prior=prior.units,
        avg_price=overall.avg_price,
        velocity=safe_divide(recent.units, settings.WINDOW_DAYS),
    )


def leaderboards(
    sales: Sequence[SaleRecord],
    now: datetime,
    size: int | None = None,
) -> Leaderboards:
    """
    - most_sold: recent units, descending
    - highest_revenue: all-time revenue, descending
    - fastest_growth: prior > 0, by units percent change descending
    - declining: prior > 0 and recent < prior, most negative change first
    """
    limit = size if size is not None else settings.LEADERBOARD_SIZE
    stats = [
        s for s in compute_window_stats(sales, now).values()
        if s.event_name != UNKNOWN_EVENT_NAME
    ]

    most_sold = sorted(stats, key=lambda s: s.units_recent, reverse=True)
    highest_revenue = sorted(stats, key=lambda s: s.total_revenue, reverse=True)
    fastest_growth = sorted(
        (s for s in stats if s.units_prior > 0),
        key=lambda s: s.units_change_pct,
        reverse=True,
    )
    declining = sorted(
        (s for s in stats if s.units_prior > 0 and s.units_recent < s.units_prior),
        key=lambda s: s.units_change_pct,
    )

    logger.debug("leaderboards_built", events=len(stats), size=limit)
    return Leaderboards(
        most_sold=most_sold[:limit],
        highest_revenue=highest_revenue[:limit],
        fastest_growth=fastest_growth[:limit],
        declining=declining[:limit],
    )
