"""
Pitchside — Insight Generator

Short text nudges for the analytics page, evaluated in a fixed order and
capped at MAX_INSIGHTS:

1. top earner with a high average margin  -> good
2. each event with volume but low margin  -> warn
3. busiest event in the last 7 days       -> info (spike)
4. fixtures within the upcoming horizon   -> warn
5. most profitable platform               -> good
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Sequence

import structlog

from pitchside.config import InsightKind, settings
from pitchside.engine.margin import (
    CostModel,
    SaleMargin,
    average_margin_pct,
    days_to_event,
    estimate_margins,
)
from pitchside.engine.rollup import UNKNOWN_EVENT_NAME
from pitchside.records import SaleRecord
from pitchside.utils.csv_io import platform_label

logger = structlog.get_logger(__name__)

_ZERO = Decimal("0")
_WHOLE = Decimal("1")
_ONE_DP = Decimal("0.1")


def _money(value: Decimal) -> str:
    return f"£{value.quantize(_WHOLE, rounding=ROUND_HALF_UP):,}"


def _pct(value: Decimal) -> str:
    return f"{value.quantize(_ONE_DP, rounding=ROUND_HALF_UP)}%"


class Insight(NamedTuple):
    kind: InsightKind
    text: str


def _match_name(sale: SaleRecord) -> str:
    return sale.event_name or UNKNOWN_EVENT_NAME


def generate_insights(
    sales: Sequence[SaleRecord],
    now: datetime,
    model: CostModel | None = None,
    limit: int | None = None,
) -> list[Insight]:
    cap = limit if limit is not None else settings.MAX_INSIGHTS
    if not sales:
        return []

    margins = estimate_margins(sales, model)
    by_match: dict[str, list[SaleMargin]] = {}
    for margin in margins:
        by_match.setdefault(_match_name(margin.sale), []).append(margin)

    def revenue_of(items: list[SaleMargin]) -> Decimal:
        return sum((m.revenue for m in items), _ZERO)

    results: list[Insight] = []

    top_name, top_items = max(by_match.items(), key=lambda kv: revenue_of(kv[1]))
    top_margin = average_margin_pct(top_items)
    if top_margin > settings.INSIGHT_HIGH_MARGIN_PCT:
        results.append(Insight(
            InsightKind.GOOD,
            f"{top_name} is your top earner ({_money(revenue_of(top_items))}) with "
            f"{_pct(top_margin)} avg margin. Consider raising prices.",
        ))

    for name, items in by_match.items():
        avg_margin = average_margin_pct(items)
        revenue = revenue_of(items)
        if avg_margin < settings.INSIGHT_LOW_MARGIN_PCT and revenue > settings.INSIGHT_LOW_MARGIN_MIN_REVENUE:
            results.append(Insight(
                InsightKind.WARN,
                f"{name} has good volume ({_money(revenue)}) but low margin "
                f"({_pct(avg_margin)}). Review cost or fees.",
            ))

    recent_units: dict[str, int] = {}
    cutoff = now - timedelta(days=settings.WINDOW_DAYS)
    for sale in sales:
        if sale.sold_at >= cutoff:
            name = _match_name(sale)
            recent_units[name] = recent_units.get(name, 0) + sale.quantity
    if recent_units:
        hot_name, hot_units = max(recent_units.items(), key=lambda kv: kv[1])
        if hot_units >= settings.INSIGHT_SPIKE_MIN_UNITS:
            results.append(Insight(
                InsightKind.INFO,
                f"{hot_name} has a spike in last 7 days ({hot_units} tickets). "
                "High demand, check your listings.",
            ))

    upcoming: list[str] = []
    for sale in sales:
        days = days_to_event(sale)
        if days is not None and 0 <= days <= settings.INSIGHT_UPCOMING_DAYS:
            name = _match_name(sale)
            if name not in upcoming:
                upcoming.append(name)
    if upcoming:
        results.append(Insight(
            InsightKind.WARN,
            f"{', '.join(upcoming[:2])} within {settings.INSIGHT_UPCOMING_DAYS} days. "
            "Ensure fulfillment is on track.",
        ))

    profit_by_platform: dict[str, Decimal] = {}
    for margin in margins:
        platform = margin.sale.platform
        profit_by_platform[platform] = profit_by_platform.get(platform, _ZERO) + margin.profit
    best_platform, best_profit = max(profit_by_platform.items(), key=lambda kv: kv[1])
    results.append(Insight(
        InsightKind.GOOD,
        f"{platform_label(best_platform)} is your most profitable platform "
        f"({_money(best_profit)} gross profit).",
    ))

    logger.debug("insights_generated", count=len(results), cap=cap)
    return results[:cap]
