"""
Pitchside — Risk Monitor Scorer

Additive per-event score over the recent vs prior 7-day windows:

| Rule                                                    | Points |
|---------------------------------------------------------|--------|
| units down more than 30% (prior > 0)                    | +3     |
| else units down more than 15% (prior > 0)               | +1     |
| avg price down more than 10% (prior avg > 0)            | +2     |
| zero recent units, all-time revenue > 0 (stalled)       | +2     |
| event within 14 days and fewer than 2 recent units      | +3     |

Classification: >=4 high, 2-3 medium, 1 watch, 0 healthy.
"""

from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, NamedTuple

import structlog

from pitchside.config import RiskLevel, settings
from pitchside.engine.windows import EventWindowStats, compute_window_stats
from pitchside.records import SaleRecord

logger = structlog.get_logger(__name__)

_TWO_DP = Decimal("0.01")
_WHOLE = Decimal("1")
_ZERO = Decimal("0")

_LEVEL_ORDER = {RiskLevel.HIGH: 0, RiskLevel.MEDIUM: 1, RiskLevel.WATCH: 2}


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(_TWO_DP, rounding=ROUND_HALF_UP)


def _whole(value: Decimal) -> Decimal:
    return value.quantize(_WHOLE, rounding=ROUND_HALF_UP)


class RiskAssessment(NamedTuple):
    event_key: str
    event_name: str
    event_date: datetime | None
    score: int
    level: RiskLevel
    reasons: tuple[str, ...]
    stats: EventWindowStats


class RiskReport(NamedTuple):
    flagged: list[RiskAssessment]   # high -> medium -> watch
    healthy: list[RiskAssessment]   # revenue descending

    @property
    def high_count(self) -> int:
        return sum(1 for a in self.flagged if a.level is RiskLevel.HIGH)

    @property
    def medium_count(self) -> int:
        return sum(1 for a in self.flagged if a.level is RiskLevel.MEDIUM)

    @property
    def watch_count(self) -> int:
        return sum(1 for a in self.flagged if a.level is RiskLevel.WATCH)


def days_until(event_date: datetime, now: datetime) -> int:
    """Whole days to the event, rounded up. Negative for past events."""
    return math.ceil((event_date - now).total_seconds() / 86400)


def classify_risk(score: int) -> RiskLevel:
    if score >= settings.RISK_HIGH_FLOOR:
        return RiskLevel.HIGH
    if score >= settings.RISK_MEDIUM_FLOOR:
        return RiskLevel.MEDIUM
    if score >= settings.RISK_WATCH_FLOOR:
        return RiskLevel.WATCH
    return RiskLevel.HEALTHY


def score_event(stats: EventWindowStats, now: datetime) -> tuple[int, list[str]]:
    """Return (score, reasons). Reasons are in rule-evaluation order."""
    score = 0
    reasons: list[str] = []

    if stats.units_prior > 0:
        units_pct = stats.units_change_pct
        if units_pct < -settings.RISK_UNITS_DROP_SEVERE_PCT:
            score += settings.RISK_UNITS_DROP_SEVERE_POINTS
            reasons.append(f"Sales down {_whole(abs(units_pct))}% vs prev 7d")
        elif units_pct < -settings.RISK_UNITS_DROP_MILD_PCT:
            score += settings.RISK_UNITS_DROP_MILD_POINTS
            reasons.append(f"Sales slowing ({_whole(units_pct)}%)")

    prior_avg = stats.avg_price_prior
    if prior_avg > _ZERO:
        price_pct = stats.price_change_pct
        if price_pct < -settings.RISK_PRICE_DROP_PCT:
            score += settings.RISK_PRICE_DROP_POINTS
            reasons.append(
                f"Price dropping {_whole(abs(price_pct))}% "
                f"(£{_quantize(prior_avg)} to £{_quantize(stats.avg_price_recent)})"
            )

    if stats.units_recent == 0 and stats.total_revenue > _ZERO:
        score += settings.RISK_STALLED_POINTS
        reasons.append("Zero sales in last 7 days (stalled)")

    if stats.event_date is not None:
        days = days_until(stats.event_date, now)
        if (
            0 < days <= settings.RISK_EVENT_HORIZON_DAYS
            and stats.units_recent < settings.RISK_EVENT_MIN_RECENT_UNITS
        ):
            score += settings.RISK_EVENT_HORIZON_POINTS
            reasons.append(f"Event in {days}d with very low recent sales")

    return score, reasons


def assess_risk(sales: Iterable[SaleRecord], now: datetime) -> RiskReport:
    """Score every event in the snapshot and order the report for display."""
    flagged: list[RiskAssessment] = []
    healthy: list[RiskAssessment] = []

    for stats in compute_window_stats(sales, now).values():
        score, reasons = score_event(stats, now)
        assessment = RiskAssessment(
            event_key=stats.event_key,
            event_name=stats.event_name,
            event_date=stats.event_date,
            score=score,
            level=classify_risk(score),
            reasons=tuple(reasons),
            stats=stats,
        )
        if assessment.level is RiskLevel.HEALTHY:
            healthy.append(assessment)
        else:
            flagged.append(assessment)

    flagged.sort(key=lambda a: _LEVEL_ORDER[a.level])
    healthy.sort(key=lambda a: a.stats.total_revenue, reverse=True)

    report = RiskReport(flagged=flagged, healthy=healthy)
    logger.info(
        "risk_assessed",
        events=len(flagged) + len(healthy),
        high=report.high_count,
        medium=report.medium_count,
        watch=report.watch_count,
    )
    return report
