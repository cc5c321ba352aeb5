"""
Pitchside — Margin Estimator

Margins are ASSUMED, not measured. Buy-in cost and marketplace fees are
modeled per platform:

    cost   = price x cost_factor(platform) x qty
    fees   = fee_rate(platform) x price x qty
    profit = revenue - cost - fees
    margin = profit / revenue x 100   (0 when revenue is 0)

Defaults: LiveFootballTickets 0.62 / 3.5%, every other platform 0.68 / 4.5%.
Override through settings or by passing a CostModel per call.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, NamedTuple
from zoneinfo import ZoneInfo

from pitchside.config import settings
from pitchside.engine.metrics import percent_change, safe_divide
from pitchside.engine.series import dashboard_zone
from pitchside.records import SaleRecord

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")

# (label, min days, max days inclusive; None = open)
DAYS_TO_EVENT_BUCKETS: tuple[tuple[str, int, int | None], ...] = (
    ("0–3d", 0, 3),
    ("4–7d", 4, 7),
    ("8–14d", 8, 14),
    ("15–30d", 15, 30),
    ("30d+", 31, None),
)


class CostModel(NamedTuple):
    cost_factors: dict[str, Decimal]
    default_cost_factor: Decimal
    fee_rates: dict[str, Decimal]
    default_fee_rate: Decimal

    @classmethod
    def from_settings(cls) -> CostModel:
        return cls(
            cost_factors=dict(settings.PLATFORM_COST_FACTORS),
            default_cost_factor=settings.DEFAULT_COST_FACTOR,
            fee_rates=dict(settings.PLATFORM_FEE_RATES),
            default_fee_rate=settings.DEFAULT_FEE_RATE,
        )

    def cost_factor(self, platform: str) -> Decimal:
        return self.cost_factors.get(platform, self.default_cost_factor)

    def fee_rate(self, platform: str) -> Decimal:
        return self.fee_rates.get(platform, self.default_fee_rate)


class SaleMargin(NamedTuple):
    sale: SaleRecord
    revenue: Decimal
    cost: Decimal
    fees: Decimal
    profit: Decimal
    margin_pct: Decimal


class PlatformMargin(NamedTuple):
    platform: str
    revenue: Decimal
    profit: Decimal
    margin_pct: Decimal


class DaysToEventBucket(NamedTuple):
    label: str
    avg_margin_pct: Decimal
    units: int
    sale_count: int


class PeriodComparison(NamedTuple):
    days: int
    revenue: Decimal
    prior_revenue: Decimal
    profit: Decimal
    prior_profit: Decimal
    units: int
    prior_units: int

    @property
    def revenue_change_pct(self) -> Decimal:
        return percent_change(self.revenue, self.prior_revenue)

    @property
    def profit_change_pct(self) -> Decimal:
        return percent_change(self.profit, self.prior_profit)

    @property
    def units_change_pct(self) -> Decimal:
        return percent_change(self.units, self.prior_units)


def estimate_margin(sale: SaleRecord, model: CostModel | None = None) -> SaleMargin:
    model = model or CostModel.from_settings()
    revenue = sale.revenue
    cost = sale.ticket_price * model.cost_factor(sale.platform) * sale.quantity
    fees = model.fee_rate(sale.platform) * sale.ticket_price * sale.quantity
    profit = revenue - cost - fees
    margin_pct = profit / revenue * _HUNDRED if revenue > _ZERO else _ZERO
    return SaleMargin(
        sale=sale, revenue=revenue, cost=cost, fees=fees, profit=profit, margin_pct=margin_pct
    )


def estimate_margins(
    sales: Iterable[SaleRecord], model: CostModel | None = None
) -> list[SaleMargin]:
    model = model or CostModel.from_settings()
    return [estimate_margin(sale, model) for sale in sales]


def average_margin_pct(margins: Iterable[SaleMargin]) -> Decimal:
    """Unweighted mean of per-sale margin percentages."""
    margins = list(margins)
    return safe_divide(sum((m.margin_pct for m in margins), _ZERO), len(margins))


def margin_by_platform(
    sales: Iterable[SaleRecord], model: CostModel | None = None
) -> list[PlatformMargin]:
    """Revenue-weighted margin per platform, first-seen order."""
    revenue: dict[str, Decimal] = {}
    profit: dict[str, Decimal] = {}
    for margin in estimate_margins(sales, model):
        platform = margin.sale.platform
        revenue[platform] = revenue.get(platform, _ZERO) + margin.revenue
        profit[platform] = profit.get(platform, _ZERO) + margin.profit

    return [
        PlatformMargin(
            platform=platform,
            revenue=revenue[platform],
            profit=profit[platform],
            margin_pct=safe_divide(profit[platform], revenue[platform]) * _HUNDRED,
        )
        for platform in revenue
    ]


def days_to_event(sale: SaleRecord) -> int | None:
    """Whole days between the sale and its event, truncated toward zero."""
    if sale.event is None or sale.event.event_date is None:
        return None
    return int((sale.event.event_date - sale.sold_at).total_seconds() / 86400)


def _bucket_label(days: int) -> str | None:
    for label, low, high in DAYS_TO_EVENT_BUCKETS:
        if days >= low and (high is None or days <= high):
            return label
    return None


def margin_by_days_to_event(
    sales: Iterable[SaleRecord], model: CostModel | None = None
) -> list[DaysToEventBucket]:
    """
    Average margin and units per lead-time bucket. Sales with no event date
    or sold after the event are left out. Every bucket is always returned.
    """
    grouped: dict[str, list[SaleMargin]] = {label: [] for label, _, _ in DAYS_TO_EVENT_BUCKETS}
    for margin in estimate_margins(sales, model):
        days = days_to_event(margin.sale)
        if days is None or days < 0:
            continue
        grouped[_bucket_label(days)].append(margin)

    return [
        DaysToEventBucket(
            label=label,
            avg_margin_pct=average_margin_pct(grouped[label]),
            units=sum(m.sale.quantity for m in grouped[label]),
            sale_count=len(grouped[label]),
        )
        for label, _, _ in DAYS_TO_EVENT_BUCKETS
    ]


def period_start(now: datetime, days: int, tz: ZoneInfo | None = None) -> datetime:
    """Local midnight `days` days before now."""
    local = now.astimezone(dashboard_zone(tz)) - timedelta(days=days)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def compare_periods(
    sales: Iterable[SaleRecord],
    now: datetime,
    days: int,
    model: CostModel | None = None,
    tz: ZoneInfo | None = None,
) -> PeriodComparison:
    """
    Current period [start of day now - days, now] vs the preceding period
    [start of day now - 2 x days, current start).
    """
    if days < 1:
        raise ValueError("days must be positive")
    current_start = period_start(now, days, tz)
    prior_start = period_start(now, days * 2, tz)

    revenue = prior_revenue = profit = prior_profit = _ZERO
    units = prior_units = 0
    for margin in estimate_margins(sales, model):
        sold_at = margin.sale.sold_at
        if current_start <= sold_at <= now:
            revenue += margin.revenue
            profit += margin.profit
            units += margin.sale.quantity
        elif prior_start <= sold_at < current_start:
            prior_revenue += margin.revenue
            prior_profit += margin.profit
            prior_units += margin.sale.quantity

    return PeriodComparison(
        days=days,
        revenue=revenue,
        prior_revenue=prior_revenue,
        profit=profit,
        prior_profit=prior_profit,
        units=units,
        prior_units=prior_units,
    )
