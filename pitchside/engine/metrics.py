"""
Pitchside — Shared Metric Primitives

Guarded arithmetic used by every view. Nothing here raises on empty input
or a zero denominator.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from statistics import median_high
from typing import Iterable, NamedTuple, Sequence

from pitchside.records import SaleRecord

_TWO_DP = Decimal("0.01")
_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(_TWO_DP, rounding=ROUND_HALF_UP)


def percent_change(current: Decimal | int, previous: Decimal | int) -> Decimal:
    """
    Percent change from previous to current.

    previous == 0 -> 100 if current > 0, else 0. Never NaN or infinite.
    """
    current = Decimal(current)
    previous = Decimal(previous)
    if previous == _ZERO:
        return _HUNDRED if current > _ZERO else _ZERO
    return (current - previous) / previous * _HUNDRED


def safe_divide(numerator: Decimal | int, denominator: Decimal | int) -> Decimal:
    if denominator == 0:
        return _ZERO
    return Decimal(numerator) / Decimal(denominator)


def average_price(revenue: Decimal, units: int) -> Decimal:
    """Volume-weighted average ticket price: revenue / units, or 0."""
    return safe_divide(revenue, units)


class Totals(NamedTuple):
    revenue: Decimal
    units: int
    order_count: int

    @property
    def avg_price(self) -> Decimal:
        return average_price(self.revenue, self.units)


def totals(sales: Iterable[SaleRecord]) -> Totals:
    revenue = _ZERO
    units = 0
    orders = 0
    for sale in sales:
        revenue += sale.revenue
        units += sale.quantity
        orders += 1
    return Totals(revenue=revenue, units=units, order_count=orders)


def in_window(
    sales: Iterable[SaleRecord], start: datetime | None, end: datetime | None
) -> list[SaleRecord]:
    """Sales with start <= sold_at < end. A None bound is open."""
    return [
        sale for sale in sales
        if (start is None or sale.sold_at >= start) and (end is None or sale.sold_at < end)
    ]


def median(values: Sequence[Decimal]) -> Decimal:
    """Upper median: sorted(values)[len // 2]. 0 for an empty sequence."""
    if not values:
        return _ZERO
    return median_high(values)
