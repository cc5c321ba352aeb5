"""Tests for shared metric primitives (percent change, totals, windows)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from pitchside.engine.metrics import (
    average_price,
    in_window,
    median,
    percent_change,
    safe_divide,
    totals,
)


def test_percent_change_regular() -> None:
    assert percent_change(6, 10) == Decimal("-40")
    assert percent_change(Decimal("150"), Decimal("100")) == Decimal("50")


def test_percent_change_zero_previous_uses_sentinel() -> None:
    """No baseline: any growth shows as 100%, nothing shows as 0%."""
    assert percent_change(5, 0) == Decimal("100")
    assert percent_change(0, 0) == Decimal("0")


def test_safe_divide_zero_denominator() -> None:
    assert safe_divide(Decimal("10"), 0) == Decimal("0")
    assert safe_divide(10, 4) == Decimal("2.5")


def test_average_price_is_volume_weighted(sale_factory) -> None:
    sales = [sale_factory("100", 3), sale_factory("40", 1)]
    result = totals(sales)

    assert result.revenue == Decimal("340")
    assert result.units == 4
    assert result.order_count == 2
    assert result.avg_price == Decimal("85")
    assert average_price(Decimal("0"), 0) == Decimal("0")


def test_totals_empty() -> None:
    result = totals([])
    assert result.revenue == Decimal("0")
    assert result.units == 0
    assert result.avg_price == Decimal("0")


def test_in_window_is_half_open(sale_factory) -> None:
    start = datetime(2025, 1, 10, tzinfo=timezone.utc)
    end = start + timedelta(days=1)
    at_start = sale_factory(sold_at=start)
    at_end = sale_factory(sold_at=end)
    inside = sale_factory(sold_at=start + timedelta(hours=5))

    result = in_window([at_start, at_end, inside], start, end)

    assert at_start in result
    assert inside in result
    assert at_end not in result
    assert in_window([at_end], None, None) == [at_end]


def test_median_is_upper_median() -> None:
    assert median([]) == Decimal("0")
    assert median([Decimal("3"), Decimal("1"), Decimal("2")]) == Decimal("2")
    assert median([Decimal("4"), Decimal("1"), Decimal("3"), Decimal("2")]) == Decimal("3")
