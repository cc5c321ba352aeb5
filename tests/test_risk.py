"""Tests for the risk monitor scorer and its window stats."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from pitchside.config import RiskLevel
from pitchside.engine.risk import assess_risk, classify_risk, days_until, score_event
from pitchside.engine.windows import compute_window_stats, window_bounds


def _spread(sale_factory, event, price, units, start, step=timedelta(hours=6)):
    """One-ticket sales starting at `start`, one every `step`."""
    return [
        sale_factory(price, 1, event=event, sold_at=start + step * i)
        for i in range(units)
    ]


def test_window_bounds_are_exact_offsets(now) -> None:
    bounds = window_bounds(now)
    assert bounds.recent_start == now - timedelta(days=7)
    assert bounds.prior_start == now - timedelta(days=14)
    with pytest.raises(ValueError):
        window_bounds(now, 0)


def test_forty_percent_drop_scores_medium(now, sale_factory, event_factory) -> None:
    event = event_factory("evt-1", "Liverpool vs Chelsea")
    sales = (
        _spread(sale_factory, event, "100", 10, now - timedelta(days=13))
        + _spread(sale_factory, event, "100", 6, now - timedelta(days=6))
    )

    stats = compute_window_stats(sales, now)["evt-1"]
    assert stats.units_prior == 10
    assert stats.units_recent == 6
    assert stats.avg_price_prior == stats.avg_price_recent == Decimal("100")

    score, reasons = score_event(stats, now)
    assert score == 3
    assert reasons == ["Sales down 40% vs prev 7d"]
    assert classify_risk(score) is RiskLevel.MEDIUM


def test_stalled_event_without_prior_baseline(now, sale_factory, event_factory) -> None:
    """Old revenue, nothing in either window: only the stalled rule fires."""
    event = event_factory("evt-1", "Liverpool vs Chelsea")
    sales = [sale_factory("75", 2, event=event, sold_at=now - timedelta(days=30))]

    stats = compute_window_stats(sales, now)["evt-1"]
    score, reasons = score_event(stats, now)

    assert stats.units_prior == 0
    assert stats.units_recent == 0
    assert score == 2
    assert reasons == ["Zero sales in last 7 days (stalled)"]
    assert classify_risk(score) is RiskLevel.MEDIUM


def test_drop_and_price_fall_scores_high(now, sale_factory, event_factory) -> None:
    event = event_factory("evt-1", "Arsenal vs Spurs")
    sales = (
        _spread(sale_factory, event, "100", 10, now - timedelta(days=13))
        + _spread(sale_factory, event, "80", 5, now - timedelta(days=6))
    )

    report = assess_risk(sales, now)

    assert report.high_count == 1
    flagged = report.flagged[0]
    assert flagged.score == 5
    assert flagged.reasons == (
        "Sales down 50% vs prev 7d",
        "Price dropping 20% (£100.00 to £80.00)",
    )


def test_mild_slowdown_is_watch(now, sale_factory, event_factory) -> None:
    event = event_factory("evt-1", "Arsenal vs Spurs")
    sales = (
        _spread(sale_factory, event, "100", 10, now - timedelta(days=13))
        + _spread(sale_factory, event, "100", 8, now - timedelta(days=6))
    )

    stats = compute_window_stats(sales, now)["evt-1"]
    score, reasons = score_event(stats, now)

    assert score == 1
    assert reasons == ["Sales slowing (-20%)"]
    assert classify_risk(score) is RiskLevel.WATCH


def test_imminent_event_with_low_recent_sales(now, sale_factory, event_factory) -> None:
    event = event_factory("evt-1", "England vs Wales", event_date=now + timedelta(days=5))
    sales = [
        sale_factory("60", 1, event=event, sold_at=now - timedelta(days=10)),
        sale_factory("60", 1, event=event, sold_at=now - timedelta(days=2)),
    ]

    stats = compute_window_stats(sales, now)["evt-1"]
    score, reasons = score_event(stats, now)

    assert days_until(event.event_date, now) == 5
    assert score == 3
    assert reasons == ["Event in 5d with very low recent sales"]


def test_classification_partitions_scores() -> None:
    levels = {score: classify_risk(score) for score in range(0, 11)}
    assert levels[0] is RiskLevel.HEALTHY
    assert levels[1] is RiskLevel.WATCH
    assert levels[2] is levels[3] is RiskLevel.MEDIUM
    assert all(levels[s] is RiskLevel.HIGH for s in range(4, 11))


def test_report_partitions_and_orders_events(now, sale_factory, event_factory) -> None:
    stalled = event_factory("evt-stalled", "Stalled Match")
    steady = event_factory("evt-steady", "Steady Match")
    big = event_factory("evt-big", "Big Match")
    falling = event_factory("evt-falling", "Falling Match")

    sales = (
        [sale_factory("50", 1, event=stalled, sold_at=now - timedelta(days=40))]
        + _spread(sale_factory, steady, "100", 4, now - timedelta(days=13))
        + _spread(sale_factory, steady, "100", 4, now - timedelta(days=6))
        + _spread(sale_factory, big, "300", 4, now - timedelta(days=13))
        + _spread(sale_factory, big, "300", 5, now - timedelta(days=6))
        + _spread(sale_factory, falling, "100", 10, now - timedelta(days=13))
        + _spread(sale_factory, falling, "50", 2, now - timedelta(days=6))
    )

    report = assess_risk(sales, now)
    keys_flagged = [a.event_key for a in report.flagged]
    keys_healthy = [a.event_key for a in report.healthy]

    assert set(keys_flagged) | set(keys_healthy) == {
        "evt-stalled", "evt-steady", "evt-big", "evt-falling",
    }
    assert not set(keys_flagged) & set(keys_healthy)
    assert keys_flagged == ["evt-falling", "evt-stalled"]
    assert keys_healthy == ["evt-big", "evt-steady"]
    assert all(a.score == 0 for a in report.healthy)
