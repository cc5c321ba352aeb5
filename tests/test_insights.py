"""Tests for the insight generator."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from pitchside.config import InsightKind
from pitchside.engine.insights import generate_insights
from pitchside.engine.margin import CostModel


def test_generate_insights_rule_order(now, sale_factory, event_factory) -> None:
    event = event_factory("evt-1", "Liverpool vs Arsenal", event_date=now + timedelta(days=5))
    sales = [sale_factory("100", 4, "LiveFootballTickets", now - timedelta(days=1), event=event)]

    insights = generate_insights(sales, now)

    assert [i.kind for i in insights] == [
        InsightKind.GOOD,
        InsightKind.INFO,
        InsightKind.WARN,
        InsightKind.GOOD,
    ]
    assert insights[0].text == (
        "Liverpool vs Arsenal is your top earner (£400) with 34.5% avg margin. "
        "Consider raising prices."
    )
    assert "spike in last 7 days (4 tickets)" in insights[1].text
    assert insights[2].text.startswith("Liverpool vs Arsenal within 14 days")
    assert insights[3].text == "LFT is your most profitable platform (£138 gross profit)."


def test_generate_insights_low_margin_warning(now, sale_factory, event_factory) -> None:
    model = CostModel(
        cost_factors={},
        default_cost_factor=Decimal("0.9"),
        fee_rates={},
        default_fee_rate=Decimal("0"),
    )
    event = event_factory("evt-1", "Chelsea vs Spurs")
    sales = [sale_factory("500", 1, "Tixstock", now - timedelta(days=30), event=event)]

    insights = generate_insights(sales, now, model=model)

    assert insights[0].kind is InsightKind.WARN
    assert insights[0].text == (
        "Chelsea vs Spurs has good volume (£500) but low margin (10.0%). Review cost or fees."
    )
    assert insights[-1].text.startswith("Tixstock is your most profitable platform")


def test_generate_insights_cap_and_empty(now, sale_factory, event_factory) -> None:
    event = event_factory("evt-1", "Liverpool vs Arsenal", event_date=now + timedelta(days=5))
    sales = [sale_factory("100", 4, "LiveFootballTickets", now - timedelta(days=1), event=event)]

    assert len(generate_insights(sales, now, limit=2)) == 2
    assert generate_insights([], now) == []


def test_upcoming_lists_at_most_two_fixtures(now, sale_factory, event_factory) -> None:
    sales = [
        sale_factory(
            "20", 1, "Tixstock", now - timedelta(days=20),
            event=event_factory(f"evt-{i}", f"Match {i}", event_date=now - timedelta(days=15)),
        )
        for i in range(3)
    ]

    insights = generate_insights(sales, now)
    upcoming = [i for i in insights if "within 14 days" in i.text]

    assert len(upcoming) == 1
    assert upcoming[0].text.startswith("Match 0, Match 1 within")
