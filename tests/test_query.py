"""Tests for table filtering, sorting, pagination and time-range presets."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from pitchside.engine.query import (
    HomeAway,
    SaleQuery,
    SortDirection,
    SortKey,
    SortSpec,
    TimeRange,
    filter_by_team,
    filter_events,
    paginate,
    query_for_range,
    resolve_time_range,
    sort_records,
    toggle_sort,
)
from pitchside.engine.rollup import summarize_events

UTC = timezone.utc
LONDON = ZoneInfo("Europe/London")


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def test_sale_query_is_conjunctive(sale_factory) -> None:
    keep = sale_factory("80", 2, "Tixstock", section="Kop Upper")
    wrong_platform = sale_factory("80", 2, "Fanpass", section="Kop Upper")
    too_dear = sale_factory("180", 2, "Tixstock", section="Kop Upper")
    wrong_section = sale_factory("80", 2, "Tixstock", section="Main Stand")

    query = SaleQuery(platform="Tixstock", section="kop", max_price=Decimal("100"))

    assert query.apply([keep, wrong_platform, too_dear, wrong_section]) == [keep]
    assert query.active_filter_count == 2


def test_sale_query_search_matches_event_or_section(sale_factory, event_factory) -> None:
    derby = sale_factory(event=event_factory(name="Liverpool vs Everton"), section="Anfield Road")
    other = sale_factory(event=event_factory(name="Arsenal vs Spurs"), section="Clock End")

    assert SaleQuery(search="everton").apply([derby, other]) == [derby]
    assert SaleQuery(search="clock").apply([derby, other]) == [other]
    assert SaleQuery().apply([derby, other]) == [derby, other]


def test_sale_query_bounds_are_inclusive(sale_factory) -> None:
    edge = sale_factory("50", 3, sold_at=datetime(2025, 1, 1, tzinfo=UTC))
    query = SaleQuery(
        min_quantity=3,
        max_quantity=3,
        min_price=Decimal("50"),
        max_price=Decimal("50"),
        sold_from=datetime(2025, 1, 1, tzinfo=UTC),
        sold_to=datetime(2025, 1, 1, tzinfo=UTC),
    )
    assert query.matches(edge)


def test_sale_query_rejects_inverted_ranges() -> None:
    with pytest.raises(ValidationError):
        SaleQuery(min_quantity=5, max_quantity=1)
    with pytest.raises(ValidationError):
        SaleQuery(min_price=Decimal("10"), max_price=Decimal("1"))


def test_filter_by_team(sale_factory, event_factory) -> None:
    club = sale_factory(event=event_factory(name="Liverpool vs Wolves", category_name="Liverpool FC"))
    nation = sale_factory(event=event_factory(name="England vs Wales", category_name="Internationals"))
    loose = sale_factory(attach=False)

    assert filter_by_team([club, nation, loose], "liverpool") == [club]
    assert filter_by_team([club, nation, loose], "wales") == [nation]


def test_filter_events_home_away_and_round(event_factory) -> None:
    home = event_factory("evt-1", "England vs Wales", round="Group B")
    away = event_factory("evt-2", "France vs England", round="Quarter-Final")
    neutral = event_factory("evt-3", "Spain vs Italy", round=None)
    summaries = summarize_events([home, away, neutral], [])

    def ids(result):
        return [s.event.id for s in result]

    assert ids(filter_events(summaries, home_team="England", home_away=HomeAway.HOME)) == ["evt-1"]
    assert ids(filter_events(summaries, home_team="England", home_away=HomeAway.AWAY)) == ["evt-2", "evt-3"]
    assert ids(filter_events(summaries, round_filter="Group Stage")) == ["evt-1"]
    assert ids(filter_events(summaries, round_filter="Other")) == ["evt-3"]
    assert ids(filter_events(summaries, search="france")) == ["evt-2"]


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def test_sort_records_multi_key_is_stable(sale_factory) -> None:
    a = sale_factory("50", 2, "Tixstock")
    b = sale_factory("80", 1, "Fanpass")
    c = sale_factory("50", 1, "Fanpass")
    d = sale_factory("50", 2, "Fanpass")

    spec = SortSpec(keys=(SortKey("ticket_price", SortDirection.ASC), SortKey("quantity")))

    assert sort_records([a, b, c, d], spec) == [a, d, c, b]


def test_sort_records_missing_values_last(sale_factory) -> None:
    with_section = sale_factory(section="B")
    without = sale_factory(section=None)
    other = sale_factory(section="A")

    for direction in SortDirection:
        result = sort_records([without, with_section, other], SortSpec((SortKey("section", direction),)))
        assert result[-1] is without


def test_sort_records_unknown_field(sale_factory) -> None:
    with pytest.raises(ValueError):
        sort_records([sale_factory()], SortSpec((SortKey("colour"),)))


def test_toggle_sort() -> None:
    spec = SortSpec()
    assert spec.primary == SortKey("sold_at", SortDirection.DESC)

    flipped = toggle_sort(spec, "sold_at")
    assert flipped.primary.direction is SortDirection.ASC
    assert toggle_sort(flipped, "sold_at").primary.direction is SortDirection.DESC

    switched = toggle_sort(flipped, "revenue")
    assert switched.primary == SortKey("revenue", SortDirection.DESC)
    assert switched.keys[1] == SortKey("sold_at", SortDirection.ASC)


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


def test_paginate() -> None:
    items = list(range(1, 61))

    page = paginate(items, 3, 25)
    assert page.items == list(range(51, 61))
    assert page.total_pages == 3
    assert page.first_row_number == 51
    assert page.has_previous and not page.has_next


def test_paginate_clamps_out_of_range_pages() -> None:
    items = list(range(10))
    assert paginate(items, 99, 4).page == 3
    assert paginate(items, 0, 4).page == 1
    empty = paginate([], 5, 25)
    assert empty.page == 1
    assert empty.items == []
    assert empty.total_pages == 0
    with pytest.raises(ValueError):
        paginate(items, 1, 0)


# ---------------------------------------------------------------------------
# Time range presets
# ---------------------------------------------------------------------------


def test_resolve_time_range_presets() -> None:
    now = datetime(2025, 5, 31, 13, 0, tzinfo=UTC)

    start, end = resolve_time_range(TimeRange.TODAY, now, tz=LONDON)
    assert start == datetime(2025, 5, 31, 0, 0, tzinfo=LONDON)
    assert end.date() == date(2025, 5, 31)
    assert (end.hour, end.minute) == (23, 59)

    start, end = resolve_time_range(TimeRange.LAST_7D, now, tz=LONDON)
    assert start == datetime(2025, 5, 24, tzinfo=LONDON)
    assert end is None

    start, _ = resolve_time_range(TimeRange.LAST_90D, now, tz=LONDON)
    assert start == datetime(2025, 2, 28, tzinfo=LONDON)

    assert resolve_time_range(TimeRange.ALL, now) == (None, None)


def test_resolve_custom_range() -> None:
    now = datetime(2025, 5, 31, 13, 0, tzinfo=UTC)
    start, end = resolve_time_range(
        TimeRange.CUSTOM, now, custom_from=date(2025, 5, 1), custom_to=date(2025, 5, 3), tz=UTC
    )
    assert start == datetime(2025, 5, 1, tzinfo=UTC)
    assert end.date() == date(2025, 5, 3)

    with pytest.raises(ValueError):
        resolve_time_range(
            TimeRange.CUSTOM, now, custom_from=date(2025, 5, 3), custom_to=date(2025, 5, 1)
        )


def test_query_for_range_keeps_other_filters() -> None:
    now = datetime(2025, 5, 31, 13, 0, tzinfo=UTC)
    query = query_for_range(TimeRange.LAST_30D, now, base=SaleQuery(platform="Tixstock"), tz=UTC)
    assert query.platform == "Tixstock"
    assert query.sold_from == datetime(2025, 5, 1, tzinfo=UTC)
    assert query.sold_to is None
