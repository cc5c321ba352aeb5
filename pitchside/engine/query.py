"""
Pitchside — Filter, Sort & Paginate

Client-side table controls over a snapshot:
- SaleQuery: conjunctive predicate filter (every set field must match)
- SortSpec: stable multi-key sort with per-key direction; missing values
  always sort last regardless of direction
- toggle_sort: same key flips direction, a new key starts descending
- paginate: fixed page size, page clamped into range
- resolve_time_range: the all / today / 7d / 30d / 90d / custom presets
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Generic, Iterable, NamedTuple, Sequence, TypeVar
from zoneinfo import ZoneInfo

from pydantic import BaseModel, model_validator

from pitchside.engine.margin import estimate_margin
from pitchside.engine.rollup import EventSummary
from pitchside.engine.series import dashboard_zone
from pitchside.records import SaleRecord
from pitchside.utils.team_identity import is_home_fixture, round_group

T = TypeVar("T")


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class TimeRange(str, Enum):
    ALL = "all"
    TODAY = "today"
    LAST_7D = "7d"
    LAST_30D = "30d"
    LAST_90D = "90d"
    CUSTOM = "custom"


class HomeAway(str, Enum):
    ALL = "all"
    HOME = "home"
    AWAY = "away"


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------

class SaleQuery(BaseModel):
    """Table filter. Unset fields do not constrain."""

    platform: str | None = None
    event_id: str | None = None
    section: str | None = None
    search: str | None = None
    min_quantity: int | None = None
    max_quantity: int | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    sold_from: datetime | None = None
    sold_to: datetime | None = None

    @model_validator(mode="after")
    def check_ranges(self) -> SaleQuery:
        if (
            self.min_quantity is not None
            and self.max_quantity is not None
            and self.min_quantity > self.max_quantity
        ):
            raise ValueError("min_quantity must not exceed max_quantity")
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("min_price must not exceed max_price")
        if self.sold_from and self.sold_to and self.sold_from > self.sold_to:
            raise ValueError("sold_from must not be after sold_to")
        return self

    def matches(self, sale: SaleRecord) -> bool:
        if self.platform is not None and sale.platform != self.platform:
            return False
        if self.event_id is not None and sale.event_id != self.event_id:
            return False
        if self.section and self.section.strip():
            needle = self.section.strip().lower()
            if not sale.section or needle not in sale.section.lower():
                return False
        if self.search:
            needle = self.search.lower()
            haystacks = (sale.event_name, sale.section)
            if not any(h and needle in h.lower() for h in haystacks):
                return False
        if self.min_quantity is not None and sale.quantity < self.min_quantity:
            return False
        if self.max_quantity is not None and sale.quantity > self.max_quantity:
            return False
        if self.min_price is not None and sale.ticket_price < self.min_price:
            return False
        if self.max_price is not None and sale.ticket_price > self.max_price:
            return False
        if self.sold_from is not None and sale.sold_at < self.sold_from:
            return False
        if self.sold_to is not None and sale.sold_at > self.sold_to:
            return False
        return True

    def apply(self, sales: Iterable[SaleRecord]) -> list[SaleRecord]:
        return [sale for sale in sales if self.matches(sale)]

    @property
    def active_filter_count(self) -> int:
        """Advanced filters in use (quantity, price, section, time)."""
        fields = (
            self.min_quantity,
            self.max_quantity,
            self.min_price,
            self.max_price,
            self.section.strip() if self.section else None,
            self.sold_from or self.sold_to,
        )
        return sum(1 for f in fields if f not in (None, ""))


def filter_by_team(sales: Iterable[SaleRecord], keyword: str) -> list[SaleRecord]:
    """Sales whose category name or event name contains the keyword."""
    needle = keyword.lower()
    result = []
    for sale in sales:
        event = sale.event
        if event is None:
            continue
        if (event.category_name and needle in event.category_name.lower()) or needle in event.name.lower():
            result.append(sale)
    return result


def filter_events(
    summaries: Iterable[EventSummary],
    search: str | None = None,
    home_team: str | None = None,
    home_away: HomeAway = HomeAway.ALL,
    round_filter: str | None = None,
) -> list[EventSummary]:
    """
    Events grid filter.

    round_filter matches either the grouped round ('Group Stage') or the
    exact round label ('Group B').
    """
    result = []
    for summary in summaries:
        event = summary.event
        if search and search.lower() not in event.name.lower():
            continue
        if home_team and home_away is not HomeAway.ALL:
            home = is_home_fixture(event.name, home_team)
            if home_away is HomeAway.HOME and not home:
                continue
            if home_away is HomeAway.AWAY and home:
                continue
        if round_filter and round_group(event.round) != round_filter and event.round != round_filter:
            continue
        result.append(summary)
    return result


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------

def _revenue(sale: SaleRecord) -> Decimal:
    return sale.revenue


def _gross_profit(sale: SaleRecord) -> Decimal:
    return estimate_margin(sale).profit


def _margin_pct(sale: SaleRecord) -> Decimal:
    return estimate_margin(sale).margin_pct


def _event_date(sale: SaleRecord) -> datetime | None:
    return sale.event.event_date if sale.event is not None else None


SALE_SORT_KEYS: dict[str, Callable[[SaleRecord], Any]] = {
    "sold_at": lambda s: s.sold_at,
    "ticket_price": lambda s: s.ticket_price,
    "quantity": lambda s: s.quantity,
    "revenue": _revenue,
    "gross_profit": _gross_profit,
    "margin_pct": _margin_pct,
    "platform": lambda s: s.platform,
    "section": lambda s: s.section,
    "event_name": lambda s: s.event_name,
    "event_date": _event_date,
}


class SortKey(NamedTuple):
    field: str
    direction: SortDirection = SortDirection.DESC


class SortSpec(NamedTuple):
    keys: tuple[SortKey, ...] = (SortKey("sold_at"),)

    @property
    def primary(self) -> SortKey:
        return self.keys[0]


def sort_records(
    items: Iterable[T],
    spec: SortSpec,
    extractors: dict[str, Callable[[T], Any]] | None = None,
) -> list[T]:
    """
    Stable multi-key sort. Applies keys from least to most significant, each
    a stable pass, so ties on every key keep input order. None values sort
    last in both directions.
    """
    table = extractors if extractors is not None else SALE_SORT_KEYS
    result = list(items)
    for key in reversed(spec.keys):
        if key.field not in table:
            raise ValueError(f"Unknown sort field: {key.field}")
        extract = table[key.field]
        present = [item for item in result if extract(item) is not None]
        missing = [item for item in result if extract(item) is None]
        present.sort(key=extract, reverse=key.direction is SortDirection.DESC)
        result = present + missing
    return result


def toggle_sort(current: SortSpec, field: str) -> SortSpec:
    """Same primary field flips direction; a new field becomes primary, descending."""
    primary = current.primary
    if primary.field == field:
        flipped = SortDirection.ASC if primary.direction is SortDirection.DESC else SortDirection.DESC
        return SortSpec(keys=(SortKey(field, flipped),) + current.keys[1:])
    rest = tuple(k for k in current.keys if k.field != field)
    return SortSpec(keys=(SortKey(field, SortDirection.DESC),) + rest)


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

class Page(NamedTuple, Generic[T]):
    items: list[T]
    page: int
    page_size: int
    total_items: int
    total_pages: int

    @property
    def first_row_number(self) -> int:
        return (self.page - 1) * self.page_size + 1

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def paginate(items: Sequence[T], page: int, page_size: int) -> Page[T]:
    """Slice one page. Out-of-range page numbers clamp to [1, max(total_pages, 1)]."""
    if page_size < 1:
        raise ValueError("page_size must be positive")
    total = len(items)
    total_pages = math.ceil(total / page_size)
    current = min(max(page, 1), max(total_pages, 1))
    start = (current - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        page=current,
        page_size=page_size,
        total_items=total,
        total_pages=total_pages,
    )


# ---------------------------------------------------------------------------
# Time range presets
# ---------------------------------------------------------------------------

def _start_of_day(day: date, zone: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=zone)


def _end_of_day(day: date, zone: ZoneInfo) -> datetime:
    return datetime.combine(day, time.max, tzinfo=zone)


def _months_back(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    # Clamp to the last day of the target month
    next_month = date(year + (month // 12), month % 12 + 1, 1)
    last_day = (next_month - timedelta(days=1)).day
    return date(year, month, min(day.day, last_day))


def resolve_time_range(
    preset: TimeRange,
    now: datetime,
    custom_from: date | None = None,
    custom_to: date | None = None,
    tz: ZoneInfo | None = None,
) -> tuple[datetime | None, datetime | None]:
    """
    (from, to) bounds for a preset, either may be None (open):
    - today: local start of day to local end of day
    - 7d / 30d: local start of day N days ago, open end
    - 90d: local start of day three calendar months ago, open end
    - custom: start of custom_from, end of custom_to
    """
    zone = dashboard_zone(tz)
    today = now.astimezone(zone).date()

    if preset is TimeRange.TODAY:
        return _start_of_day(today, zone), _end_of_day(today, zone)
    if preset is TimeRange.LAST_7D:
        return _start_of_day(today - timedelta(days=7), zone), None
    if preset is TimeRange.LAST_30D:
        return _start_of_day(today - timedelta(days=30), zone), None
    if preset is TimeRange.LAST_90D:
        return _start_of_day(_months_back(today, 3), zone), None
    if preset is TimeRange.CUSTOM:
        start = _start_of_day(custom_from, zone) if custom_from else None
        end = _end_of_day(custom_to, zone) if custom_to else None
        if start and end and start > end:
            raise ValueError("custom_from must not be after custom_to")
        return start, end
    return None, None


def query_for_range(
    preset: TimeRange,
    now: datetime,
    base: SaleQuery | None = None,
    custom_from: date | None = None,
    custom_to: date | None = None,
    tz: ZoneInfo | None = None,
) -> SaleQuery:
    """Copy of `base` with sold_from / sold_to set from a preset."""
    start, end = resolve_time_range(preset, now, custom_from, custom_to, tz)
    base = base or SaleQuery()
    return base.model_copy(update={"sold_from": start, "sold_to": end})


