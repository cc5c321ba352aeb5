from pitchside.engine.heatmap import heatmap_bubbles
from pitchside.engine.insights import generate_insights
from pitchside.engine.margin import (
    CostModel,
    compare_periods,
    estimate_margin,
    margin_by_days_to_event,
    margin_by_platform,
)
from pitchside.engine.market import leaderboards, market_kpis
from pitchside.engine.metrics import percent_change, totals
from pitchside.engine.query import SaleQuery, SortSpec, paginate, sort_records, toggle_sort
from pitchside.engine.risk import assess_risk, classify_risk
from pitchside.engine.rollup import (
    UNATTACHED_EVENT_KEY,
    rollup_by_event,
    split_by_platform,
    summarize_events,
    top_games,
)
from pitchside.engine.series import bucket_by_day, event_daily_series
from pitchside.engine.velocity import velocity_report

__all__ = [
    "CostModel",
    "SaleQuery",
    "SortSpec",
    "UNATTACHED_EVENT_KEY",
    "assess_risk",
    "bucket_by_day",
    "classify_risk",
    "compare_periods",
    "estimate_margin",
    "event_daily_series",
    "generate_insights",
    "heatmap_bubbles",
    "leaderboards",
    "margin_by_days_to_event",
    "margin_by_platform",
    "market_kpis",
    "paginate",
    "percent_change",
    "rollup_by_event",
    "sort_records",
    "split_by_platform",
    "summarize_events",
    "toggle_sort",
    "top_games",
    "totals",
    "velocity_report",
]
