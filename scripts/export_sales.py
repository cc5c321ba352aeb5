"""
Pitchside — Sales Export Script

Fetches sales for a team (category keyword) and time range from the
configured store and writes them as a CSV with the dashboard's export
columns (#, Platform, Event, Section, Qty, Price, Total, Date).

Usage:
    python scripts/export_sales.py --team "Liverpool FC"
    python scripts/export_sales.py --team England --range 30d --output england.csv
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

# Resolve project root so this script can be run from any working directory
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pitchside.config import settings
from pitchside.engine.query import TimeRange, resolve_time_range
from pitchside.main import configure_logging, open_store
from pitchside.pipeline.ingest import fetch_sales
from pitchside.pipeline.store import SaleFilter, StoreError
from pitchside.utils.csv_io import export_filename, export_sales_csv


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Export ticket sales to CSV.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/export_sales.py --team "Liverpool FC"
  python scripts/export_sales.py --team England --range 30d
  python scripts/export_sales.py --range custom --from 2025-08-01 --to 2025-08-31 --output august.csv
""",
    )
    parser.add_argument(
        "--team",
        type=str,
        default=None,
        help="Category keyword, e.g. 'Liverpool' (default: all categories).",
    )
    parser.add_argument(
        "--range",
        dest="time_range",
        type=TimeRange,
        default=TimeRange.ALL,
        choices=list(TimeRange),
        help="Time range preset: all | today | 7d | 30d | 90d | custom (default: all).",
    )
    parser.add_argument("--from", dest="custom_from", type=date.fromisoformat, default=None)
    parser.add_argument("--to", dest="custom_to", type=date.fromisoformat, default=None)
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output path (default: <team>-sales.csv in the current directory).",
    )
    parser.add_argument(
        "--backend",
        type=str,
        default=None,
        choices=["supabase", "database"],
        help=f"Store backend (default: {settings.STORE_BACKEND}).",
    )
    return parser.parse_args()


async def run_export(args: argparse.Namespace) -> tuple[Path, int]:
    tz = ZoneInfo(settings.DASHBOARD_TIMEZONE)
    sold_from, sold_to = resolve_time_range(
        args.time_range,
        datetime.now(timezone.utc),
        custom_from=args.custom_from,
        custom_to=args.custom_to,
        tz=tz,
    )
    sale_filter = SaleFilter(
        category_keyword=args.team,
        sold_from=sold_from,
        sold_to=sold_to,
        limit=settings.SALES_FETCH_LIMIT,
    )

    async with open_store(args.backend) as store:
        result = await fetch_sales(store, sale_filter)

    output = args.output or Path(export_filename(args.team or "all"))
    output.write_text(export_sales_csv(result.sales, tz=tz), encoding="utf-8")
    return output, len(result.sales)


async def main() -> None:
    args = parse_args()
    configure_logging(log_level=settings.LOG_LEVEL)

    try:
        output, rows = await run_export(args)
    except (OSError, StoreError, ValueError) as e:
        print(f"Export failed: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Wrote {rows} sales to {output}")


if __name__ == "__main__":
    asyncio.run(main())
