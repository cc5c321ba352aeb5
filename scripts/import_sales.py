"""
Pitchside — Bulk Sale Import Script

Loads a CSV of sales (Event Name, Category, Section, Quantity, Price,
Platform, Date) into the configured store. Rows whose event name does not
match an existing event, and malformed rows, are skipped and counted.

Usage:
    python scripts/import_sales.py sales.csv
    python scripts/import_sales.py sales.csv --backend database --timezone Europe/London
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo

# Resolve project root so this script can be run from any working directory
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pitchside.config import settings
from pitchside.main import configure_logging, open_store
from pitchside.pipeline.importer import ImportReport, import_sales_csv
from pitchside.pipeline.store import StoreError


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Import ticket sales from a CSV file.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/import_sales.py sales.csv
  python scripts/import_sales.py sales.csv --backend database
  python scripts/import_sales.py sales.csv --timezone UTC
""",
    )
    parser.add_argument("path", type=Path, help="CSV file to import.")
    parser.add_argument(
        "--backend",
        type=str,
        default=None,
        choices=["supabase", "database"],
        help=f"Store backend (default: {settings.STORE_BACKEND}).",
    )
    parser.add_argument(
        "--timezone",
        type=str,
        default=settings.DASHBOARD_TIMEZONE,
        help="Zone for dates without an offset (default: %(default)s).",
    )
    return parser.parse_args()


async def run_import(path: Path, backend: str | None, tz: ZoneInfo) -> ImportReport:
    text = path.read_text(encoding="utf-8-sig")
    async with open_store(backend) as store:
        return await import_sales_csv(store, text, tz=tz)


async def main() -> None:
    args = parse_args()
    configure_logging(log_level=settings.LOG_LEVEL)

    print(f"Importing sales from {args.path}")

    try:
        report = await run_import(args.path, args.backend, ZoneInfo(args.timezone))
    except (OSError, StoreError, ValueError) as e:
        print(f"Import failed: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Imported {report.imported} of {report.total_rows} rows.")
    if report.skipped:
        print(f"  unmatched events = {report.unmatched}")
        print(f"  malformed rows   = {report.malformed}")


if __name__ == "__main__":
    asyncio.run(main())
