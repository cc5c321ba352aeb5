"""
Pitchside — CSV Import/Export Formats

Export columns: #, Platform, Event, Section, Qty, Price, Total, Date
  Total = price x qty to 2dp, Date = local "YYYY-MM-DD HH:MM"

Import columns: Event Name, Category, Section, Quantity, Price, Platform, Date
  Category is informational only; events are matched by name.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, NamedTuple
from zoneinfo import ZoneInfo

import structlog

from pitchside.config import settings
from pitchside.records import SaleRecord

logger = structlog.get_logger(__name__)

_TWO_DP = Decimal("0.01")

EXPORT_HEADER = ["#", "Platform", "Event", "Section", "Qty", "Price", "Total", "Date"]
IMPORT_HEADER = ["Event Name", "Category", "Section", "Quantity", "Price", "Platform", "Date"]
EXPORT_DATE_FORMAT = "%Y-%m-%d %H:%M"

_IMPORT_DATE_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
)


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(_TWO_DP, rounding=ROUND_HALF_UP)


def _zone(tz: ZoneInfo | None) -> ZoneInfo:
    return tz if tz is not None else ZoneInfo(settings.DASHBOARD_TIMEZONE)


# ---------------------------------------------------------------------------
# Platforms
# ---------------------------------------------------------------------------

def resolve_platform(value: str | None, aliases: dict[str, str] | None = None) -> str | None:
    """
    Map a short code or canonical platform name (any case) to the canonical
    value. Unknown platforms return None.
    """
    if not value or not value.strip():
        return None
    key = value.strip().upper()
    table = aliases if aliases is not None else settings.PLATFORM_ALIASES
    if key in table:
        return table[key]
    for canonical in settings.PLATFORM_LABELS:
        if canonical.upper() == key:
            return canonical
    return None


def platform_label(platform: str) -> str:
    return settings.PLATFORM_LABELS.get(platform, platform)


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def export_filename(title: str) -> str:
    """'Liverpool FC' -> 'liverpool-fc-sales.csv'"""
    slug = "-".join(title.strip().lower().split())
    return f"{slug}-sales.csv"


def export_sales_csv(sales: Iterable[SaleRecord], tz: ZoneInfo | None = None) -> str:
    zone = _zone(tz)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_HEADER)

    count = 0
    for index, sale in enumerate(sales, start=1):
        writer.writerow([
            index,
            sale.platform,
            sale.event_name or "",
            sale.section or "",
            sale.quantity,
            str(sale.ticket_price),
            str(_quantize(sale.revenue)),
            sale.sold_at.astimezone(zone).strftime(EXPORT_DATE_FORMAT),
        ])
        count = index

    logger.info("sales_exported", rows=count)
    return buffer.getvalue()


class ExportRow(NamedTuple):
    index: int
    platform: str
    event: str
    section: str
    quantity: int
    price: Decimal
    total: Decimal
    date: str


def parse_export_csv(text: str) -> list[ExportRow]:
    """Read back a file written by export_sales_csv."""
    reader = csv.DictReader(io.StringIO(text))
    return [
        ExportRow(
            index=int(row["#"]),
            platform=row["Platform"],
            event=row["Event"],
            section=row["Section"],
            quantity=int(row["Qty"]),
            price=Decimal(row["Price"]),
            total=Decimal(row["Total"]),
            date=row["Date"],
        )
        for row in reader
    ]


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

class ImportRow(NamedTuple):
    line: int
    event_name: str
    category: str
    section: str | None
    quantity: int
    price: Decimal
    platform: str
    sold_at: datetime | None


class MalformedRow(NamedTuple):
    line: int
    reason: str


def parse_import_date(value: str, tz: ZoneInfo | None = None) -> datetime | None:
    """Parse a local date/time string. Blank -> None. Raises ValueError if unparseable."""
    text = value.strip()
    if not text:
        return None
    zone = _zone(tz)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
        for fmt in _IMPORT_DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        if parsed is None:
            raise ValueError(f"Unrecognised date: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)
    return parsed


def _parse_import_row(line: int, cells: list[str], tz: ZoneInfo) -> ImportRow | MalformedRow:
    cells = [c.strip() for c in cells] + [""] * (len(IMPORT_HEADER) - len(cells))
    event_name, category, section, quantity_raw, price_raw, platform_raw, date_raw = cells[:7]

    if not event_name:
        return MalformedRow(line, "missing event name")

    if quantity_raw:
        try:
            quantity = int(quantity_raw)
        except ValueError:
            return MalformedRow(line, f"bad quantity {quantity_raw!r}")
    else:
        quantity = 1
    if quantity < 1:
        return MalformedRow(line, f"bad quantity {quantity_raw!r}")

    try:
        price = Decimal(price_raw.replace(",", "").lstrip("£"))
    except InvalidOperation:
        return MalformedRow(line, f"bad price {price_raw!r}")
    if not price.is_finite() or price < 0:
        return MalformedRow(line, f"bad price {price_raw!r}")

    platform = resolve_platform(platform_raw)
    if platform is None:
        return MalformedRow(line, f"unknown platform {platform_raw!r}")

    try:
        sold_at = parse_import_date(date_raw, tz)
    except ValueError:
        return MalformedRow(line, f"bad date {date_raw!r}")

    return ImportRow(
        line=line,
        event_name=event_name,
        category=category,
        section=section or None,
        quantity=quantity,
        price=price,
        platform=platform,
        sold_at=sold_at,
    )


def parse_import_rows(
    text: str, tz: ZoneInfo | None = None
) -> tuple[list[ImportRow], list[MalformedRow]]:
    """
    Split an import file into parsed rows and malformed rows.

    The first non-blank line is the header and is skipped. Blank lines are
    ignored. Line numbers are 1-based file lines.
    """
    zone = _zone(tz)
    rows: list[ImportRow] = []
    malformed: list[MalformedRow] = []

    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    header_seen = False
    for cells in reader:
        if not any(c.strip() for c in cells):
            continue
        if not header_seen:
            header_seen = True
            continue
        parsed = _parse_import_row(reader.line_num, cells, zone)
        if isinstance(parsed, MalformedRow):
            logger.warning("import_row_malformed", line=parsed.line, reason=parsed.reason)
            malformed.append(parsed)
        else:
            rows.append(parsed)

    return rows, malformed
