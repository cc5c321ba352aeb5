"""
Pitchside — Operational Health Checks

Runs the store checks behind the health page and records the outcome:
- database: ping with round-trip latency
- data: sales / events counts, sales with no linked event -> warn

Each check's latest status is upserted into service_health; every console
line is appended to health_logs. If the store is down, recording fails
quietly (logged) and the in-memory report is still returned.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import NamedTuple

import structlog

from pitchside.config import LogLevel, ServiceStatus
from pitchside.pipeline.store import SaleStore, StoreError

logger = structlog.get_logger(__name__)

SERVICE_DATABASE = "database"
SERVICE_DATA = "data_integrity"

OVERALL_HEALTHY = "Healthy"
OVERALL_WARNING = "Warning"
OVERALL_UNHEALTHY = "Unhealthy"
OVERALL_CHECKING = "Checking"


class CheckResult(NamedTuple):
    service_name: str
    label: str
    status: ServiceStatus
    detail: str


class LogLine(NamedTuple):
    at: datetime
    level: LogLevel
    message: str


class HealthReport(NamedTuple):
    checks: list[CheckResult]
    logs: list[LogLine]
    checked_at: datetime

    @property
    def overall(self) -> str:
        statuses = [c.status for c in self.checks]
        if statuses and all(s is ServiceStatus.OK for s in statuses):
            return OVERALL_HEALTHY
        if any(s is ServiceStatus.ERROR for s in statuses):
            return OVERALL_UNHEALTHY
        if any(s is ServiceStatus.WARN for s in statuses):
            return OVERALL_WARNING
        return OVERALL_CHECKING


class _Console:
    def __init__(self) -> None:
        self.lines: list[LogLine] = []

    def add(self, level: LogLevel, message: str) -> None:
        self.lines.append(LogLine(at=datetime.now(timezone.utc), level=level, message=message))
        logger.info("health_console", level=level.value, message=message)


async def check_database(store: SaleStore, console: _Console) -> CheckResult:
    console.add(LogLevel.INFO, "Checking database connection")
    started = time.perf_counter()
    try:
        await store.ping()
    except StoreError:
        console.add(LogLevel.ERROR, "Database connection failed")
        return CheckResult(SERVICE_DATABASE, "Database Connection", ServiceStatus.ERROR, "Connection failed")

    elapsed_ms = round((time.perf_counter() - started) * 1000)
    console.add(LogLevel.INFO, f"Database responded in {elapsed_ms}ms")
    return CheckResult(
        SERVICE_DATABASE, "Database Connection", ServiceStatus.OK, f"Connected ({elapsed_ms}ms)"
    )


async def check_data_integrity(store: SaleStore, console: _Console) -> CheckResult:
    console.add(LogLevel.INFO, "Checking data integrity")
    try:
        sales_count = await store.count_rows("sales")
        events_count = await store.count_rows("events")
        orphaned = await store.count_rows("sales", null_column="event_id")
    except StoreError:
        console.add(LogLevel.ERROR, "Data integrity check failed")
        return CheckResult(SERVICE_DATA, "Data Integrity", ServiceStatus.ERROR, "Check failed")

    console.add(LogLevel.INFO, f"Found {sales_count} sales across {events_count} events")
    if orphaned > 0:
        console.add(LogLevel.WARN, f"{orphaned} sales have no linked event")
        return CheckResult(
            SERVICE_DATA, "Data Integrity", ServiceStatus.WARN, f"{orphaned} orphaned sales detected"
        )
    console.add(LogLevel.INFO, "All references valid")
    return CheckResult(SERVICE_DATA, "Data Integrity", ServiceStatus.OK, "All references valid")


async def _record(store: SaleStore, report: HealthReport) -> None:
    try:
        for check in report.checks:
            await store.upsert_service_health(check.service_name, check.status.value, check.detail)
        for line in report.logs:
            await store.append_health_log("health_check", line.level.value, line.message)
    except StoreError as e:
        logger.warning("health_record_failed", error=str(e))


async def run_health_checks(store: SaleStore, record: bool = True) -> HealthReport:
    console = _Console()
    console.add(LogLevel.INFO, "Starting health check")

    checks = [
        await check_database(store, console),
        await check_data_integrity(store, console),
    ]
    console.add(LogLevel.INFO, "Health check complete")

    report = HealthReport(checks=checks, logs=console.lines, checked_at=datetime.now(timezone.utc))
    logger.info(
        "health_checks_complete",
        overall=report.overall,
        statuses={c.service_name: c.status.value for c in checks},
    )
    if record:
        await _record(store, report)
    return report
