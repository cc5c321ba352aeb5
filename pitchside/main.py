"""
Pitchside — Application Entrypoint

Configures structlog, opens the configured store (PostgREST or direct
database), runs the health checks, takes the first dashboard snapshot and
then keeps it fresh by polling for table changes.

Run via:
    python -m pitchside.main
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pitchside.config import settings
from pitchside.monitoring.health import run_health_checks
from pitchside.pipeline.database import DatabaseStore
from pitchside.pipeline.realtime import ChangeFeed, ChangePoller
from pitchside.pipeline.refresh import SnapshotController
from pitchside.pipeline.store import SaleStore
from pitchside.pipeline.supabase import SupabaseStore


# ---------------------------------------------------------------------------
# Structlog Configuration
# ---------------------------------------------------------------------------


def configure_logging(log_level: str = "INFO") -> None:
    """
    Set up structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Store Setup
# ---------------------------------------------------------------------------


async def create_db_engine() -> tuple[Any, async_sessionmaker[AsyncSession]]:
    """
    Create SQLAlchemy async engine and session factory from DATABASE_URL.

    Returns:
        (engine, session_factory) tuple.
    """
    logger = structlog.get_logger(__name__)
    logger.info("database_engine_initializing")

    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        await session.execute(text("SELECT 1"))

    logger.info("database_engine_ready")
    return engine, session_factory


@asynccontextmanager
async def open_store(backend: str | None = None) -> AsyncIterator[SaleStore]:
    """Yield the configured SaleStore and release its connections on exit."""
    logger = structlog.get_logger(__name__)
    kind = (backend or settings.STORE_BACKEND).lower()

    if kind == "supabase":
        if not settings.SUPABASE_ANON_KEY:
            logger.warning("config_supabase_anon_key_missing", note="using empty API key")
        async with SupabaseStore() as store:
            logger.info("store_opened", backend=kind, url=settings.SUPABASE_URL)
            yield store
        return

    if kind == "database":
        engine, session_factory = await create_db_engine()
        try:
            logger.info("store_opened", backend=kind)
            yield DatabaseStore(session_factory)
        finally:
            await engine.dispose()
        return

    raise ValueError(f"Unknown STORE_BACKEND: {kind}")


# ---------------------------------------------------------------------------
# Application Startup
# ---------------------------------------------------------------------------


async def main() -> None:
    """
    Execution order:
    1. Configure logging (structlog JSON)
    2. Open the store
    3. Run health checks (recorded to service_health / health_logs)
    4. Take the first snapshot
    5. Poll for changes until SIGINT / SIGTERM
    """
    configure_logging(log_level=settings.LOG_LEVEL)
    logger = structlog.get_logger(__name__)
    logger.info("pitchside_startup_begin", version="0.1.0", backend=settings.STORE_BACKEND)

    async with open_store() as store:
        report = await run_health_checks(store)
        logger.info("pitchside_health", overall=report.overall)

        feed = ChangeFeed()
        controller = SnapshotController(store, name="dashboard")
        controller.attach(feed)
        state = await controller.refresh()
        logger.info("pitchside_startup_complete", status=state.status.value)

        poller = ChangePoller(store, feed)
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, lambda: asyncio.ensure_future(poller.shutdown()))
            except NotImplementedError:
                logger.debug("signal_handler_unsupported", signal=sig.name)

        try:
            await poller.run()
        finally:
            controller.detach()
            logger.info("pitchside_shutdown_complete")


# ---------------------------------------------------------------------------
# CLI Entry
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    asyncio.run(main())
