"""Background reminder loop: daily missing-rate check.

Uses FastAPI's lifespan context to start/stop an asyncio background loop
that fires once per day at ``REMINDER_HOUR`` (local time, default 17:00)
and logs a warning for every collector who bought tea last month but
has no rate set for it.  Delivering the reminder to a phone is left to
whatever watches the logs.

Configuration:
    REMINDER_HOUR=17
    SCHEDULER_ENABLED=true
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from fastapi import FastAPI

from estatebook.config import settings
from estatebook.database import Base, engine
from estatebook.schemas.ledger import MissingRateAdvisory
from estatebook.services.ledger import build_missing_rate_advisory
from estatebook.store.sql import get_store
from estatebook.utils.cache import close_redis

logger = logging.getLogger("estatebook.scheduler")


async def run_missing_rate_check() -> MissingRateAdvisory | None:
    """Build last month's advisory and log each collector missing a rate."""
    try:
        advisory = await build_missing_rate_advisory(get_store())
    except Exception:
        logger.exception("Missing-rate check failed")
        return None

    for c in advisory.collectors:
        logger.warning(
            "Set the %02d/%d rate for %s (%d harvest(s) pending)",
            advisory.month, advisory.year, c.collector_name, c.harvest_count,
        )
    if not advisory.has_missing:
        logger.info("All collector rates set for %02d/%d", advisory.month, advisory.year)
    return advisory


def next_run_after(now: datetime, hour: int) -> datetime:
    next_run = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if next_run <= now:
        next_run += timedelta(days=1)
    return next_run


async def _scheduler_loop() -> None:
    while True:
        now = datetime.now()
        next_run = next_run_after(now, settings.reminder_hour)
        wait_seconds = (next_run - now).total_seconds()
        logger.info(
            "Next missing-rate check at %s (in %.0f seconds)",
            next_run.isoformat(),
            wait_seconds,
        )

        await asyncio.sleep(wait_seconds)
        await run_missing_rate_check()

        # Small buffer to avoid running twice in the same minute
        await asyncio.sleep(60)


async def _ensure_tables():
    """Create any missing tables (Alembic remains the migration path)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    logger.info("Ensured estate tables")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan: start the reminder on startup, cancel on shutdown."""
    import estatebook.models  # noqa: F401  (register tables on Base.metadata)

    await _ensure_tables()
    task = None
    if settings.scheduler_enabled:
        task = asyncio.create_task(_scheduler_loop())
        logger.info("Missing-rate reminder started")
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("Missing-rate reminder stopped")
        await close_redis()
