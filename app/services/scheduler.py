"""
In-process scheduler for the daily billing run and the monthly statistics job.

Started from the application lifespan when ENABLE_SCHEDULER is set. The loop
wakes every SCHEDULER_INTERVAL_SECONDS and runs each job at most once per
calendar day (billing) or month (statistics).
"""
import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.config import settings
from app.db.base import async_session_maker, session_scope
from app.services import statistics, subscriptions
from app.services.configuration import ConfigCache

logger = logging.getLogger(__name__)


class Scheduler:
    def __init__(
        self,
        cache: ConfigCache,
        session_factory: async_sessionmaker = async_session_maker,
        interval_seconds: float = settings.SCHEDULER_INTERVAL_SECONDS,
        billing_hour: int = settings.BILLING_HOUR_UTC,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        self.cache = cache
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self.billing_hour = billing_hour
        self.clock = clock
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self.last_billing: Optional[date] = None
        self.last_statistics: Optional[date] = None

    async def run_billing(self, today: date) -> None:
        async with session_scope(self.session_factory) as db:
            report = await subscriptions.process_due_subscriptions(db, self.cache, today)
        logger.info(
            "Billing %s: %d processed, %d skipped, %d failed",
            today.isoformat(), len(report.processed), len(report.skipped), len(report.failed)
        )

        async with session_scope(self.session_factory) as db:
            sent = await subscriptions.send_upcoming_reminders(db, today)
        logger.info("Billing %s: %d reminders sent", today.isoformat(), sent)

    async def run_monthly_statistics(self, today: date) -> None:
        async with session_scope(self.session_factory) as db:
            await statistics.generate_previous_month(db, today)

    async def tick(self) -> None:
        """Run whatever is due right now."""
        now = self.clock()
        today = now.date()

        if now.hour >= self.billing_hour and self.last_billing != today:
            try:
                await self.run_billing(today)
            except Exception:
                logger.exception("Billing job failed")
            self.last_billing = today

        if today.day == 1 and self.last_statistics != today:
            try:
                await self.run_monthly_statistics(today)
            except Exception:
                logger.exception("Monthly statistics job failed")
            self.last_statistics = today

    async def loop(self) -> None:
        logger.info("Scheduler started (interval %ss)", self.interval_seconds)
        while self.running:
            try:
                await self.tick()
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                logger.info("Scheduler loop cancelled")
                break

    def start(self) -> None:
        if self.running:
            logger.warning("Scheduler already running")
            return
        self.running = True
        self.task = asyncio.create_task(self.loop())

    async def stop(self) -> None:
        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
        logger.info("Scheduler stopped")
