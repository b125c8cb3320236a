"""Scheduler service - the probe loop.

Scheduling design:
- All stored site checks are loaded once into an in-memory priority queue
  keyed by ``next_check_at``
- Each pass pops every due check and probes them concurrently, bounded by
  MAX_CONCURRENT_CHECKS
- Processed checks are pushed back only after the whole pass finished, so
  short-interval checks come up first on the next pass
- The stored record is re-read at decision time; it is the only place state
  is written back
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings
from ..database import async_session
from ..models import SiteCheck, NotificationLog
from ..utils.db_utils import retry_on_lock
from ..utils.time_utils import utcnow, format_timestamp
from .certificate import CertificateInspector
from .check_queue import CheckQueue, WorkingCheck, advance_next_check
from .decision import NotificationKind, decide, next_throttle_deadline
from .notifier import NotifierService
from .prober import ProbeService
from .status_codec import status_label

logger = logging.getLogger(__name__)

# One line per evaluated check
results_logger = logging.getLogger("peek.results")

# Maximum concurrent probes within one pass
MAX_CONCURRENT_CHECKS = 10

# Scheduler tick interval in seconds
SCHEDULER_TICK_SECONDS = 1.0

# Notification log retention
NOTIFICATION_RETENTION = timedelta(days=365)


def format_result_line(now: datetime, url: str, state: int, message: str) -> str:
    """``<timestamp>, <url>, <status>, <label> <message>``"""
    return f"{format_timestamp(now)}, {url}, {abs(state)}, {status_label(state)} {message}"


class SchedulerService:
    """Service running the probe loop over all stored site checks."""

    def __init__(
        self,
        prober: ProbeService,
        notifier: Optional[NotifierService] = None,
        session_factory: async_sessionmaker[AsyncSession] = async_session,
        clock: Callable[[], datetime] = utcnow,
        max_concurrent_checks: int = MAX_CONCURRENT_CHECKS,
        tick_seconds: float = SCHEDULER_TICK_SECONDS,
        report_interval: int = 14400,
        notifications_enabled: bool = True,
    ):
        self.prober = prober
        self.notifier = notifier
        self.session_factory = session_factory
        self.clock = clock
        self.max_concurrent_checks = max_concurrent_checks
        self.tick_seconds = tick_seconds
        self.report_interval = report_interval
        self.notifications_enabled = notifications_enabled and notifier is not None
        self.queue = CheckQueue()
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def load(self) -> int:
        """Load every stored site check into the working queue."""
        async with self.session_factory() as session:
            result = await session.execute(select(SiteCheck))
            records = result.scalars().all()

        self.queue.clear()
        for record in records:
            self.queue.push(WorkingCheck.from_record(record))

        logger.info(f"Loaded {len(self.queue)} site checks")
        return len(self.queue)

    async def run_once(self) -> int:
        """Load the stored checks and run exactly one pass over the due ones."""
        await self.load()
        return await self.run_pass()

    async def run_pass(self) -> int:
        """Probe every due check once; returns how many were processed."""
        due = self.queue.pop_due(self.clock())
        if not due:
            return 0

        logger.debug(f"Checking {len(due)} due sites, {len(self.queue)} waiting")

        semaphore = asyncio.Semaphore(self.max_concurrent_checks)

        async def process_with_limit(check: WorkingCheck) -> bool:
            async with semaphore:
                return await self._process(check)

        keep = await asyncio.gather(*[process_with_limit(check) for check in due])

        # Re-queue only once every probe of the pass has completed
        for check, still_stored in zip(due, keep):
            if still_stored:
                self.queue.push(check)

        return len(due)

    async def _process(self, check: WorkingCheck) -> bool:
        """Probe, decide, notify and persist one check.

        Returns False when the stored record no longer exists.
        """
        try:
            result = await self.prober.probe(check.url, check.search_string)
            state = result.state
            message = result.message

            now = self.clock()
            check.next_check_at = advance_next_check(check.next_check_at, check.interval, now)

            async with self.session_factory() as session:
                stored = await session.get(SiteCheck, check.id)
                if stored is None:
                    logger.info(f"Site check {check.url} was removed, dropping it from the queue")
                    return False

                next_notification_at = stored.next_notification_at
                kind = decide(stored.last_state, state, message, next_notification_at, now)

                if kind is not NotificationKind.NONE and self.notifications_enabled:
                    await self.notifier.notify(session, stored, kind, stored.last_state, state, message)
                    next_notification_at = next_throttle_deadline(
                        kind, next_notification_at, now, self.report_interval
                    )

                stored.last_state = state
                stored.message = message
                stored.next_check_at = check.next_check_at
                stored.next_notification_at = next_notification_at
                await retry_on_lock(session.commit)

            results_logger.info(format_result_line(now, check.url, state, message))
            return True

        except Exception as e:
            logger.error(f"Error checking {check.url}: {e}")
            return True

    def start(self):
        """Start the continuous loop. Must be called with a running event loop."""
        if self._running:
            return

        self.scheduler = AsyncIOScheduler()

        # max_instances=1 keeps passes from overlapping
        self.scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=self.tick_seconds),
            id="run_pass",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
        )

        self.scheduler.add_job(
            self._cleanup_notification_log,
            trigger=IntervalTrigger(hours=1),
            id="cleanup_notification_log",
            replace_existing=True,
            max_instances=1,
        )

        self.scheduler.start()
        self._running = True
        logger.info(f"Scheduler started (tick={self.tick_seconds}s, max_concurrent={self.max_concurrent_checks})")

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    async def _tick(self):
        try:
            await self.run_pass()
        except Exception as e:
            logger.error(f"Error running checks: {e}")

    async def _cleanup_notification_log(self):
        """Delete notification log rows older than the retention period."""
        try:
            cutoff = self.clock() - NOTIFICATION_RETENTION

            async with self.session_factory() as session:
                await session.execute(
                    delete(NotificationLog).where(NotificationLog.sent_at < cutoff)
                )
                await retry_on_lock(session.commit)
                logger.info("Cleaned up old notification log records")
        except Exception as e:
            logger.error(f"Error cleaning up notification log: {e}")


def create_scheduler_service(settings: Settings) -> SchedulerService:
    """Wire a scheduler from application settings."""
    prober = ProbeService(
        timeout=settings.probe_timeout,
        inspector=CertificateInspector(warning_days=settings.certificate_warning_days),
    )
    notifier = NotifierService(
        webhook_url=settings.webhook_url,
        channel=settings.notification_channel,
        username=settings.notification_username,
    )
    return SchedulerService(
        prober,
        notifier,
        max_concurrent_checks=settings.max_concurrent_checks,
        tick_seconds=settings.scheduler_tick_seconds,
        report_interval=settings.report_interval,
        notifications_enabled=settings.notifications_enabled,
    )
