"""
Periodic cabinet scan scheduler.

Runs the full scan (tables, scores with activity, leaderboard) on an
interval so the scoreboard stays current without anyone pressing refresh.
The orchestrator saves the document after every scan that changed it.

Scheduler: APScheduler (lightweight, FastAPI-compatible)
Disabled when SCAN_INTERVAL_MINUTES is 0.
"""
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from scoreboard.core.config import settings

logger = logging.getLogger(__name__)

FULL_SCAN_JOB_ID = "full_scan"


class ScanScheduler:
    """Interval job driving ScanOrchestrator.scan_all()."""

    def __init__(self, orchestrator, interval_minutes: Optional[int] = None):
        self.orchestrator = orchestrator
        self.interval_minutes = (
            settings.SCAN_INTERVAL_MINUTES if interval_minutes is None else interval_minutes
        )
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler already running")
            return
        if self.interval_minutes <= 0:
            logger.info("Scan scheduler disabled (SCAN_INTERVAL_MINUTES=0)")
            return

        self.scheduler = AsyncIOScheduler(
            job_defaults={
                "coalesce": True,  # Combine missed runs into one
                "max_instances": 1,
                "misfire_grace_time": 300,
            }
        )
        self.scheduler.add_job(
            self.run_full_scan,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=FULL_SCAN_JOB_ID,
            name="Full cabinet scan",
        )
        self.scheduler.start()
        self.running = True

        job = self.scheduler.get_job(FULL_SCAN_JOB_ID)
        logger.info(f"✅ Scheduler started, full scan every {self.interval_minutes} min, next run {job.next_run_time}")

    async def stop(self):
        """Stop the scheduler."""
        if not self.running:
            return

        logger.info("Stopping scheduler...")
        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("✅ Scheduler stopped")

    async def run_full_scan(self) -> None:
        if self.orchestrator.busy:
            logger.info("Scan already in progress, skipping scheduled run")
            return
        try:
            results = await self.orchestrator.scan_all()
            summary = ", ".join(f"{r.kind}={'ok' if r.success else 'failed'}" for r in results)
            logger.info(f"✅ Scheduled scan finished: {summary}")
        except Exception as e:
            logger.error(f"❌ Scheduled scan failed: {e}")


# Global scheduler instance
_scheduler: Optional[ScanScheduler] = None


async def start_scheduler(orchestrator, interval_minutes: Optional[int] = None) -> ScanScheduler:
    """Start the global scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = ScanScheduler(orchestrator, interval_minutes)
        await _scheduler.start()
    return _scheduler


async def stop_scheduler():
    """Stop the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None


def get_scheduler() -> Optional[ScanScheduler]:
    """Get the global scheduler instance."""
    return _scheduler
