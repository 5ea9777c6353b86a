"""
Automated sync scheduler for the stats pipeline.

This module runs every sync-type on a cron schedule:
- Live football matches (every 5 min, self-skipping outside match windows)
- Live NBA games (every 5 min)
- Match schedule (every 6 hours)
- News discovery (every 2 hours)
- Football / NBA stats (daily)
- Hollinger rankings and ESPN player pages (daily)
- FotMob career, match ratings and injuries (daily)
- Transfermarkt history (weekly)

Scheduler jobs call the orchestrator's cooldown-checked ``run()`` with the
'scheduler' auth method, which is equivalent to a webhook-authorized call.

Scheduler: APScheduler (lightweight, FastAPI-compatible)
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import settings
from app.core.database import SessionLocal
from app.core.exceptions import SyncError
from app.core.logging import get_logger
from app.services.sync.orchestrator import SyncOrchestrator

logger = get_logger(__name__)

SCHEDULER_AUTH_METHOD = "scheduler"


@dataclass(frozen=True)
class SyncJob:
    id: str
    name: str
    sync_type: str
    cron: Dict[str, Any]


SYNC_JOBS: List[SyncJob] = [
    SyncJob("live_matches", "Sync Live Football Matches", "live_matches", {"minute": "*/5"}),
    SyncJob("live_nba_matches", "Sync Live NBA Games", "live_nba_matches", {"minute": "*/5"}),
    SyncJob("match_schedule", "Sync Match Schedule", "match_schedule", {"hour": "*/6", "minute": 10}),
    SyncJob("news", "Discover Athlete News", "news", {"hour": "*/2", "minute": 20}),
    SyncJob("football_stats", "Sync Football Stats", "football_stats", {"hour": 5, "minute": 0}),
    SyncJob("nba_stats", "Sync NBA Stats", "nba_stats", {"hour": 5, "minute": 30}),
    SyncJob("hollinger_stats", "Sync Hollinger Rankings", "hollinger_stats", {"hour": 6, "minute": 0}),
    SyncJob("espn_player_stats", "Sync ESPN Player Page", "espn_player_stats", {"hour": 6, "minute": 30}),
    SyncJob("fotmob_data", "Sync FotMob Player Data", "fotmob_data", {"hour": 7, "minute": 0}),
    SyncJob("transfermarkt", "Scrape Transfermarkt History", "transfermarkt",
            {"day_of_week": "mon", "hour": 3, "minute": 0}),
]


async def run_sync_job(sync_type: str) -> Optional[Dict[str, Any]]:
    """
    Run one sync-type in its own database session.

    Failures are logged, never raised: a broken source must not stop the
    scheduler.
    """
    db = SessionLocal()
    orchestrator = SyncOrchestrator(db)
    try:
        result = await orchestrator.run(sync_type, auth_method=SCHEDULER_AUTH_METHOD)
        if result.get("skipped"):
            logger.info(f"{sync_type} skipped: {result.get('reason')}")
        else:
            logger.info(
                f"{sync_type}: {result.get('status')} "
                f"({result.get('succeeded')}/{result.get('processed')} athletes, "
                f"{result.get('duration_ms')}ms)"
            )
        return result
    except SyncError as e:
        logger.error(f"{sync_type} failed: {e}")
        return None
    except Exception as e:
        logger.exception(f"{sync_type} crashed: {e}")
        return None
    finally:
        await orchestrator.close()
        db.close()


class AutomationScheduler:
    """
    Main scheduler for the sync jobs.

    All scheduled jobs are declared in SYNC_JOBS.
    """

    def __init__(self, jobs: Optional[List[SyncJob]] = None):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False
        self.jobs = jobs if jobs is not None else SYNC_JOBS

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        logger.info("Starting sync scheduler...")

        self.scheduler = AsyncIOScheduler(
            timezone=settings.SCHEDULER_TIMEZONE,
            job_defaults={
                'coalesce': True,  # Combine missed runs into one
                'max_instances': 1,  # Only one instance of each job
                'misfire_grace_time': 300  # 5 minutes grace for misfires
            }
        )

        for job in self.jobs:
            self.scheduler.add_job(
                run_sync_job,
                trigger=CronTrigger(timezone=settings.SCHEDULER_TIMEZONE, **job.cron),
                args=[job.sync_type],
                id=job.id,
                name=job.name,
            )

        self.scheduler.start()
        self.running = True

        logger.info("Scheduler started with %d jobs", len(self.scheduler.get_jobs()))
        self._log_scheduled_jobs()

    async def stop(self):
        """Stop the scheduler."""
        if not self.running:
            return

        logger.info("Stopping scheduler...")
        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("Scheduler stopped")

    async def trigger(self, job_id: str) -> Optional[Dict[str, Any]]:
        """
        Run a job immediately, outside its schedule.

        Raises:
            KeyError: If no job has this id
        """
        job = next((j for j in self.jobs if j.id == job_id), None)
        if job is None:
            raise KeyError(job_id)
        return await run_sync_job(job.sync_type)

    def _log_scheduled_jobs(self):
        """Log all scheduled jobs for visibility."""
        jobs = self.scheduler.get_jobs()

        logger.info("=" * 60)
        logger.info("SCHEDULED SYNC JOBS")
        logger.info("=" * 60)

        for job in jobs:
            next_run = job.next_run_time
            next_run_str = next_run.strftime('%Y-%m-%d %H:%M %Z') if next_run else 'Pending'
            logger.info(f"  • {job.name}")
            logger.info(f"    ID: {job.id}")
            logger.info(f"    Next run: {next_run_str}")

        logger.info("=" * 60)
        logger.info(f"Total jobs scheduled: {len(jobs)}")
        logger.info("=" * 60)


# Global scheduler instance
_scheduler: Optional[AutomationScheduler] = None


async def start_scheduler():
    """Start the global scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AutomationScheduler()
        await _scheduler.start()
    return _scheduler


async def stop_scheduler():
    """Stop the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None


def get_scheduler() -> Optional[AutomationScheduler]:
    """Get the global scheduler instance."""
    return _scheduler
