#!/usr/bin/env python3
"""
Background runner for the stats sync scheduler.

This script runs the sync scheduler as a standalone background service,
separate from the API process. It can be run via systemd, supervisor, or
directly.

Usage:
    python run_scheduler.py                      # Run in foreground
    python run_scheduler.py --list-jobs          # Print the job table
    python run_scheduler.py --trigger news       # Run one job now and exit
"""
import asyncio
import argparse
import signal
import sys

from dotenv import load_dotenv

load_dotenv()

from app.core.config import settings  # noqa: E402
from app.core.logging import configure_logging, get_logger  # noqa: E402
from app.core.scheduler import AutomationScheduler, SYNC_JOBS  # noqa: E402

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


class SchedulerRunner:
    """Runner for the sync scheduler."""

    def __init__(self):
        self.scheduler: AutomationScheduler = None
        self.shutdown = False

    async def start(self):
        """Start the scheduler and run until shutdown."""
        logger.info("Starting scheduler runner...")

        self.scheduler = AutomationScheduler()
        await self.scheduler.start()

        logger.info("Scheduler is now running")
        logger.info("Press Ctrl+C to stop")

        # Setup signal handlers for graceful shutdown
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._set_shutdown)

        # Keep running until shutdown
        while not self.shutdown:
            await asyncio.sleep(1)

        await self.scheduler.stop()
        logger.info("Scheduler runner stopped")

    def _set_shutdown(self):
        """Set shutdown flag."""
        logger.info("Shutdown signal received")
        self.shutdown = True


def list_jobs():
    """Print the configured job table."""
    print("=" * 60)
    print("SCHEDULED SYNC JOBS")
    print("=" * 60)
    print()

    for job in SYNC_JOBS:
        schedule = ", ".join(f"{k}={v}" for k, v in job.cron.items())
        print(f"{job.name}")
        print(f"   ID: {job.id}")
        print(f"   Sync type: {job.sync_type}")
        print(f"   Schedule: {schedule} ({settings.SCHEDULER_TIMEZONE})")
        print()

    print("=" * 60)
    print(f"Total jobs: {len(SYNC_JOBS)}")


async def run_trigger_job(job_id: str) -> bool:
    """Manually run a specific job once."""
    scheduler = AutomationScheduler()
    try:
        print(f"Triggering job: {job_id}")
        result = await scheduler.trigger(job_id)
    except KeyError:
        print(f"Job '{job_id}' not found")
        return False

    if result is None:
        print(f"Job '{job_id}' failed (see logs)")
        return False
    print(f"Job '{job_id}' finished: {result}")
    return True


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Run the stats sync scheduler'
    )

    parser.add_argument(
        '--trigger',
        type=str,
        metavar='JOB_ID',
        help='Manually trigger a specific job by ID'
    )

    parser.add_argument(
        '--list-jobs',
        action='store_true',
        help='List all scheduled jobs and exit'
    )

    args = parser.parse_args()

    if args.list_jobs:
        list_jobs()
        return 0

    if args.trigger:
        result = asyncio.run(run_trigger_job(args.trigger))
        return 0 if result else 1

    runner = SchedulerRunner()

    try:
        asyncio.run(runner.start())
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down...")
        return 0
    except Exception as e:
        logger.error(f"Scheduler error: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
