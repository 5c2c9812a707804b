"""Recurring job loop for the usage scheduler process."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..config import QuotaSettings, SchedulerSettings
from ..db.models import utcnow
from ..db.repositories import UsageRecordRepository, UserRepository
from ..logging import LogContext, get_logger, new_correlation_id
from ..usage import UsageTracker
from .context import SchedulerContext
from .jobs import run_overage_check, run_usage_cleanup, run_usage_warnings
from .missed_resets import sweep_missed_resets
from .reset_job import ResetJobRunner
from .schedule import Schedule

logger = get_logger(__name__)

MONTHLY_USAGE_RESET = "monthly-usage-reset"
DAILY_OVERAGE_CHECK = "daily-overage-check"
DAILY_USAGE_WARNINGS = "daily-usage-warnings"
MONTHLY_USAGE_CLEANUP = "monthly-usage-cleanup"
STARTUP_MISSED_RESETS = "startup-missed-resets"


@dataclass(frozen=True)
class ScheduledJob:
    """A named job and when it runs."""

    name: str
    schedule: Schedule
    run: Callable[[], Awaitable[Any]]


class UsageScheduler:
    """Runs startup recovery, then each recurring job on its schedule.

    Every job runs under ``SchedulerContext.track`` so a job never overlaps
    itself and shutdown can wait for in-flight work.
    """

    def __init__(
        self,
        runner: ResetJobRunner,
        users: UserRepository,
        usage_records: UsageRecordRepository,
        tracker: UsageTracker,
        context: SchedulerContext,
        settings: SchedulerSettings | None = None,
        quota_settings: QuotaSettings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._runner = runner
        self._users = users
        self._usage_records = usage_records
        self._tracker = tracker
        self._context = context
        self._settings = settings or SchedulerSettings()
        self._quota_settings = quota_settings or QuotaSettings()
        self._clock = clock
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def context(self) -> SchedulerContext:
        return self._context

    @property
    def jobs(self) -> list[ScheduledJob]:
        return [
            ScheduledJob(MONTHLY_USAGE_RESET, Schedule.monthly(1), self._runner.run),
            ScheduledJob(DAILY_OVERAGE_CHECK, Schedule.daily(2), self._overage_check),
            ScheduledJob(DAILY_USAGE_WARNINGS, Schedule.daily(10), self._usage_warnings),
            ScheduledJob(MONTHLY_USAGE_CLEANUP, Schedule.monthly(15, hour=3), self._usage_cleanup),
        ]

    async def _overage_check(self) -> Any:
        return await run_overage_check(
            self._users,
            self._context,
            self._quota_settings.overage_rate_cents_per_hour,
        )

    async def _usage_warnings(self) -> Any:
        return await run_usage_warnings(
            self._users,
            self._tracker,
            self._context,
            self._quota_settings.warning_threshold_percent,
        )

    async def _usage_cleanup(self) -> Any:
        return await run_usage_cleanup(
            self._usage_records,
            self._settings.usage_record_retention_months,
            clock=self._clock,
        )

    async def _missed_resets(self) -> Any:
        return await sweep_missed_resets(
            self._users, self._tracker, self._context, clock=self._clock
        )

    async def run_job(self, job_name: str, func: Callable[[], Awaitable[Any]]) -> Any | None:
        """Run one job unless it is already active or shutdown has begun.

        Job errors are logged and swallowed so one failing run does not stop
        the schedule.

        Returns:
            The job's result, or None if it was skipped or failed.
        """
        if not self._context.can_start(job_name):
            logger.info(
                "Skipping job",
                job_name=job_name,
                already_active=self._context.is_active(job_name),
                shutting_down=self._context.shutdown.is_set,
            )
            return None

        async with self._context.track(job_name):
            new_correlation_id()
            with LogContext(job_name=job_name):
                logger.info("Job started")
                try:
                    result = await func()
                except Exception:
                    logger.exception("Job failed")
                    return None
                logger.info("Job finished")
                return result

    async def startup(self) -> None:
        """Resume an interrupted reset, then sweep users the reset missed."""
        await self.run_job(MONTHLY_USAGE_RESET, self._runner.resume)
        await self.run_job(STARTUP_MISSED_RESETS, self._missed_resets)

    async def _job_loop(self, job: ScheduledJob) -> None:
        while not self._context.shutdown.is_set:
            now = self._clock()
            next_run = job.schedule.next_after(now)
            delay = (next_run - now).total_seconds()
            logger.debug("Next run scheduled", job_name=job.name, next_run=next_run.isoformat())
            if await self._context.shutdown.wait(timeout=delay):
                break
            await self.run_job(job.name, job.run)

    def start(self) -> None:
        """Start one loop task per recurring job."""
        for job in self.jobs:
            self._tasks.append(asyncio.create_task(self._job_loop(job), name=job.name))
        logger.info("Scheduler started", jobs=[job.name for job in self.jobs])

    def request_shutdown(self) -> None:
        """Signal every job to stop at its next checkpoint."""
        if not self._context.shutdown.is_set:
            logger.info("Shutdown requested")
        self._context.shutdown.trigger()

    async def shutdown(self) -> bool:
        """Stop scheduling and wait for active jobs, up to the configured limit.

        Returns:
            True if every job finished within the wait, False if shutdown was
            forced.
        """
        self.request_shutdown()
        drained = await self._context.drain(
            self._settings.shutdown_max_wait_seconds,
            self._settings.shutdown_poll_seconds,
        )
        for task in self._tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("Scheduler stopped", forced=not drained)
        return drained

    async def run(self) -> None:
        """Run until shutdown is requested, then drain."""
        await self.startup()
        if not self._context.shutdown.is_set:
            self.start()
            await self._context.shutdown.wait()
        await self.shutdown()
