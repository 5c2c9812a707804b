"""Monthly usage reset as a persisted, resumable state machine.

One job document exists per billing period. The runner walks users in ID
order, resets each one, and checkpoints its progress so a restarted process
continues after the last checkpoint instead of starting over:

    IDLE -> STARTING -> RUNNING -> (CHECKPOINTING -> RUNNING)* -> COMPLETING -> IDLE
    IDLE -> RESUMING -> RUNNING
    RUNNING -> PAUSED            (shutdown requested)
    RUNNING -> IDLE              (pass finished with failed users left to retry)

Only ``in_progress`` and ``completed`` are persisted; the other states exist
for the lifetime of one run.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..db.models import ResetJob, User, reset_job_id_for, utcnow
from ..db.repositories import ResetJobRepository, UserRepository
from ..errors import UsageLifecycleError
from ..logging import LogContext, get_logger
from ..usage import UsageTracker
from .context import SchedulerContext
from .schedule import billing_period

logger = get_logger(__name__)

DEFAULT_CHECKPOINT_INTERVAL = 10


class ResetRunState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    RESUMING = "resuming"
    RUNNING = "running"
    CHECKPOINTING = "checkpointing"
    PAUSED = "paused"
    COMPLETING = "completing"


_TRANSITIONS: dict[ResetRunState, frozenset[ResetRunState]] = {
    ResetRunState.IDLE: frozenset({ResetRunState.STARTING, ResetRunState.RESUMING}),
    ResetRunState.STARTING: frozenset({ResetRunState.RUNNING, ResetRunState.IDLE}),
    ResetRunState.RESUMING: frozenset({ResetRunState.RUNNING, ResetRunState.IDLE}),
    ResetRunState.RUNNING: frozenset(
        {
            ResetRunState.CHECKPOINTING,
            ResetRunState.PAUSED,
            ResetRunState.COMPLETING,
            ResetRunState.IDLE,
        }
    ),
    ResetRunState.CHECKPOINTING: frozenset({ResetRunState.RUNNING}),
    ResetRunState.PAUSED: frozenset({ResetRunState.RESUMING, ResetRunState.IDLE}),
    ResetRunState.COMPLETING: frozenset({ResetRunState.IDLE}),
}


class InvalidStateTransitionError(UsageLifecycleError):
    """The reset runner was asked to move to a state it cannot reach."""


class ResetRunOutcome(str, Enum):
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    PAUSED = "paused"
    SKIPPED = "skipped"


@dataclass
class ResetRunResult:
    """Result of one reset run or resume."""

    job_id: str | None
    outcome: ResetRunOutcome
    processed_users: int = 0
    total_users: int = 0
    failed_user_ids: list[str] = field(default_factory=list)
    resumed: bool = False


class ResetJobRunner:
    """Runs or resumes the monthly reset for the current billing period."""

    def __init__(
        self,
        users: UserRepository,
        jobs: ResetJobRepository,
        tracker: UsageTracker,
        context: SchedulerContext,
        checkpoint_interval: int = DEFAULT_CHECKPOINT_INTERVAL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if checkpoint_interval < 1:
            raise ValueError("checkpoint_interval must be at least 1")
        self._users = users
        self._jobs = jobs
        self._tracker = tracker
        self._context = context
        self._checkpoint_interval = checkpoint_interval
        self._clock = clock
        self._state = ResetRunState.IDLE

    @property
    def state(self) -> ResetRunState:
        return self._state

    def _transition(self, target: ResetRunState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise InvalidStateTransitionError(
                f"Cannot move reset runner from {self._state.value} to {target.value}"
            )
        logger.debug("Reset runner state change", from_state=self._state.value, to_state=target.value)
        self._state = target

    async def run(self) -> ResetRunResult:
        """Scheduled trigger: resume this month's job or start it.

        A month whose job already completed is skipped.
        """
        try:
            return await self._run()
        except Exception:
            self._state = ResetRunState.IDLE
            raise

    async def resume(self) -> ResetRunResult | None:
        """Startup recovery: continue an in-progress job for the current month.

        An in-progress job left over from an earlier month is closed instead;
        the missed-reset sweep brings those users up to date.

        Returns:
            The run result, or None if there was nothing to resume.
        """
        try:
            return await self._resume()
        except Exception:
            self._state = ResetRunState.IDLE
            raise

    async def _run(self) -> ResetRunResult:
        now = self._clock()
        period = billing_period(now)

        resumed = await self._resume()
        if resumed is not None:
            return resumed

        job_id = reset_job_id_for(period)
        existing = await self._jobs.get(job_id)
        if existing is not None and not existing.is_in_progress:
            logger.info("Reset already completed for period", job_id=job_id, period=period)
            return ResetRunResult(job_id=job_id, outcome=ResetRunOutcome.SKIPPED)

        self._transition(ResetRunState.STARTING)
        users = await self._users.list_all()
        job = await self._jobs.create(job_id, period, total_users=len(users), started_at=now)
        logger.info("Started monthly usage reset", job_id=job_id, total_users=len(users))

        return await self._process(
            job,
            [user.user_id for user in users],
            processed_before=0,
            retry_ids=frozenset(),
            reset_at=now,
            resumed=False,
        )

    async def _resume(self) -> ResetRunResult | None:
        job = await self._jobs.get_in_progress()
        if job is None:
            return None

        now = self._clock()
        if job.period != billing_period(now):
            await self._close_stale(job, now)
            return None

        self._transition(ResetRunState.RESUMING)

        users = await self._users.list_all()
        retry_ids = frozenset(job.failed_user_ids or [])
        remaining = _remaining_user_ids(users, job.last_processed_user_id, retry_ids)
        logger.info(
            "Resuming monthly usage reset",
            job_id=job.job_id,
            processed_users=job.processed_users,
            last_processed_user_id=job.last_processed_user_id,
            remaining=len(remaining),
            retrying=len(retry_ids),
        )
        return await self._process(
            job,
            remaining,
            processed_before=job.processed_users,
            retry_ids=retry_ids,
            reset_at=now,
            resumed=True,
        )

    async def _close_stale(self, job: ResetJob, now: datetime) -> None:
        logger.warning(
            "Closing reset job from an earlier period",
            job_id=job.job_id,
            period=job.period,
            processed_users=job.processed_users,
            total_users=job.total_users,
        )
        await self._jobs.complete(
            job.job_id,
            processed_users=job.processed_users,
            total_users=job.total_users,
            failed_user_ids=list(job.failed_user_ids or []),
            completed_at=now,
        )

    async def _process(
        self,
        job: ResetJob,
        user_ids: list[str],
        processed_before: int,
        retry_ids: frozenset[str],
        reset_at: datetime,
        resumed: bool,
    ) -> ResetRunResult:
        job_id = job.job_id
        total = processed_before + len(user_ids)
        processed = processed_before
        cursor = job.last_processed_user_id
        pending_retry = set(retry_ids)
        failed: list[str] = []
        since_checkpoint = 0

        self._transition(ResetRunState.RUNNING)
        with LogContext(job_id=job_id):
            for user_id in user_ids:
                if self._context.shutdown.is_set:
                    self._transition(ResetRunState.PAUSED)
                    logger.info(
                        "Reset paused for shutdown",
                        processed_users=processed,
                        total_users=total,
                    )
                    return ResetRunResult(
                        job_id=job_id,
                        outcome=ResetRunOutcome.PAUSED,
                        processed_users=processed,
                        total_users=total,
                        failed_user_ids=failed,
                        resumed=resumed,
                    )

                pending_retry.discard(user_id)
                try:
                    await self._tracker.reset_monthly_usage(user_id, reset_at=reset_at)
                except Exception as e:
                    failed.append(user_id)
                    logger.warning("Failed to reset user", user_id=user_id, error=str(e))
                else:
                    processed += 1
                    since_checkpoint += 1

                if cursor is None or user_id > cursor:
                    cursor = user_id

                if since_checkpoint >= self._checkpoint_interval:
                    await self._checkpoint(
                        job_id, processed, total, cursor, sorted(pending_retry | set(failed))
                    )
                    since_checkpoint = 0

            if processed == total:
                self._transition(ResetRunState.COMPLETING)
                await self._jobs.complete(
                    job_id,
                    processed_users=processed,
                    total_users=total,
                    failed_user_ids=[],
                    completed_at=self._clock(),
                )
                self._transition(ResetRunState.IDLE)
                logger.info("Monthly usage reset completed", processed_users=processed)
                return ResetRunResult(
                    job_id=job_id,
                    outcome=ResetRunOutcome.COMPLETED,
                    processed_users=processed,
                    total_users=total,
                    resumed=resumed,
                )

            await self._checkpoint(job_id, processed, total, cursor, sorted(failed))
            self._transition(ResetRunState.IDLE)
            logger.warning(
                "Monthly usage reset finished with failed users",
                processed_users=processed,
                total_users=total,
                failed_users=len(failed),
            )
            return ResetRunResult(
                job_id=job_id,
                outcome=ResetRunOutcome.INCOMPLETE,
                processed_users=processed,
                total_users=total,
                failed_user_ids=failed,
                resumed=resumed,
            )

    async def _checkpoint(
        self,
        job_id: str,
        processed: int,
        total: int,
        cursor: str | None,
        failed_user_ids: list[str],
    ) -> None:
        self._transition(ResetRunState.CHECKPOINTING)
        await self._jobs.checkpoint(
            job_id,
            processed_users=processed,
            total_users=total,
            last_processed_user_id=cursor,
            failed_user_ids=failed_user_ids,
        )
        logger.debug("Reset checkpoint written", processed_users=processed, cursor=cursor)
        self._transition(ResetRunState.RUNNING)


def _remaining_user_ids(
    users: list[User],
    cursor: str | None,
    retry_ids: frozenset[str],
) -> list[str]:
    """Users a resumed job still has to attempt, in ID order."""
    ids = {user.user_id for user in users if cursor is None or user.user_id > cursor}
    existing = {user.user_id for user in users}
    ids |= retry_ids & existing
    return sorted(ids)
