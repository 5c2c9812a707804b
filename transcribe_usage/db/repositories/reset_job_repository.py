"""Repository for monthly usage reset job documents."""

from datetime import datetime

from sqlalchemy import select, update

from ..connection import DatabaseConnection
from ..models import ResetJob, ResetJobStatus


class ResetJobRepository:
    """Persistence for reset job checkpoints."""

    def __init__(self, db: DatabaseConnection) -> None:
        self._db = db

    async def create(
        self,
        job_id: str,
        period: str,
        total_users: int,
        started_at: datetime,
    ) -> ResetJob:
        """Insert a new in-progress job."""
        job = ResetJob(
            job_id=job_id,
            period=period,
            status=ResetJobStatus.IN_PROGRESS.value,
            started_at=started_at,
            total_users=total_users,
            processed_users=0,
            last_processed_user_id=None,
            failed_user_ids=[],
        )
        async with self._db.session() as session:
            session.add(job)
        return job

    async def get(self, job_id: str) -> ResetJob | None:
        """Load a job by ID."""
        async with self._db.session() as session:
            result = await session.execute(select(ResetJob).where(ResetJob.job_id == job_id))
            return result.scalar_one_or_none()

    async def get_in_progress(self) -> ResetJob | None:
        """The most recently started job that has not completed, if any."""
        async with self._db.session() as session:
            result = await session.execute(
                select(ResetJob)
                .where(ResetJob.status == ResetJobStatus.IN_PROGRESS.value)
                .order_by(ResetJob.started_at.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def checkpoint(
        self,
        job_id: str,
        processed_users: int,
        total_users: int,
        last_processed_user_id: str | None,
        failed_user_ids: list[str],
    ) -> None:
        """Persist progress so a restarted process can resume after the cursor."""
        async with self._db.session() as session:
            await session.execute(
                update(ResetJob)
                .where(ResetJob.job_id == job_id)
                .values(
                    processed_users=processed_users,
                    total_users=total_users,
                    last_processed_user_id=last_processed_user_id,
                    failed_user_ids=list(failed_user_ids),
                )
                .execution_options(synchronize_session=False)
            )

    async def complete(
        self,
        job_id: str,
        processed_users: int,
        total_users: int,
        failed_user_ids: list[str],
        completed_at: datetime,
    ) -> None:
        """Mark the job completed."""
        async with self._db.session() as session:
            await session.execute(
                update(ResetJob)
                .where(ResetJob.job_id == job_id)
                .values(
                    status=ResetJobStatus.COMPLETED.value,
                    processed_users=processed_users,
                    total_users=total_users,
                    failed_user_ids=list(failed_user_ids),
                    completed_at=completed_at,
                )
                .execution_options(synchronize_session=False)
            )
