"""Reset job progress reports for admin tooling."""

from datetime import datetime

from pydantic import BaseModel

from ..db.models import ResetJob, as_utc
from ..db.repositories import ResetJobRepository
from ..errors import NotFoundError

IDLE_STATUS = "idle"


class ResetProgress(BaseModel):
    processed: int
    total: int
    percentage: int


class ResetJobStatusReport(BaseModel):
    """Progress of one reset job, or ``status="idle"`` when none is running."""

    status: str
    job_id: str | None = None
    message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    progress: ResetProgress | None = None
    failed_users: int = 0
    last_processed_user_id: str | None = None


def build_status_report(job: ResetJob) -> ResetJobStatusReport:
    total = job.total_users or 0
    processed = job.processed_users or 0
    percentage = round(processed / total * 100) if total else 0
    return ResetJobStatusReport(
        status=job.status,
        job_id=job.job_id,
        started_at=as_utc(job.started_at),
        completed_at=as_utc(job.completed_at),
        progress=ResetProgress(processed=processed, total=total, percentage=percentage),
        failed_users=len(job.failed_user_ids or []),
        last_processed_user_id=job.last_processed_user_id,
    )


async def get_reset_job_status(jobs: ResetJobRepository, job_id: str) -> ResetJobStatusReport:
    """Progress of a specific reset job.

    Raises:
        NotFoundError: No job has this ID.
    """
    job = await jobs.get(job_id)
    if job is None:
        raise NotFoundError("Reset job", job_id)
    return build_status_report(job)


async def get_active_reset_job_status(jobs: ResetJobRepository) -> ResetJobStatusReport:
    """Progress of the in-progress reset job, if there is one."""
    job = await jobs.get_in_progress()
    if job is None:
        return ResetJobStatusReport(status=IDLE_STATUS, message="No active reset job")
    return build_status_report(job)
