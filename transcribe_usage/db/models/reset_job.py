"""Monthly usage reset job: durable checkpoint document for the reset run."""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class ResetJobStatus(str, Enum):
    """Persisted status of a reset job."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def reset_job_id_for(period: str) -> str:
    """Job ID for a billing period (``YYYY-MM``); one job per calendar month."""
    return f"usage-reset-{period}"


class ResetJob(Base):
    """One run of the monthly usage reset across all users."""

    __tablename__ = "usage_reset_jobs"

    job_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    period: Mapped[str] = mapped_column(
        String(7),
        nullable=False,
        comment="Billing period reset by this job (YYYY-MM)",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=ResetJobStatus.IN_PROGRESS.value,
        nullable=False,
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    total_users: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    processed_users: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_processed_user_id: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
        comment="Resume cursor: users up to and including this ID are done",
    )
    failed_user_ids: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    __table_args__ = (Index("ix_usage_reset_jobs_status", "status"),)

    @property
    def is_in_progress(self) -> bool:
        """Whether the job still has users left to reset."""
        return self.status == ResetJobStatus.IN_PROGRESS.value
