"""Usage record model: append-only analytics fact per completed operation."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


def generate_record_id() -> str:
    """Generate a new usage record ID."""
    return str(uuid4())


class UsageRecord(Base):
    """One completed transcription or analysis, as billed at the time."""

    __tablename__ = "usage_records"

    record_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_record_id,
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    source_operation_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Transcription or analysis ID that produced this record",
    )
    record_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Record type: 'transcription' or 'analysis'",
    )
    tier: Mapped[str] = mapped_column(String(50), nullable=False)
    duration_seconds: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    duration_hours: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    cost_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_usage_records_user_created", "user_id", "created_at"),
        Index("ix_usage_records_created", "created_at"),
    )
