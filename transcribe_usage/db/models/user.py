"""User SQLAlchemy model holding subscription tier and monthly usage counters."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ...tiers import Tier, UserRole
from .base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """Account with tier assignment, usage counters and payment identifiers."""

    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Identity provider subject (opaque)",
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20),
        default=UserRole.USER.value,
        nullable=False,
    )
    tier: Mapped[str] = mapped_column(
        String(50),
        default=Tier.FREE.value,
        nullable=False,
        comment="Subscription tier: free, professional, business, payg",
    )

    # Monthly usage, zeroed by the reset job
    hours_used: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    transcription_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    on_demand_analysis_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_reset_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    payg_credits_hours: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    payment_customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payment_subscription_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subscription_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_users_tier", "tier"),
        Index("ix_users_payment_customer_id", "payment_customer_id"),
    )

    @property
    def is_admin(self) -> bool:
        """Whether this account bypasses quota checks."""
        return self.role == UserRole.ADMIN.value
