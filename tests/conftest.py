"""Shared fixtures for transcribe_usage tests."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.pool import StaticPool

from transcribe_usage.db import (
    DatabaseConnection,
    ResetJobRepository,
    UsageRecordRepository,
    UserContentRepository,
    UserRepository,
)
from transcribe_usage.db.models import ResetJob, User
from transcribe_usage.scheduler import SchedulerContext
from transcribe_usage.tiers import Tier, UserRole

# A fixed instant inside the 2026-03 billing period
FIXED_NOW = datetime(2026, 3, 1, 0, 0, 5, tzinfo=UTC)


def create_user(
    user_id: str = "user-1",
    tier: Tier | str = Tier.FREE,
    role: UserRole | str = UserRole.USER,
    hours_used: float = 0.0,
    transcription_count: int = 0,
    on_demand_analysis_count: int = 0,
    payg_credits_hours: float = 0.0,
    last_reset_at: datetime | None = None,
    payment_customer_id: str | None = None,
    payment_subscription_id: str | None = None,
    is_deleted: bool = False,
) -> User:
    """Create a transient User with every column set."""
    return User(
        user_id=user_id,
        email=f"{user_id}@example.com",
        role=role.value if isinstance(role, UserRole) else role,
        tier=tier.value if isinstance(tier, Tier) else tier,
        hours_used=hours_used,
        transcription_count=transcription_count,
        on_demand_analysis_count=on_demand_analysis_count,
        last_reset_at=last_reset_at,
        payg_credits_hours=payg_credits_hours,
        payment_customer_id=payment_customer_id,
        payment_subscription_id=payment_subscription_id,
        subscription_status="active" if payment_subscription_id else None,
        is_deleted=is_deleted,
        deleted_at=None,
    )


def create_reset_job(
    job_id: str = "usage-reset-2026-03",
    period: str = "2026-03",
    status: str = "in_progress",
    total_users: int = 0,
    processed_users: int = 0,
    last_processed_user_id: str | None = None,
    failed_user_ids: list[str] | None = None,
    started_at: datetime = FIXED_NOW,
) -> ResetJob:
    """Create a transient ResetJob."""
    return ResetJob(
        job_id=job_id,
        period=period,
        status=status,
        started_at=started_at,
        completed_at=None,
        total_users=total_users,
        processed_users=processed_users,
        last_processed_user_id=last_processed_user_id,
        failed_user_ids=list(failed_user_ids or []),
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def db():
    """In-memory SQLite database with all tables created."""
    connection = DatabaseConnection(
        url="sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await connection.create_tables()
    yield connection
    await connection.close()


@pytest.fixture
def user_repo(db):
    return UserRepository(db)


@pytest.fixture
def reset_job_repo(db):
    return ResetJobRepository(db)


@pytest.fixture
def usage_record_repo(db):
    return UsageRecordRepository(db)


@pytest.fixture
def content_repo(db):
    return UserContentRepository(db)


async def seed(db: DatabaseConnection, *rows) -> None:
    """Insert rows in one transaction."""
    async with db.session() as session:
        session.add_all(rows)


# =============================================================================
# Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_users():
    """UserRepository double."""
    return AsyncMock(spec=UserRepository)


@pytest.fixture
def mock_jobs():
    """ResetJobRepository double with no existing jobs."""
    jobs = AsyncMock(spec=ResetJobRepository)
    jobs.get.return_value = None
    jobs.get_in_progress.return_value = None
    return jobs


@pytest.fixture
def mock_usage_records():
    """UsageRecordRepository double."""
    return AsyncMock(spec=UsageRecordRepository)


@pytest.fixture
def scheduler_context():
    """Fresh scheduler context with shutdown not requested."""
    return SchedulerContext()


@pytest.fixture
def fixed_clock():
    """Clock pinned to FIXED_NOW."""
    return lambda: FIXED_NOW
