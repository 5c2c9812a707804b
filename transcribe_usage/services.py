"""Wiring of repositories, external clients and services from settings."""

from dataclasses import dataclass

from .blob import BlobStore
from .config import Settings
from .db import (
    DatabaseConnection,
    ResetJobRepository,
    UsageRecordRepository,
    UserContentRepository,
    UserRepository,
)
from .deletion import AccountDeletionOrchestrator
from .identity import IdentityProvider
from .payments import PaymentProcessor
from .quota import QuotaEngine
from .scheduler import (
    ResetJobRunner,
    ResetJobStatusReport,
    SchedulerContext,
    UsageScheduler,
    get_active_reset_job_status,
    get_reset_job_status,
)
from .usage import UsageTracker


@dataclass
class Services:
    """Everything callers need, built around one database connection."""

    db: DatabaseConnection
    users: UserRepository
    reset_jobs: ResetJobRepository
    usage_records: UsageRecordRepository
    content: UserContentRepository
    quota: QuotaEngine
    tracker: UsageTracker
    deletion: AccountDeletionOrchestrator
    scheduler: UsageScheduler

    async def get_reset_job_status(self, job_id: str) -> ResetJobStatusReport:
        return await get_reset_job_status(self.reset_jobs, job_id)

    async def get_active_reset_job_status(self) -> ResetJobStatusReport:
        return await get_active_reset_job_status(self.reset_jobs)


def create_database(settings: Settings) -> DatabaseConnection:
    return DatabaseConnection(
        url=settings.database.url or None,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
        echo=settings.database.echo,
    )


def build_services(
    settings: Settings,
    db: DatabaseConnection | None = None,
    blobs: BlobStore | None = None,
    payments: PaymentProcessor | None = None,
    identity: IdentityProvider | None = None,
    context: SchedulerContext | None = None,
) -> Services:
    """Build the service graph. External clients may be passed in for tests."""
    db = db or create_database(settings)
    users = UserRepository(db)
    reset_jobs = ResetJobRepository(db)
    usage_records = UsageRecordRepository(db)
    content = UserContentRepository(db)

    blobs = blobs or BlobStore(
        container_name=settings.storage.container,
        connection_string=settings.storage.connection_string or None,
        use_managed_identity=settings.storage.use_managed_identity,
        account_url=settings.storage.account_url or None,
    )
    payments = payments or PaymentProcessor(
        api_key=settings.stripe.api_key,
        max_network_retries=settings.stripe.max_network_retries,
    )
    identity = identity or IdentityProvider(
        domain=settings.auth0.domain,
        client_id=settings.auth0.client_id,
        client_secret=settings.auth0.client_secret,
        timeout=settings.auth0.timeout_seconds,
    )

    tracker = UsageTracker(users, usage_records, settings.quota)
    context = context or SchedulerContext()
    runner = ResetJobRunner(
        users,
        reset_jobs,
        tracker,
        context,
        checkpoint_interval=settings.scheduler.checkpoint_interval,
    )

    return Services(
        db=db,
        users=users,
        reset_jobs=reset_jobs,
        usage_records=usage_records,
        content=content,
        quota=QuotaEngine(users, settings.quota),
        tracker=tracker,
        deletion=AccountDeletionOrchestrator(
            users, usage_records, content, blobs, payments, identity
        ),
        scheduler=UsageScheduler(
            runner,
            users,
            usage_records,
            tracker,
            context,
            settings=settings.scheduler,
            quota_settings=settings.quota,
        ),
    )
