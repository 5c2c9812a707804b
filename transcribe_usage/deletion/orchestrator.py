"""Soft and hard account deletion.

Hard deletion runs a fixed sequence of independent steps. A failing step is
logged and recorded in the summary and the sequence continues, so a retry of
the whole operation picks up whatever is left. The identity account goes
last: once it is removed the user can no longer sign in to retry.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from ..blob import BlobStore, user_prefix
from ..db.models import User, utcnow
from ..db.repositories import UsageRecordRepository, UserContentRepository, UserRepository
from ..errors import NotFoundError
from ..identity import IdentityProvider
from ..logging import LogContext, get_logger
from ..payments import PaymentProcessor

logger = get_logger(__name__)


class DeletionType(str, Enum):
    SOFT = "soft"
    HARD = "hard"


class DeletionSummary(BaseModel):
    """What a deletion removed, for audit and retry decisions."""

    user_id: str
    deletion_type: DeletionType
    transcriptions: int = 0
    analyses: int = 0
    folders: int = 0
    usage_records: int = 0
    imported_conversations: int = 0
    storage_files: int = 0
    subscription_cancelled: bool = False
    payment_customer_deleted: bool = False
    user_record: bool = False
    auth_account: bool = False
    errors: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors


class AccountDeletionOrchestrator:
    """Deletes an account across the database, blob storage, Stripe and Auth0."""

    def __init__(
        self,
        users: UserRepository,
        usage_records: UsageRecordRepository,
        content: UserContentRepository,
        blobs: BlobStore,
        payments: PaymentProcessor,
        identity: IdentityProvider,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._users = users
        self._usage_records = usage_records
        self._content = content
        self._blobs = blobs
        self._payments = payments
        self._identity = identity
        self._clock = clock

    async def delete_account(self, user_id: str, hard: bool = False) -> DeletionSummary:
        """Delete an account.

        Args:
            user_id: Account to delete.
            hard: Remove everything instead of flagging the account deleted.

        Raises:
            NotFoundError: Soft delete of an account that does not exist.
        """
        with LogContext(user_id=user_id, deletion_type="hard" if hard else "soft"):
            if hard:
                return await self.hard_delete(user_id)
            return await self.soft_delete(user_id)

    async def soft_delete(self, user_id: str) -> DeletionSummary:
        """Flag the account deleted. Data and the payment subscription stay."""
        deleted_at = self._clock()
        if not await self._users.soft_delete(user_id, deleted_at):
            raise NotFoundError("User", user_id)

        logger.info("Soft delete completed, payment subscription preserved")
        return DeletionSummary(
            user_id=user_id,
            deletion_type=DeletionType.SOFT,
            user_record=True,
        )

    async def hard_delete(self, user_id: str) -> DeletionSummary:
        """Remove the account and everything it owns.

        Steps, in order: transcriptions, analyses, folders, usage records,
        imported conversations, stored files, payment cleanup, the user row,
        and finally the identity account. The identity step is skipped if
        the user row could not be deleted, leaving the account retryable.
        """
        summary = DeletionSummary(user_id=user_id, deletion_type=DeletionType.HARD)
        user = await self._users.get(user_id)
        if user is None:
            logger.warning("User record absent, continuing hard delete for leftovers")

        summary.transcriptions = await self._count_step(
            summary, "transcriptions", self._content.delete_transcriptions(user_id)
        )
        summary.analyses = await self._count_step(
            summary, "analyses", self._content.delete_analyses(user_id)
        )
        summary.folders = await self._count_step(
            summary, "folders", self._content.delete_folders(user_id)
        )
        summary.usage_records = await self._count_step(
            summary, "usage_records", self._usage_records.delete_for_user(user_id)
        )
        summary.imported_conversations = await self._count_step(
            summary,
            "imported_conversations",
            self._content.delete_imported_conversations(user_id),
        )
        summary.storage_files = await self._count_step(
            summary, "storage_files", self._blobs.delete_prefix(user_prefix(user_id))
        )

        if user is not None:
            await self._cleanup_payments(user, summary)

        try:
            await self._users.delete(user_id)
        except Exception as e:
            logger.error("Failed to delete user record", error=str(e))
            summary.errors.append(f"user_record: {e}")
            logger.warning("Skipping identity deletion so the account stays retryable")
            return summary
        summary.user_record = True

        try:
            await self._identity.delete_user(user_id)
        except Exception as e:
            logger.error("Failed to delete identity account", error=str(e))
            summary.errors.append(f"auth_account: {e}")
        else:
            summary.auth_account = True

        logger.info(
            "Hard delete completed",
            transcriptions=summary.transcriptions,
            analyses=summary.analyses,
            folders=summary.folders,
            usage_records=summary.usage_records,
            imported_conversations=summary.imported_conversations,
            storage_files=summary.storage_files,
            subscription_cancelled=summary.subscription_cancelled,
            payment_customer_deleted=summary.payment_customer_deleted,
            auth_account=summary.auth_account,
            errors=len(summary.errors),
        )
        return summary

    async def _count_step(
        self,
        summary: DeletionSummary,
        step: str,
        operation: Awaitable[int],
    ) -> int:
        try:
            count = await operation
        except Exception as e:
            logger.error("Deletion step failed", step=step, error=str(e))
            summary.errors.append(f"{step}: {e}")
            return 0
        logger.info("Deletion step completed", step=step, count=count)
        return count

    async def _cleanup_payments(self, user: User, summary: DeletionSummary) -> None:
        """Cancel the subscription, then delete the customer. Never raises."""
        if user.payment_subscription_id:
            try:
                await self._payments.cancel_subscription(
                    user.payment_subscription_id, cancel_at_period_end=False
                )
            except Exception as e:
                logger.warning(
                    "Failed to cancel subscription",
                    subscription_id=user.payment_subscription_id,
                    error=str(e),
                )
                summary.errors.append(f"subscription: {e}")
            else:
                summary.subscription_cancelled = True

        if user.payment_customer_id:
            try:
                await self._payments.delete_customer(user.payment_customer_id)
            except Exception as e:
                logger.warning(
                    "Failed to delete payment customer",
                    customer_id=user.payment_customer_id,
                    error=str(e),
                )
                summary.errors.append(f"payment_customer: {e}")
            else:
                summary.payment_customer_deleted = True
