"""Tests for soft and hard account deletion."""

from unittest.mock import AsyncMock, call

import pytest
from conftest import FIXED_NOW, create_user

from transcribe_usage.blob import BlobStore
from transcribe_usage.db import UserContentRepository
from transcribe_usage.deletion import AccountDeletionOrchestrator, DeletionType
from transcribe_usage.errors import ExternalServiceError, NotFoundError
from transcribe_usage.identity import IdentityProvider
from transcribe_usage.payments import PaymentProcessor

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mock_content():
    content = AsyncMock(spec=UserContentRepository)
    content.delete_transcriptions.return_value = 4
    content.delete_analyses.return_value = 3
    content.delete_folders.return_value = 2
    content.delete_imported_conversations.return_value = 1
    return content


@pytest.fixture
def mock_blobs():
    blobs = AsyncMock(spec=BlobStore)
    blobs.delete_prefix.return_value = 5
    return blobs


@pytest.fixture
def mock_payments():
    payments = AsyncMock(spec=PaymentProcessor)
    payments.cancel_subscription.return_value = True
    payments.delete_customer.return_value = True
    return payments


@pytest.fixture
def mock_identity():
    identity = AsyncMock(spec=IdentityProvider)
    identity.delete_user.return_value = True
    return identity


@pytest.fixture
def paying_user():
    return create_user(
        "user-1",
        payment_customer_id="cus_123",
        payment_subscription_id="sub_456",
    )


@pytest.fixture
def orchestrator(
    mock_users,
    mock_usage_records,
    mock_content,
    mock_blobs,
    mock_payments,
    mock_identity,
    fixed_clock,
    paying_user,
):
    mock_users.get.return_value = paying_user
    mock_users.delete.return_value = True
    mock_users.soft_delete.return_value = True
    mock_usage_records.delete_for_user.return_value = 6
    return AccountDeletionOrchestrator(
        mock_users,
        mock_usage_records,
        mock_content,
        mock_blobs,
        mock_payments,
        mock_identity,
        clock=fixed_clock,
    )


# =============================================================================
# Soft Delete
# =============================================================================


class TestSoftDelete:
    """Tests for soft deletion."""

    @pytest.mark.asyncio
    async def test_flags_user_only(
        self, orchestrator, mock_users, mock_content, mock_payments, mock_identity
    ):
        """Soft delete leaves data, payments and identity untouched."""
        summary = await orchestrator.delete_account("user-1")

        mock_users.soft_delete.assert_awaited_once_with("user-1", FIXED_NOW)
        mock_users.delete.assert_not_awaited()
        mock_content.delete_transcriptions.assert_not_awaited()
        mock_payments.cancel_subscription.assert_not_awaited()
        mock_payments.delete_customer.assert_not_awaited()
        mock_identity.delete_user.assert_not_awaited()
        assert summary.deletion_type == DeletionType.SOFT
        assert summary.user_record is True
        assert summary.succeeded

    @pytest.mark.asyncio
    async def test_missing_user_raises(self, orchestrator, mock_users):
        mock_users.soft_delete.return_value = False
        with pytest.raises(NotFoundError):
            await orchestrator.delete_account("ghost")


# =============================================================================
# Hard Delete
# =============================================================================


class TestHardDelete:
    """Tests for hard deletion."""

    @pytest.mark.asyncio
    async def test_full_deletion_summary(self, orchestrator, mock_blobs):
        summary = await orchestrator.delete_account("user-1", hard=True)

        assert summary.deletion_type == DeletionType.HARD
        assert summary.transcriptions == 4
        assert summary.analyses == 3
        assert summary.folders == 2
        assert summary.usage_records == 6
        assert summary.imported_conversations == 1
        assert summary.storage_files == 5
        assert summary.subscription_cancelled is True
        assert summary.payment_customer_deleted is True
        assert summary.user_record is True
        assert summary.auth_account is True
        assert summary.errors == []
        mock_blobs.delete_prefix.assert_awaited_once_with("users/user-1/")

    @pytest.mark.asyncio
    async def test_steps_run_in_order(
        self,
        orchestrator,
        mock_users,
        mock_usage_records,
        mock_content,
        mock_blobs,
        mock_payments,
        mock_identity,
    ):
        """Identity is removed last, after the user row."""
        order = []

        def record(name, value):
            def side_effect(*args, **kwargs):
                order.append(name)
                return value

            return side_effect

        mock_content.delete_transcriptions.side_effect = record("transcriptions", 4)
        mock_content.delete_analyses.side_effect = record("analyses", 3)
        mock_content.delete_folders.side_effect = record("folders", 2)
        mock_usage_records.delete_for_user.side_effect = record("usage_records", 6)
        mock_content.delete_imported_conversations.side_effect = record("imported", 1)
        mock_blobs.delete_prefix.side_effect = record("storage", 5)
        mock_payments.cancel_subscription.side_effect = record("subscription", True)
        mock_payments.delete_customer.side_effect = record("customer", True)
        mock_users.delete.side_effect = record("user", True)
        mock_identity.delete_user.side_effect = record("identity", True)

        await orchestrator.hard_delete("user-1")

        assert order == [
            "transcriptions",
            "analyses",
            "folders",
            "usage_records",
            "imported",
            "storage",
            "subscription",
            "customer",
            "user",
            "identity",
        ]

    @pytest.mark.asyncio
    async def test_subscription_cancelled_immediately(self, orchestrator, mock_payments):
        await orchestrator.hard_delete("user-1")

        assert mock_payments.cancel_subscription.await_args == call(
            "sub_456", cancel_at_period_end=False
        )
        mock_payments.delete_customer.assert_awaited_once_with("cus_123")

    @pytest.mark.asyncio
    async def test_payment_failure_is_not_fatal(self, orchestrator, mock_payments):
        """Payment errors are recorded and deletion continues."""
        mock_payments.cancel_subscription.side_effect = ExternalServiceError("stripe", "down")
        mock_payments.delete_customer.side_effect = ExternalServiceError("stripe", "down")

        summary = await orchestrator.hard_delete("user-1")

        assert summary.subscription_cancelled is False
        assert summary.payment_customer_deleted is False
        assert summary.user_record is True
        assert summary.auth_account is True
        assert [e.split(":")[0] for e in summary.errors] == ["subscription", "payment_customer"]
        assert not summary.succeeded

    @pytest.mark.asyncio
    async def test_failing_step_records_zero(self, orchestrator, mock_content):
        mock_content.delete_analyses.side_effect = RuntimeError("table locked")

        summary = await orchestrator.hard_delete("user-1")

        assert summary.analyses == 0
        assert summary.folders == 2
        assert summary.errors == ["analyses: table locked"]
        assert summary.auth_account is True

    @pytest.mark.asyncio
    async def test_user_row_failure_skips_identity(self, orchestrator, mock_users, mock_identity):
        """The identity account survives so the user can retry."""
        mock_users.delete.side_effect = RuntimeError("deadlock")

        summary = await orchestrator.hard_delete("user-1")

        mock_identity.delete_user.assert_not_awaited()
        assert summary.user_record is False
        assert summary.auth_account is False
        assert summary.errors == ["user_record: deadlock"]

    @pytest.mark.asyncio
    async def test_identity_already_absent(self, orchestrator, mock_identity):
        mock_identity.delete_user.return_value = False

        summary = await orchestrator.hard_delete("user-1")

        assert summary.auth_account is True
        assert summary.succeeded

    @pytest.mark.asyncio
    async def test_identity_failure_recorded(self, orchestrator, mock_identity):
        mock_identity.delete_user.side_effect = ExternalServiceError("auth0", "500")

        summary = await orchestrator.hard_delete("user-1")

        assert summary.user_record is True
        assert summary.auth_account is False
        assert summary.errors == ["auth_account: auth0: 500"]

    @pytest.mark.asyncio
    async def test_unknown_user_cleans_leftovers(
        self, orchestrator, mock_users, mock_content, mock_payments, mock_identity
    ):
        """Leftover data is removed but payments are skipped without a user row."""
        mock_users.get.return_value = None

        summary = await orchestrator.hard_delete("ghost")

        mock_content.delete_transcriptions.assert_awaited_once_with("ghost")
        mock_payments.cancel_subscription.assert_not_awaited()
        mock_payments.delete_customer.assert_not_awaited()
        mock_identity.delete_user.assert_awaited_once_with("ghost")
        assert summary.subscription_cancelled is False

    @pytest.mark.asyncio
    async def test_user_without_subscription(self, orchestrator, mock_users, mock_payments):
        mock_users.get.return_value = create_user("user-1", payment_customer_id="cus_123")

        summary = await orchestrator.hard_delete("user-1")

        mock_payments.cancel_subscription.assert_not_awaited()
        assert summary.payment_customer_deleted is True
        assert summary.subscription_cancelled is False
