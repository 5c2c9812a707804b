"""Tests for usage tracking, overage and usage statistics."""

import pytest
from conftest import FIXED_NOW, create_user

from transcribe_usage.config import QuotaSettings
from transcribe_usage.errors import NotFoundError
from transcribe_usage.tiers import TIER_LIMITS, Tier
from transcribe_usage.usage import Overage, UsageTracker, calculate_overage


@pytest.fixture
def tracker(mock_users, mock_usage_records):
    return UsageTracker(mock_users, mock_usage_records, QuotaSettings())


# =============================================================================
# Transcription Tracking
# =============================================================================


class TestTrackTranscription:
    """Tests for UsageTracker.track_transcription."""

    @pytest.mark.asyncio
    async def test_increments_counters_and_appends_record(
        self, tracker, mock_users, mock_usage_records
    ):
        """Counters are incremented and one usage record is written."""
        mock_users.get.return_value = create_user(tier=Tier.PROFESSIONAL)
        mock_users.increment_transcription_usage.return_value = True

        await tracker.track_transcription("user-1", "tx-1", 5400)

        mock_users.increment_transcription_usage.assert_awaited_once_with(
            "user-1", 1.5, deduct_payg_credits=False
        )
        record = mock_usage_records.create.await_args.kwargs
        assert record["source_operation_id"] == "tx-1"
        assert record["record_type"] == "transcription"
        assert record["duration_hours"] == 1.5
        assert record["tier"] == "professional"
        assert record["cost_cents"] is None

    @pytest.mark.asyncio
    async def test_payg_deducts_credits_and_records_cost(
        self, tracker, mock_users, mock_usage_records
    ):
        """Pay-as-you-go usage draws down credits and is priced at 150 cents/hour."""
        mock_users.get.return_value = create_user(tier=Tier.PAYG, payg_credits_hours=3)
        mock_users.increment_transcription_usage.return_value = True

        await tracker.track_transcription("user-1", "tx-1", 1800)

        mock_users.increment_transcription_usage.assert_awaited_once_with(
            "user-1", 0.5, deduct_payg_credits=True
        )
        assert mock_usage_records.create.await_args.kwargs["cost_cents"] == 75

    @pytest.mark.asyncio
    async def test_record_failure_is_swallowed(self, tracker, mock_users, mock_usage_records):
        """A failed analytics write does not fail the tracked operation."""
        mock_users.get.return_value = create_user()
        mock_users.increment_transcription_usage.return_value = True
        mock_usage_records.create.side_effect = RuntimeError("store unavailable")

        await tracker.track_transcription("user-1", "tx-1", 60)

        mock_users.increment_transcription_usage.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_negative_duration_rejected(self, tracker, mock_users):
        """Negative durations are rejected before any write."""
        with pytest.raises(ValueError):
            await tracker.track_transcription("user-1", "tx-1", -1)
        mock_users.increment_transcription_usage.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_user(self, tracker, mock_users, mock_usage_records):
        """Tracking for a missing user raises NotFound and writes nothing."""
        mock_users.get.return_value = None
        with pytest.raises(NotFoundError):
            await tracker.track_transcription("ghost", "tx-1", 60)
        mock_usage_records.create.assert_not_awaited()


class TestTrackAnalysisAndReset:
    """Tests for track_on_demand_analysis and reset_monthly_usage."""

    @pytest.mark.asyncio
    async def test_analysis_increments_count_only(
        self, tracker, mock_users, mock_usage_records
    ):
        """An analysis touches only its own counter."""
        mock_users.increment_analysis_count.return_value = True
        await tracker.track_on_demand_analysis("user-1", "analysis-1")
        mock_users.increment_analysis_count.assert_awaited_once_with("user-1")
        mock_users.increment_transcription_usage.assert_not_awaited()
        mock_usage_records.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_analysis_unknown_user(self, tracker, mock_users):
        mock_users.increment_analysis_count.return_value = False
        with pytest.raises(NotFoundError):
            await tracker.track_on_demand_analysis("ghost", "analysis-1")

    @pytest.mark.asyncio
    async def test_reset_passes_timestamp(self, tracker, mock_users):
        """The reset timestamp is forwarded to the repository."""
        mock_users.reset_usage.return_value = True
        await tracker.reset_monthly_usage("user-1", reset_at=FIXED_NOW)
        mock_users.reset_usage.assert_awaited_once_with("user-1", FIXED_NOW)

    @pytest.mark.asyncio
    async def test_reset_unknown_user(self, tracker, mock_users):
        mock_users.reset_usage.return_value = False
        with pytest.raises(NotFoundError):
            await tracker.reset_monthly_usage("ghost")


# =============================================================================
# Overage
# =============================================================================


class TestCalculateOverage:
    """Tests for overage calculation."""

    def test_professional_overage(self):
        """70h against a 60h allowance is 10h and 500 cents."""
        overage = calculate_overage(Tier.PROFESSIONAL, 70, TIER_LIMITS[Tier.PROFESSIONAL], 50)
        assert overage == Overage(hours=10, amount_cents=500)

    def test_under_allowance(self):
        """No overage below the allowance."""
        overage = calculate_overage(Tier.BUSINESS, 150, TIER_LIMITS[Tier.BUSINESS], 50)
        assert overage == Overage()

    def test_rounds_up_partial_cents(self):
        """Partial cents round up."""
        overage = calculate_overage(Tier.PROFESSIONAL, 60.01, TIER_LIMITS[Tier.PROFESSIONAL], 50)
        assert overage.amount_cents == 1

    def test_float_noise_does_not_overcharge(self):
        """Representation error does not add a cent."""
        overage = calculate_overage(Tier.PROFESSIONAL, 60.7, TIER_LIMITS[Tier.PROFESSIONAL], 50)
        assert overage.amount_cents == 35

    @pytest.mark.parametrize("tier", [Tier.FREE, Tier.PAYG])
    @pytest.mark.parametrize("hours_used", [0, 60, 500])
    def test_free_and_payg_never_accrue(self, tier, hours_used):
        """Free and payg users never have overage."""
        assert calculate_overage(tier, hours_used, TIER_LIMITS[tier], 50) == Overage()

    @pytest.mark.asyncio
    async def test_tracker_overage(self, tracker, mock_users):
        """calculate_overage loads the user and applies the configured rate."""
        mock_users.get.return_value = create_user(tier=Tier.PROFESSIONAL, hours_used=70)
        overage = await tracker.calculate_overage("user-1")
        assert overage.hours == 10
        assert overage.amount_cents == 500


# =============================================================================
# Usage Stats
# =============================================================================


class TestUsageStats:
    """Tests for get_usage_stats."""

    @pytest.mark.asyncio
    async def test_free_tier_percent_by_count(self, tracker, mock_users):
        """Free usage is measured by transcription count."""
        mock_users.get.return_value = create_user(transcription_count=2)
        stats = await tracker.get_usage_stats("user-1")
        assert stats.tier is Tier.FREE
        assert stats.limits.transcriptions == 3
        assert round(stats.percent_used, 2) == 66.67
        assert stats.warnings == []

    @pytest.mark.asyncio
    async def test_near_quota_warning(self, tracker, mock_users):
        """At 80% or more a usage warning is shown."""
        mock_users.get.return_value = create_user(tier=Tier.PROFESSIONAL, hours_used=51)
        stats = await tracker.get_usage_stats("user-1")
        assert stats.percent_used == pytest.approx(85)
        assert stats.warnings == ["You've used 85% of your monthly quota"]

    @pytest.mark.asyncio
    async def test_exceeded_with_overage(self, tracker, mock_users):
        """Over the allowance the percentage caps at 100 and overage is reported."""
        mock_users.get.return_value = create_user(tier=Tier.PROFESSIONAL, hours_used=70)
        stats = await tracker.get_usage_stats("user-1")
        assert stats.percent_used == 100
        assert stats.overage.amount_cents == 500
        assert stats.warnings == [
            "You have exceeded your monthly quota",
            "You have 10.00 hours of overage charges ($5.00)",
        ]

    @pytest.mark.asyncio
    async def test_low_payg_credits(self, tracker, mock_users):
        """Pay-as-you-go users are warned when credits run low."""
        mock_users.get.return_value = create_user(tier=Tier.PAYG, payg_credits_hours=2.5)
        stats = await tracker.get_usage_stats("user-1")
        assert stats.percent_used == 0
        assert stats.warnings == ["Low PAYG credits: 2.50 hours remaining"]

    @pytest.mark.asyncio
    async def test_unknown_user(self, tracker, mock_users):
        mock_users.get.return_value = None
        with pytest.raises(NotFoundError):
            await tracker.get_usage_stats("ghost")
