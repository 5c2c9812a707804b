"""Usage accounting for completed operations and monthly resets.

Counter updates go to the user row as targeted increments. The usage record
appended afterwards is analytics only: if it cannot be written the failure
is logged and the counters stand.
"""

import math
from collections.abc import Mapping
from datetime import datetime

from ..config import QuotaSettings
from ..db.models import User, utcnow
from ..db.repositories import UsageRecordRepository, UserRepository
from ..errors import NotFoundError
from ..logging import get_logger
from ..tiers import TIER_LIMITS, Tier, TierLimits, get_tier_limits, parse_tier
from .overage import Overage, calculate_overage
from .stats import UsageStats, build_usage_stats

logger = get_logger(__name__)

SECONDS_PER_HOUR = 3600

RECORD_TYPE_TRANSCRIPTION = "transcription"


class UsageTracker:
    """Records completed work against a user's monthly counters."""

    def __init__(
        self,
        users: UserRepository,
        usage_records: UsageRecordRepository,
        settings: QuotaSettings | None = None,
        tier_table: Mapping[Tier, TierLimits] = TIER_LIMITS,
    ) -> None:
        self._users = users
        self._usage_records = usage_records
        self._settings = settings or QuotaSettings()
        self._tier_table = tier_table

    async def _load_user(self, user_id: str) -> User:
        user = await self._users.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def track_transcription(
        self,
        user_id: str,
        operation_id: str,
        duration_seconds: float,
    ) -> None:
        """Add a finished transcription to the user's monthly usage.

        Pay-as-you-go users also have the hours deducted from their credit
        balance, floored at zero.

        Raises:
            ValueError: ``duration_seconds`` is negative.
            NotFoundError: The user does not exist.
        """
        if duration_seconds < 0:
            raise ValueError("duration_seconds must be non-negative")

        user = await self._load_user(user_id)
        tier = parse_tier(user.tier)
        hours = duration_seconds / SECONDS_PER_HOUR
        is_payg = tier == Tier.PAYG

        updated = await self._users.increment_transcription_usage(
            user_id, hours, deduct_payg_credits=is_payg
        )
        if not updated:
            raise NotFoundError("User", user_id)

        logger.info(
            "Tracked transcription",
            user_id=user_id,
            operation_id=operation_id,
            hours=round(hours, 4),
            tier=tier.value,
            payg_deducted=is_payg,
        )

        try:
            await self._usage_records.create(
                user_id=user_id,
                source_operation_id=operation_id,
                record_type=RECORD_TYPE_TRANSCRIPTION,
                tier=tier.value,
                duration_seconds=duration_seconds,
                duration_hours=hours,
                cost_cents=(
                    math.ceil(hours * self._settings.payg_rate_cents_per_hour)
                    if is_payg
                    else None
                ),
            )
        except Exception as e:
            logger.error(
                "Failed to append usage record",
                user_id=user_id,
                operation_id=operation_id,
                error=str(e),
            )

    async def track_on_demand_analysis(self, user_id: str, analysis_id: str) -> None:
        """Count one on-demand analysis against the user's month.

        Raises:
            NotFoundError: The user does not exist.
        """
        if not await self._users.increment_analysis_count(user_id):
            raise NotFoundError("User", user_id)
        logger.info("Tracked on-demand analysis", user_id=user_id, analysis_id=analysis_id)

    async def reset_monthly_usage(self, user_id: str, reset_at: datetime | None = None) -> None:
        """Zero the user's monthly counters. Repeating it changes nothing.

        Raises:
            NotFoundError: The user does not exist.
        """
        if not await self._users.reset_usage(user_id, reset_at or utcnow()):
            raise NotFoundError("User", user_id)
        logger.debug("Reset monthly usage", user_id=user_id)

    async def calculate_overage(self, user_id: str) -> Overage:
        """Billable overage for the user's current month.

        Raises:
            NotFoundError: The user does not exist.
        """
        user = await self._load_user(user_id)
        tier = parse_tier(user.tier)
        overage = calculate_overage(
            tier,
            user.hours_used,
            get_tier_limits(tier, self._tier_table),
            self._settings.overage_rate_cents_per_hour,
        )
        if overage.hours > 0:
            logger.info(
                "Calculated overage",
                user_id=user_id,
                hours=round(overage.hours, 2),
                amount_cents=overage.amount_cents,
            )
        return overage

    async def get_usage_stats(self, user_id: str) -> UsageStats:
        """Usage, limits, overage and warnings for the user's current month.

        Raises:
            NotFoundError: The user does not exist.
        """
        user = await self._load_user(user_id)
        tier = parse_tier(user.tier)
        limits = get_tier_limits(tier, self._tier_table)
        overage = calculate_overage(
            tier, user.hours_used, limits, self._settings.overage_rate_cents_per_hour
        )
        return build_usage_stats(user, tier, limits, overage, self._settings)
