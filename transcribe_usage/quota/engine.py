"""Admission checks run before uploads and on-demand analyses.

Every check loads the user fresh, lets admins through before anything else,
then applies the tier's rules in a fixed order. The first violated rule
raises ``QuotaExceededError``; nothing is partially admitted.
"""

import math
from collections.abc import Mapping

from ..config import QuotaSettings
from ..db.models import User
from ..db.repositories import UserRepository
from ..errors import (
    InvalidConfigurationError,
    NotFoundError,
    QuotaErrorCode,
    QuotaExceededError,
)
from ..logging import get_logger
from ..tiers import (
    GB,
    MB,
    OVERAGE_TIERS,
    TIER_LIMITS,
    Tier,
    TierLimits,
    get_tier_limits,
    parse_tier,
)
from .estimation import estimate_duration_minutes

logger = get_logger(__name__)


def _format_size(size_bytes: int) -> str:
    if size_bytes >= GB:
        return f"{size_bytes // GB}GB"
    return f"{size_bytes // MB}MB"


class QuotaEngine:
    """Decides whether a user may start a transcription or analysis."""

    def __init__(
        self,
        users: UserRepository,
        settings: QuotaSettings | None = None,
        tier_table: Mapping[Tier, TierLimits] = TIER_LIMITS,
    ) -> None:
        self._users = users
        self._settings = settings or QuotaSettings()
        self._tier_table = tier_table

    async def _load_user(self, user_id: str) -> User:
        user = await self._users.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def _resolve(self, user: User) -> tuple[Tier, TierLimits]:
        try:
            tier = parse_tier(user.tier)
            return tier, get_tier_limits(tier, self._tier_table)
        except InvalidConfigurationError:
            logger.error("Invalid subscription tier", user_id=user.user_id, tier=user.tier)
            raise

    def estimate_duration_minutes(self, file_size_bytes: int, mime_type: str | None) -> int:
        """Estimate an upload's length using the configured default rate and ceiling."""
        return estimate_duration_minutes(
            file_size_bytes,
            mime_type,
            default_mb_per_minute=self._settings.default_mb_per_minute,
            max_minutes=self._settings.max_estimated_minutes,
        )

    async def check_upload_quota(
        self,
        user_id: str,
        file_size_bytes: int,
        estimated_minutes: float,
    ) -> None:
        """Admit or reject an upload.

        Raises:
            NotFoundError: The user does not exist.
            InvalidConfigurationError: The user's tier has no limits row.
            QuotaExceededError: A tier rule is violated.
        """
        user = await self._load_user(user_id)
        if user.is_admin:
            logger.debug("Admin bypasses upload quota", user_id=user_id)
            return

        tier, limits = self._resolve(user)
        estimated_hours = estimated_minutes / 60

        logger.info(
            "Checking upload quota",
            user_id=user_id,
            tier=tier.value,
            transcription_count=user.transcription_count,
            hours_used=round(user.hours_used, 2),
        )

        if tier == Tier.FREE:
            self._check_free(user, limits, estimated_minutes)
        elif tier in OVERAGE_TIERS:
            self._check_overage_tier(user, tier, limits, estimated_hours)
        elif tier == Tier.PAYG:
            self._check_payg(user, estimated_hours)

        self._check_file_size(tier, limits, file_size_bytes)
        logger.info("Upload quota check passed", user_id=user_id, tier=tier.value)

    async def check_analysis_quota(self, user_id: str) -> None:
        """Admit or reject an on-demand analysis.

        Only the free tier caps on-demand analyses; paid tiers are unlimited.
        """
        user = await self._load_user(user_id)
        if user.is_admin:
            logger.debug("Admin bypasses analysis quota", user_id=user_id)
            return

        tier, limits = self._resolve(user)
        cap = limits.on_demand_analyses_per_month
        if tier == Tier.FREE and cap is not None and user.on_demand_analysis_count >= cap:
            raise QuotaExceededError(
                QuotaErrorCode.ON_DEMAND_ANALYSES,
                f"Free tier limit reached ({cap} on-demand analyses/month). "
                "Upgrade to Professional for unlimited analyses.",
            )
        logger.info("Analysis quota check passed", user_id=user_id, tier=tier.value)

    def _check_free(self, user: User, limits: TierLimits, estimated_minutes: float) -> None:
        cap = limits.transcriptions_per_month
        if cap is not None and user.transcription_count >= cap:
            raise QuotaExceededError(
                QuotaErrorCode.TRANSCRIPTIONS,
                f"Free tier limit reached ({cap} transcriptions/month). "
                "Upgrade to Professional for unlimited transcriptions.",
            )

        max_minutes = limits.max_file_duration_minutes
        if max_minutes is not None and estimated_minutes > max_minutes:
            raise QuotaExceededError(
                QuotaErrorCode.DURATION,
                f"File duration exceeds free tier limit ({max_minutes} minutes). "
                "Upgrade to Professional for unlimited duration.",
            )

    def _check_overage_tier(
        self,
        user: User,
        tier: Tier,
        limits: TierLimits,
        estimated_hours: float,
    ) -> None:
        projected = user.hours_used + estimated_hours
        if limits.hours_per_month is None or projected <= limits.hours_per_month:
            return

        cap = self._settings.absolute_hours_cap
        if projected > cap:
            raise QuotaExceededError(
                QuotaErrorCode.HARD_CAP,
                f"Monthly usage limit reached ({cap:g} hours). Your overage charges are "
                "capped. Please contact support to increase your limit.",
            )

        overage_hours = projected - limits.hours_per_month
        logger.warning(
            "Upload admitted as overage",
            user_id=user.user_id,
            tier=tier.value,
            hours_per_month=limits.hours_per_month,
            overage_hours=round(overage_hours, 2),
            overage_cents=math.ceil(overage_hours * self._settings.overage_rate_cents_per_hour),
        )

    def _check_payg(self, user: User, estimated_hours: float) -> None:
        available = user.payg_credits_hours or 0.0
        if available < estimated_hours:
            raise QuotaExceededError(
                QuotaErrorCode.PAYG_CREDITS,
                f"Insufficient PAYG credits. Required: {estimated_hours:.2f} hours, "
                f"Available: {available:.2f} hours. Purchase more credits to continue.",
            )

    def _check_file_size(self, tier: Tier, limits: TierLimits, file_size_bytes: int) -> None:
        max_size = limits.max_file_size_bytes
        if max_size is not None and file_size_bytes > max_size:
            raise QuotaExceededError(
                QuotaErrorCode.FILESIZE,
                f"File size exceeds {tier.value} tier limit ({_format_size(max_size)}).",
            )
