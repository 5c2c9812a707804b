"""Usage summary and warnings shown to users."""

import math

from pydantic import BaseModel, Field

from ..config import QuotaSettings
from ..db.models import User
from ..tiers import OVERAGE_TIERS, Tier, TierLimits
from .overage import Overage


class UsageCounters(BaseModel):
    hours: float = 0.0
    transcriptions: int = 0
    on_demand_analyses: int = 0


class UsageLimits(BaseModel):
    transcriptions: int | None = None
    hours: float | None = None
    on_demand_analyses: int | None = None


class UsageStats(BaseModel):
    """Current-month usage for one user."""

    tier: Tier
    usage: UsageCounters
    limits: UsageLimits
    overage: Overage
    percent_used: float = Field(ge=0, le=100)
    warnings: list[str] = Field(default_factory=list)


def percent_of_quota(tier: Tier, user: User, limits: TierLimits) -> float:
    """Share of the tier's primary limit consumed, uncapped.

    Free tiers are measured by transcription count, overage tiers by hours.
    Pay-as-you-go has no monthly quota and always reports 0.
    """
    if tier == Tier.FREE and limits.transcriptions_per_month:
        return user.transcription_count / limits.transcriptions_per_month * 100
    if tier in OVERAGE_TIERS and limits.hours_per_month:
        return user.hours_used / limits.hours_per_month * 100
    return 0.0


def usage_warnings(
    tier: Tier,
    percent_used: float,
    overage: Overage,
    payg_credits_hours: float,
    settings: QuotaSettings,
) -> list[str]:
    """User-facing warnings for the current month."""
    warnings: list[str] = []
    if settings.warning_threshold_percent <= percent_used < 100:
        warnings.append(f"You've used {math.floor(percent_used)}% of your monthly quota")
    if percent_used >= 100:
        warnings.append("You have exceeded your monthly quota")
    if overage.hours > 0:
        warnings.append(
            f"You have {overage.hours:.2f} hours of overage charges "
            f"(${overage.amount_cents / 100:.2f})"
        )
    if tier == Tier.PAYG and 0 < payg_credits_hours < settings.low_payg_credit_hours:
        warnings.append(f"Low PAYG credits: {payg_credits_hours:.2f} hours remaining")
    return warnings


def build_usage_stats(
    user: User,
    tier: Tier,
    limits: TierLimits,
    overage: Overage,
    settings: QuotaSettings,
) -> UsageStats:
    percent = percent_of_quota(tier, user, limits)
    return UsageStats(
        tier=tier,
        usage=UsageCounters(
            hours=user.hours_used,
            transcriptions=user.transcription_count,
            on_demand_analyses=user.on_demand_analysis_count,
        ),
        limits=UsageLimits(
            transcriptions=limits.transcriptions_per_month,
            hours=limits.hours_per_month,
            on_demand_analyses=limits.on_demand_analyses_per_month,
        ),
        overage=overage,
        percent_used=min(100.0, percent),
        warnings=usage_warnings(tier, percent, overage, user.payg_credits_hours or 0.0, settings),
    )
