"""Daily and monthly maintenance jobs run alongside the reset."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

from ..db.models import utcnow
from ..db.repositories import UsageRecordRepository, UserRepository
from ..logging import get_logger
from ..tiers import OVERAGE_TIERS, TIER_LIMITS, Tier, TierLimits, get_tier_limits
from ..usage import UsageTracker, calculate_overage
from .context import SchedulerContext
from .schedule import add_months

logger = get_logger(__name__)

# Tiers that have a monthly quota to warn about
WARNING_TIERS = (Tier.FREE, Tier.PROFESSIONAL, Tier.BUSINESS)


@dataclass
class OverageCheckResult:
    """Result of the daily overage check."""

    users_checked: int = 0
    users_with_overage: int = 0
    total_overage_cents: int = 0
    interrupted: bool = False


@dataclass
class UsageWarningResult:
    """Result of the daily usage-warning scan."""

    users_checked: int = 0
    users_warned: list[str] = field(default_factory=list)
    interrupted: bool = False


@dataclass
class UsageCleanupResult:
    """Result of the monthly usage-record cleanup."""

    cutoff: datetime
    records_deleted: int = 0


async def run_overage_check(
    users: UserRepository,
    context: SchedulerContext,
    overage_rate_cents_per_hour: int,
    tier_table: Mapping[Tier, TierLimits] = TIER_LIMITS,
) -> OverageCheckResult:
    """Log current overage for billable users on overage tiers.

    Charges are collected at subscription renewal; this job only reports.
    """
    result = OverageCheckResult()
    for tier in sorted(OVERAGE_TIERS, key=lambda t: t.value):
        limits = get_tier_limits(tier, tier_table)
        for user in await users.list_by_tier(tier):
            if context.shutdown.is_set:
                result.interrupted = True
                return result
            if user.is_deleted or not user.payment_customer_id:
                continue

            result.users_checked += 1
            overage = calculate_overage(tier, user.hours_used, limits, overage_rate_cents_per_hour)
            if overage.hours > 0:
                result.users_with_overage += 1
                result.total_overage_cents += overage.amount_cents
                logger.info(
                    "User has overage",
                    user_id=user.user_id,
                    tier=tier.value,
                    overage_hours=round(overage.hours, 2),
                    amount_cents=overage.amount_cents,
                )

    logger.info(
        "Overage check finished",
        users_checked=result.users_checked,
        users_with_overage=result.users_with_overage,
        total_overage_cents=result.total_overage_cents,
    )
    return result


async def run_usage_warnings(
    users: UserRepository,
    tracker: UsageTracker,
    context: SchedulerContext,
    threshold_percent: float,
) -> UsageWarningResult:
    """Find users at or above the warning threshold and log their warnings."""
    result = UsageWarningResult()
    for tier in WARNING_TIERS:
        for user in await users.list_by_tier(tier):
            if context.shutdown.is_set:
                result.interrupted = True
                return result
            if user.is_deleted:
                continue

            result.users_checked += 1
            try:
                stats = await tracker.get_usage_stats(user.user_id)
            except Exception as e:
                logger.warning("Usage stats failed", user_id=user.user_id, error=str(e))
                continue

            if stats.percent_used >= threshold_percent and stats.warnings:
                result.users_warned.append(user.user_id)
                logger.info(
                    "Usage warning",
                    user_id=user.user_id,
                    tier=tier.value,
                    percent_used=round(stats.percent_used, 1),
                    warnings=stats.warnings,
                )

    logger.info(
        "Usage warning scan finished",
        users_checked=result.users_checked,
        users_warned=len(result.users_warned),
    )
    return result


async def run_usage_cleanup(
    usage_records: UsageRecordRepository,
    retention_months: int,
    clock: Callable[[], datetime] = utcnow,
) -> UsageCleanupResult:
    """Delete usage records older than the retention window."""
    cutoff = add_months(clock(), -retention_months)
    deleted = await usage_records.delete_older_than(cutoff)
    logger.info("Usage record cleanup finished", cutoff=cutoff.isoformat(), records_deleted=deleted)
    return UsageCleanupResult(cutoff=cutoff, records_deleted=deleted)
