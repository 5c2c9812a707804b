"""Subscription tiers and their monthly limits.

The table is validated when this module is imported, so a tier without a
limits row fails at startup instead of on the first request that hits it.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidConfigurationError

MB = 1024 * 1024
GB = 1024 * MB


class Tier(str, Enum):
    """Subscription plan."""

    FREE = "free"
    PROFESSIONAL = "professional"
    BUSINESS = "business"
    PAYG = "payg"


class UserRole(str, Enum):
    """Account role. Admins bypass every quota check."""

    USER = "user"
    ADMIN = "admin"


# Tiers billed per hour over their monthly allowance instead of being blocked
OVERAGE_TIERS = frozenset({Tier.PROFESSIONAL, Tier.BUSINESS})


class TierLimits(BaseModel):
    """Monthly limits for one tier. ``None`` means unbounded."""

    model_config = ConfigDict(frozen=True)

    transcriptions_per_month: int | None = Field(default=None, ge=0)
    hours_per_month: float | None = Field(default=None, ge=0)
    max_file_duration_minutes: int | None = Field(default=None, ge=0)
    max_file_size_bytes: int | None = Field(default=None, ge=0)
    on_demand_analyses_per_month: int | None = Field(default=None, ge=0)


TIER_LIMITS: dict[Tier, TierLimits] = {
    Tier.FREE: TierLimits(
        transcriptions_per_month=3,
        max_file_duration_minutes=30,
        max_file_size_bytes=100 * MB,
        on_demand_analyses_per_month=2,
    ),
    Tier.PROFESSIONAL: TierLimits(
        hours_per_month=60,
        max_file_size_bytes=5 * GB,
    ),
    Tier.BUSINESS: TierLimits(
        hours_per_month=200,
        max_file_size_bytes=5 * GB,
    ),
    Tier.PAYG: TierLimits(
        max_file_size_bytes=5 * GB,
    ),
}


def validate_tier_table(table: Mapping[Tier, TierLimits]) -> None:
    """Ensure every tier has a limits row.

    Raises:
        InvalidConfigurationError: If any ``Tier`` member is missing.
    """
    missing = [tier.value for tier in Tier if tier not in table]
    if missing:
        raise InvalidConfigurationError(
            f"Tier limits missing for: {', '.join(missing)}"
        )
    for tier in OVERAGE_TIERS:
        if table[tier].hours_per_month is None:
            raise InvalidConfigurationError(
                f"Tier {tier.value} allows overage but has no hours_per_month"
            )


def parse_tier(value: str | Tier) -> Tier:
    """Convert a stored tier string into a ``Tier``.

    Raises:
        InvalidConfigurationError: If the value names no known tier.
    """
    try:
        return Tier(value)
    except ValueError as e:
        raise InvalidConfigurationError(f"Unknown subscription tier: {value!r}") from e


def get_tier_limits(
    tier: str | Tier,
    table: Mapping[Tier, TierLimits] = TIER_LIMITS,
) -> TierLimits:
    """Look up the limits row for a tier.

    Raises:
        InvalidConfigurationError: If the tier is unknown or has no row.
    """
    resolved = parse_tier(tier)
    limits = table.get(resolved)
    if limits is None:
        raise InvalidConfigurationError(f"No limits configured for tier {resolved.value}")
    return limits


validate_tier_table(TIER_LIMITS)
