"""Overage billing for tiers that allow usage past their monthly hours."""

import math

from pydantic import BaseModel, Field

from ..tiers import OVERAGE_TIERS, Tier, TierLimits

# Guards against float noise (e.g. 60.1 - 60) rounding a charge up by a cent
_CENTS_PRECISION = 6


class Overage(BaseModel):
    """Billable usage beyond the tier's monthly hours."""

    hours: float = Field(default=0.0, ge=0)
    amount_cents: int = Field(default=0, ge=0)


def calculate_overage(
    tier: Tier,
    hours_used: float,
    limits: TierLimits,
    rate_cents_per_hour: int,
) -> Overage:
    """Overage for a user's current month.

    Free and pay-as-you-go tiers never accrue overage. The amount is rounded
    up to the next cent.
    """
    if tier not in OVERAGE_TIERS or limits.hours_per_month is None:
        return Overage()

    hours = max(0.0, hours_used - limits.hours_per_month)
    amount = math.ceil(round(hours * rate_cents_per_hour, _CENTS_PRECISION))
    return Overage(hours=hours, amount_cents=amount)
