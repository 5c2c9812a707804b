"""Startup sweep for users whose monthly reset never ran.

The resumable reset job only recovers a run that started. If the process was
down across the whole trigger window, users keep last month's counters until
this sweep finds them by ``last_reset_at``.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from ..db.models import User, as_utc, utcnow
from ..db.repositories import UserRepository
from ..logging import get_logger
from ..usage import UsageTracker
from .context import SchedulerContext
from .schedule import start_of_month

logger = get_logger(__name__)


@dataclass
class MissedResetResult:
    """Result of a missed-reset sweep."""

    users_checked: int = 0
    users_reset: int = 0
    failed_user_ids: list[str] = field(default_factory=list)
    interrupted: bool = False


def needs_reset(user: User, period_start: datetime) -> bool:
    """Whether the user's counters predate the current billing period."""
    last_reset = as_utc(user.last_reset_at)
    return last_reset is None or last_reset < period_start


async def sweep_missed_resets(
    users: UserRepository,
    tracker: UsageTracker,
    context: SchedulerContext,
    clock: Callable[[], datetime] = utcnow,
) -> MissedResetResult:
    """Reset every user whose last reset is before the first of this month (UTC)."""
    now = clock()
    period_start = start_of_month(now)
    result = MissedResetResult()

    for user in await users.list_all():
        if context.shutdown.is_set:
            result.interrupted = True
            logger.info("Missed-reset sweep interrupted by shutdown", users_checked=result.users_checked)
            break

        result.users_checked += 1
        if not needs_reset(user, period_start):
            continue

        try:
            await tracker.reset_monthly_usage(user.user_id, reset_at=now)
        except Exception as e:
            result.failed_user_ids.append(user.user_id)
            logger.warning("Missed reset failed", user_id=user.user_id, error=str(e))
        else:
            result.users_reset += 1

    if result.users_reset or result.failed_user_ids:
        logger.warning(
            "Recovered missed monthly resets",
            users_reset=result.users_reset,
            failed_users=len(result.failed_user_ids),
            period_start=period_start.isoformat(),
        )
    else:
        logger.info("No missed monthly resets", users_checked=result.users_checked)
    return result
