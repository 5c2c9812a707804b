"""Monthly reset, maintenance jobs and the scheduler loop."""

from .context import SchedulerContext, ShutdownToken
from .jobs import (
    OverageCheckResult,
    UsageCleanupResult,
    UsageWarningResult,
    run_overage_check,
    run_usage_cleanup,
    run_usage_warnings,
)
from .missed_resets import MissedResetResult, needs_reset, sweep_missed_resets
from .reset_job import (
    InvalidStateTransitionError,
    ResetJobRunner,
    ResetRunOutcome,
    ResetRunResult,
    ResetRunState,
)
from .schedule import Schedule, add_months, billing_period, start_of_month
from .scheduler import ScheduledJob, UsageScheduler
from .status import (
    ResetJobStatusReport,
    ResetProgress,
    get_active_reset_job_status,
    get_reset_job_status,
)

__all__ = [
    "InvalidStateTransitionError",
    "MissedResetResult",
    "OverageCheckResult",
    "ResetJobRunner",
    "ResetJobStatusReport",
    "ResetProgress",
    "ResetRunOutcome",
    "ResetRunResult",
    "ResetRunState",
    "Schedule",
    "ScheduledJob",
    "SchedulerContext",
    "ShutdownToken",
    "UsageCleanupResult",
    "UsageScheduler",
    "UsageWarningResult",
    "add_months",
    "billing_period",
    "get_active_reset_job_status",
    "get_reset_job_status",
    "needs_reset",
    "run_overage_check",
    "run_usage_cleanup",
    "run_usage_warnings",
    "start_of_month",
    "sweep_missed_resets",
]
