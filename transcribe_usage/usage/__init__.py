"""Usage tracking, overage and usage statistics."""

from .overage import Overage, calculate_overage
from .stats import UsageCounters, UsageLimits, UsageStats, build_usage_stats, usage_warnings
from .tracker import UsageTracker

__all__ = [
    "Overage",
    "UsageCounters",
    "UsageLimits",
    "UsageStats",
    "UsageTracker",
    "build_usage_stats",
    "calculate_overage",
    "usage_warnings",
]
