"""Quota enforcement."""

from .engine import QuotaEngine
from .estimation import MB_PER_MINUTE, estimate_duration_minutes

__all__ = ["MB_PER_MINUTE", "QuotaEngine", "estimate_duration_minutes"]
