"""Repositories, one per aggregate."""

from .content_repository import UserContentRepository
from .reset_job_repository import ResetJobRepository
from .usage_record_repository import UsageRecordRepository
from .user_repository import UserRepository

__all__ = [
    "ResetJobRepository",
    "UsageRecordRepository",
    "UserContentRepository",
    "UserRepository",
]
