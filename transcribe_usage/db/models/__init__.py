"""SQLAlchemy database models."""

from .base import Base, TimestampMixin, as_utc, utcnow
from .content import Folder, GeneratedAnalysis, ImportedConversation, Transcription
from .reset_job import ResetJob, ResetJobStatus, reset_job_id_for
from .usage_record import UsageRecord
from .user import User

__all__ = [
    "Base",
    "Folder",
    "GeneratedAnalysis",
    "ImportedConversation",
    "ResetJob",
    "ResetJobStatus",
    "TimestampMixin",
    "Transcription",
    "UsageRecord",
    "User",
    "as_utc",
    "reset_job_id_for",
    "utcnow",
]
