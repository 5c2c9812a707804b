"""Database module: connection management, models and repositories."""

from .connection import (
    DatabaseConnection,
    create_engine,
    create_session_factory,
    get_database_url,
)
from .models import (
    Base,
    Folder,
    GeneratedAnalysis,
    ImportedConversation,
    ResetJob,
    ResetJobStatus,
    Transcription,
    UsageRecord,
    User,
)
from .repositories import (
    ResetJobRepository,
    UsageRecordRepository,
    UserContentRepository,
    UserRepository,
)

__all__ = [
    "Base",
    "DatabaseConnection",
    "Folder",
    "GeneratedAnalysis",
    "ImportedConversation",
    "ResetJob",
    "ResetJobRepository",
    "ResetJobStatus",
    "Transcription",
    "UsageRecord",
    "UsageRecordRepository",
    "User",
    "UserContentRepository",
    "UserRepository",
    "create_engine",
    "create_session_factory",
    "get_database_url",
]
