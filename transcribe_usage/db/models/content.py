"""User-owned content tables removed by hard account deletion."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


def generate_id() -> str:
    """Generate a new content ID."""
    return str(uuid4())


class UserOwnedMixin:
    """Columns shared by every per-user content table."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )


class Transcription(UserOwnedMixin, Base):
    """A transcription owned by a user."""

    __tablename__ = "transcriptions"


class GeneratedAnalysis(UserOwnedMixin, Base):
    """An on-demand analysis generated from a transcription."""

    __tablename__ = "generated_analyses"


class Folder(UserOwnedMixin, Base):
    """A user-defined grouping of transcriptions."""

    __tablename__ = "folders"


class ImportedConversation(UserOwnedMixin, Base):
    """A conversation imported into the user's library from a share link."""

    __tablename__ = "imported_conversations"
