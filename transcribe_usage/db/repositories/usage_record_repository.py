"""Repository for append-only usage records."""

from datetime import datetime
from typing import Any

from sqlalchemy import delete, select

from ..connection import DatabaseConnection
from ..models import UsageRecord


class UsageRecordRepository:
    """Append and bulk-delete usage records."""

    def __init__(self, db: DatabaseConnection) -> None:
        self._db = db

    async def create(self, **fields: Any) -> UsageRecord:
        """Append one record."""
        record = UsageRecord(**fields)
        async with self._db.session() as session:
            session.add(record)
        return record

    async def list_for_user(self, user_id: str) -> list[UsageRecord]:
        """Records for a user, oldest first."""
        async with self._db.session() as session:
            result = await session.execute(
                select(UsageRecord)
                .where(UsageRecord.user_id == user_id)
                .order_by(UsageRecord.created_at.asc())
            )
            return list(result.scalars().all())

    async def delete_for_user(self, user_id: str) -> int:
        """Delete every record for a user. Returns the number removed."""
        async with self._db.session() as session:
            result = await session.execute(
                delete(UsageRecord).where(UsageRecord.user_id == user_id)
            )
            return result.rowcount or 0

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete records created before ``cutoff``. Returns the number removed."""
        async with self._db.session() as session:
            result = await session.execute(
                delete(UsageRecord).where(UsageRecord.created_at < cutoff)
            )
            return result.rowcount or 0
