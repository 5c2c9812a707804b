"""Bulk deletion of user-owned content, used by hard account deletion."""

from sqlalchemy import delete

from ..connection import DatabaseConnection
from ..models import Folder, GeneratedAnalysis, ImportedConversation, Transcription


class UserContentRepository:
    """Deletes a user's rows from each content table, returning counts."""

    def __init__(self, db: DatabaseConnection) -> None:
        self._db = db

    async def delete_transcriptions(self, user_id: str) -> int:
        return await self._delete_owned(Transcription, user_id)

    async def delete_analyses(self, user_id: str) -> int:
        return await self._delete_owned(GeneratedAnalysis, user_id)

    async def delete_folders(self, user_id: str) -> int:
        return await self._delete_owned(Folder, user_id)

    async def delete_imported_conversations(self, user_id: str) -> int:
        return await self._delete_owned(ImportedConversation, user_id)

    async def _delete_owned(self, model: type, user_id: str) -> int:
        async with self._db.session() as session:
            result = await session.execute(delete(model).where(model.user_id == user_id))
            return result.rowcount or 0
