"""
Note Repository.

Data access layer for notes.
"""

from sqlalchemy import select

from notesapp.backend.models.note import Note
from notesapp.backend.repositories.base import BaseRepository


class NoteRepository(BaseRepository[Note]):
    """
    Repository for Note model.

    Inherits standard CRUD operations from BaseRepository
    and adds owner-scoped queries.
    """

    model = Note

    async def list_for_user(self, user_id: str) -> list[Note]:
        """
        Get every note owned by a user, newest first.

        Args:
            user_id: Identity subject of the owner

        Returns:
            Notes ordered by created_at descending, then id descending
        """
        result = await self.session.execute(
            select(Note)
            .where(Note.user_id == user_id)
            .order_by(Note.created_at.desc(), Note.id.desc())
        )
        return list(result.scalars().all())

    async def get_owned(self, note_id: int, user_id: str) -> Note | None:
        """Get a note only if it belongs to the given user."""
        result = await self.session.execute(
            select(Note).where(Note.id == note_id, Note.user_id == user_id)
        )
        return result.scalar_one_or_none()
