from notesapp.backend.repositories.note import NoteRepository
from notesapp.backend.repositories.user import UserRepository

__all__ = ["NoteRepository", "UserRepository"]
