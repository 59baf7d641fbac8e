"""Database models. Importing this package registers every table on Base.metadata."""

from notesapp.backend.models.base import Base
from notesapp.backend.models.note import Note
from notesapp.backend.models.user import User

__all__ = ["Base", "Note", "User"]
