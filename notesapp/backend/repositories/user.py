"""
User Repository.

Data access layer for lazily created user records.
"""

from notesapp.backend.models.user import User
from notesapp.backend.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    model = User
