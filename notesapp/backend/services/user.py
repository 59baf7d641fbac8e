"""
User Service.

Lazy creation of local user records for identity provider subjects.
"""

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notesapp.backend.core.exceptions import PersistenceError, ValidationError
from notesapp.backend.models.user import User
from notesapp.backend.repositories.user import UserRepository
from notesapp.backend.services.base import BaseService


class UserService(BaseService):
    """Service for user records."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = UserRepository(session)

    async def find_or_create(
        self,
        user_id: str | None,
        email: str | None,
        name: str | None = None,
    ) -> User:
        """
        Return the user record for a subject, creating it on first sight.

        A concurrent insert of the same id is resolved by reading the row
        the other request created.

        Raises:
            ValidationError: If the subject id or email is missing
            PersistenceError: If the database fails
        """
        if not user_id or not email:
            raise ValidationError("User information is incomplete.")

        existing = await self._execute_db_operation(
            "get_user", self.repo.get_by_id_or_none(user_id)
        )
        if existing is not None:
            return existing

        self._log_operation("Creating user", user_id=user_id)
        try:
            async with self.session.begin_nested():
                return await self.repo.create(id=user_id, email=email, name=name)
        except IntegrityError:
            self._log_debug("User created concurrently, re-reading", user_id=user_id)
        except SQLAlchemyError as e:
            raise PersistenceError("Database operation failed: create_user") from e

        user = await self._execute_db_operation(
            "get_user", self.repo.get_by_id_or_none(user_id)
        )
        if user is None:
            raise PersistenceError(f"Database operation failed: create_user {user_id}")
        return user
