"""
Base Service.

Shared plumbing for the note and user services: a database call wrapper
that turns SQLAlchemy failures into PersistenceError, the input checks
both services run before any I/O, and logging tagged with the service name.
"""

from collections.abc import Awaitable
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notesapp.backend.core.exceptions import PersistenceError, ValidationError
from notesapp.backend.core.logging import get_logger

T = TypeVar("T")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class BaseService:
    """Holds the request's session; subclasses build their repositories on it."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._logger = get_logger(type(self).__module__)

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def _execute_db_operation(self, operation: str, coro: Awaitable[T]) -> T:
        """
        Await a repository call, reporting store failures as PersistenceError.

        The operation name goes into the log and the exception message, never
        the driver error text. Nothing is retried.

        Raises:
            PersistenceError: On any SQLAlchemyError, integrity errors included
        """
        try:
            return await coro
        except SQLAlchemyError as e:
            self._logger.error("Database error", extra={"operation": operation, "error": str(e)})
            raise PersistenceError(f"Database operation failed: {operation}") from e

    def _validate_required(self, fields: dict[str, Any], messages: dict[str, str]) -> None:
        """
        Reject None or whitespace-only values.

        `messages` maps field name to the user-facing message and sets the
        order of the checks; the first blank field wins.

        Raises:
            ValidationError: details = {field: "required"}
        """
        for name, message in messages.items():
            if _is_blank(fields.get(name)):
                raise ValidationError(message, details={name: "required"})

    def _validate_string_length(
        self,
        value: str,
        field_name: str,
        max_length: int,
        label: str | None = None,
    ) -> None:
        if len(value) <= max_length:
            return
        raise ValidationError(
            f"{label or field_name} must be at most {max_length} characters.",
            details={field_name: f"Maximum length is {max_length}"},
        )

    def _log_operation(self, operation: str, **context: Any) -> None:
        self._logger.info(operation, extra={"service": type(self).__name__, **context})

    def _log_debug(self, message: str, **context: Any) -> None:
        self._logger.debug(message, extra={"service": type(self).__name__, **context})
