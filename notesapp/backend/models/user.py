"""
User Model.

Local record of an identity provider subject.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from notesapp.backend.models.base import Base, TimestampMixin


class User(TimestampMixin, Base):
    """User database model, keyed by the identity provider subject id."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, email={self.email!r})>"
