"""
Note Model.

Database model for a user's note.
"""

from sqlalchemy import BigInteger, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from notesapp.backend.models.base import Base, TimestampMixin


class Note(TimestampMixin, Base):
    """
    Note database model.

    image_url holds the object storage path of the attached image, never a
    signed URL. user_id is the identity provider subject and is not a
    foreign key: user rows are created lazily.
    """

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    image_url: Mapped[str | None] = mapped_column(
        String(1024),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, user_id={self.user_id!r}, title={self.title!r})>"
