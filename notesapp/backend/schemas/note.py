"""
Note Schemas.

Pydantic schemas for note responses, the note input pair, and the
tri-state image action sent with an update.
"""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from notesapp.backend.core.exceptions import ValidationError


class NoteInput(BaseModel):
    """Title and content as submitted by the user, before trimming."""

    title: str = Field(default="", description="Note title", examples=["Groceries"])
    content: str = Field(default="", description="Note body", examples=["Milk, eggs"])


class NoteResponse(BaseModel):
    """Schema for a note in API responses.

    image_url holds a signed, time-limited URL when the note has an image.
    """

    id: int = Field(description="Note identifier")
    title: str = Field(description="Note title")
    content: str = Field(description="Note body")
    image_url: str | None = Field(default=None, description="Signed image URL")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)


@dataclass(frozen=True)
class ImageUpload:
    """A non-empty uploaded image file."""

    filename: str
    content_type: str
    data: bytes

    def __post_init__(self) -> None:
        if not self.data:
            raise ValueError("ImageUpload requires non-empty data")

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class KeepImage:
    """Leave the stored image untouched."""


@dataclass(frozen=True)
class ClearImage:
    """Detach the image from the note. Storage is not touched."""


@dataclass(frozen=True)
class ReplaceImage:
    """Upload a new image and point the note at it."""

    upload: ImageUpload


ImageAction = KeepImage | ClearImage | ReplaceImage

IMAGE_ACTIONS = ("keep", "clear", "update")


def parse_image_action(action: str | None, upload: ImageUpload | None) -> ImageAction:
    """
    Convert the wire form of an image action into its variant.

    "update" without a usable file is treated as "keep". A missing
    action also means "keep". Values are matched exactly.

    Raises:
        ValidationError: If the action string is not one of keep/clear/update
    """
    normalized = action or "keep"

    if normalized == "keep":
        return KeepImage()
    if normalized == "clear":
        return ClearImage()
    if normalized == "update":
        if upload is None:
            return KeepImage()
        return ReplaceImage(upload)

    raise ValidationError(
        f"Unknown image action: {action}",
        details={"imageAction": f"Must be one of {', '.join(IMAGE_ACTIONS)}"},
    )
