"""
Client-side note types.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ClientNote:
    """A note as held in the client cache."""

    id: int
    title: str
    content: str
    image_url: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ClientNote":
        """Build from the `data` object of a note API response."""
        return cls(
            id=int(data["id"]),
            title=data["title"],
            content=data["content"],
            image_url=data.get("image_url"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )


@dataclass(frozen=True)
class ImageFile:
    """An image picked for upload."""

    filename: str
    data: bytes
    content_type: str = "application/octet-stream"
