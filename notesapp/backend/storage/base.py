"""
Object Storage Interface.

The note service depends on this protocol only. Stored notes keep the
object path; signed URLs are produced on demand and never written back.
"""

from typing import Protocol

from notesapp.backend.core.utils import epoch_millis, safe_filename


class ObjectStorage(Protocol):
    """Bucket operations used by the note service. Failures raise StorageError."""

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store bytes at path and return the stored path."""
        ...

    async def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        """Return a time-limited URL for a stored object."""
        ...

    async def remove(self, path: str) -> None:
        """Delete a stored object."""
        ...

    async def check(self) -> None:
        """Verify the bucket is reachable."""
        ...


def build_image_path(filename: str, prefix: str = "images") -> str:
    """Object path for a new image: {prefix}/{epoch_ms}_{safe_filename}."""
    return f"{prefix.strip('/')}/{epoch_millis()}_{safe_filename(filename)}"
