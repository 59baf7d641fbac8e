"""
Object storage for note images.

Usage in endpoints:
    @router.post("/notes")
    async def create_note(storage: ObjectStorage = Depends(get_object_storage)):
        ...
"""

from notesapp.backend.storage.base import ObjectStorage, build_image_path
from notesapp.backend.storage.supabase_storage import SupabaseObjectStorage

_storage: ObjectStorage | None = None


def get_object_storage() -> ObjectStorage:
    """Dependency that provides the shared object storage adapter."""
    global _storage
    if _storage is None:
        _storage = SupabaseObjectStorage.from_config()
    return _storage


def reset_object_storage() -> None:
    """Forget the shared adapter. Called on shutdown."""
    global _storage
    _storage = None


__all__ = [
    "ObjectStorage",
    "SupabaseObjectStorage",
    "build_image_path",
    "get_object_storage",
    "reset_object_storage",
]
