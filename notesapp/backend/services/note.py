"""
Note Service.

Business logic for notes: input validation, ownership checks, the image
action on update, and read-time resolution of stored image paths into
signed URLs.

Every operation receives the acting user's id explicitly. Stored notes only
ever hold the object path of their image; signed URLs exist on the
NoteResponse objects built for reads and are never written back.
"""

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from notesapp.backend.core.config import get_app_config
from notesapp.backend.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    StorageError,
)
from notesapp.backend.core.utils import utc_now
from notesapp.backend.models.note import Note
from notesapp.backend.repositories.note import NoteRepository
from notesapp.backend.schemas.note import (
    ClearImage,
    ImageAction,
    ImageUpload,
    KeepImage,
    NoteInput,
    NoteResponse,
    ReplaceImage,
)
from notesapp.backend.services.base import BaseService
from notesapp.backend.services.user import UserService
from notesapp.backend.storage import ObjectStorage, build_image_path

TITLE_REQUIRED = "Title is required."
CONTENT_REQUIRED = "Content is required."
NOTE_NOT_FOUND = "Note not found"

# Same message whether the note is missing or owned by someone else
UPDATE_FORBIDDEN = "You do not have permission to update this note."
DELETE_FORBIDDEN = "You do not have permission to delete this note."


class NoteService(BaseService):
    """
    Service for note business logic.

    One instance per request; the session is committed or rolled back by
    the caller.
    """

    def __init__(self, session: AsyncSession, storage: ObjectStorage) -> None:
        super().__init__(session)
        self.repo = NoteRepository(session)
        self.users = UserService(session)
        self.storage = storage

        config = get_app_config()
        self._limits = config.application.notes
        self._features = config.features
        self._storage_config = config.storage

    def _validate_input(self, data: NoteInput) -> None:
        self._validate_required(
            {"title": data.title, "content": data.content},
            {"title": TITLE_REQUIRED, "content": CONTENT_REQUIRED},
        )
        self._validate_string_length(
            data.title, "title", self._limits.title_max_length, label="Title"
        )
        self._validate_string_length(
            data.content, "content", self._limits.content_max_length, label="Content"
        )

    async def _sign(self, path: str) -> str:
        return await self.storage.create_signed_url(
            path, self._storage_config.signed_url_ttl_seconds
        )

    async def present_note(self, note: Note) -> NoteResponse:
        """
        Build the response for a note, replacing its stored image path with
        a signed URL.

        If signing fails the image is reported as absent and a warning is
        logged.
        """
        response = NoteResponse.model_validate(note)
        if not note.image_url:
            return response

        try:
            signed = await self._sign(note.image_url)
        except StorageError as e:
            self._logger.warning(
                "Signed URL unavailable, omitting image",
                extra={"note_id": note.id, "path": note.image_url, "error": e.message},
            )
            signed = None
        return response.model_copy(update={"image_url": signed})

    async def list_notes(self, user_id: str) -> list[NoteResponse]:
        """
        List the user's notes, newest first, with signed image URLs.

        Args:
            user_id: Acting user's subject id

        Returns:
            Notes ordered by creation time descending
        """
        notes = await self._execute_db_operation(
            "list_notes", self.repo.list_for_user(user_id)
        )
        self._log_debug("Listing notes", user_id=user_id, count=len(notes))
        return list(await asyncio.gather(*(self.present_note(note) for note in notes)))

    async def get_note(self, note_id: int, user_id: str) -> NoteResponse:
        """
        Get one of the user's notes.

        Raises:
            NotFoundError: If the note does not exist or belongs to another user
        """
        note = await self._execute_db_operation(
            "get_note", self.repo.get_owned(note_id, user_id)
        )
        if note is None:
            raise NotFoundError(NOTE_NOT_FOUND)
        return await self.present_note(note)

    async def _upload(self, upload: ImageUpload) -> str:
        path = build_image_path(upload.filename, self._storage_config.path_prefix)
        stored = await self.storage.upload(path, upload.data, upload.content_type)
        self._log_operation("Image uploaded", path=stored, size=upload.size)
        return stored

    async def _discard_upload(self, path: str) -> None:
        """Remove an object whose note record could not be written."""
        if not self._features.storage_cleanup_on_failure:
            self._logger.warning("Orphaned upload left in storage", extra={"path": path})
            return
        try:
            await self.storage.remove(path)
            self._log_operation("Orphaned upload removed", path=path)
        except StorageError as e:
            self._logger.error(
                "Failed to remove orphaned upload",
                extra={"path": path, "error": e.message},
            )

    async def create_note(
        self,
        user_id: str,
        data: NoteInput,
        image: ImageUpload | None = None,
        *,
        email: str | None = None,
        name: str | None = None,
    ) -> Note:
        """
        Create a note for the acting user.

        The user record is created on first sight when both the subject id
        and the email are known; otherwise that step is skipped.

        Args:
            user_id: Acting user's subject id
            data: Title and content
            image: Optional image to attach
            email: Acting user's email, for the lazy user record
            name: Acting user's display name, for the lazy user record

        Returns:
            Created note (image_url holds the stored path)

        Raises:
            ValidationError: If title or content is blank or too long
            StorageError: If the image upload fails
            PersistenceError: If the database write fails
        """
        self._validate_input(data)

        if self._features.notes_lazy_user_upsert and user_id and email:
            await self.users.find_or_create(user_id, email, name)

        image_path = await self._upload(image) if image is not None else None

        self._log_operation("Creating note", user_id=user_id, has_image=image_path is not None)
        try:
            note = await self._execute_db_operation(
                "create_note",
                self.repo.create(
                    user_id=user_id,
                    title=data.title,
                    content=data.content,
                    image_url=image_path,
                ),
            )
        except Exception:
            if image_path is not None:
                await self._discard_upload(image_path)
            raise

        self._log_debug("Note created", note_id=note.id)
        return note

    async def _get_for_mutation(self, note_id: int, user_id: str, message: str) -> Note:
        note = await self._execute_db_operation(
            "get_note", self.repo.get_by_id_or_none(note_id)
        )
        if note is None or note.user_id != user_id:
            self._logger.warning(
                "Note mutation refused",
                extra={"note_id": note_id, "user_id": user_id},
            )
            raise AuthorizationError(message)
        return note

    async def update_note(
        self,
        note_id: int,
        user_id: str,
        data: NoteInput,
        image_action: ImageAction | None = None,
    ) -> Note:
        """
        Update the title, content and image of one of the user's notes.

        Validation runs before the ownership check and before any image work.

        Args:
            note_id: Note to update
            user_id: Acting user's subject id
            data: New title and content
            image_action: KeepImage (default), ClearImage or ReplaceImage

        Returns:
            Updated note with refreshed updated_at

        Raises:
            ValidationError: If title or content is blank or too long
            AuthorizationError: If the note is missing or not the user's
            StorageError: If the replacement upload fails
            PersistenceError: If the database write fails
        """
        self._validate_input(data)
        note = await self._get_for_mutation(note_id, user_id, UPDATE_FORBIDDEN)

        changes: dict[str, object] = {
            "title": data.title,
            "content": data.content,
            "updated_at": utc_now(),
        }
        uploaded: str | None = None
        action = image_action or KeepImage()
        if isinstance(action, ClearImage):
            changes["image_url"] = None
        elif isinstance(action, ReplaceImage):
            uploaded = await self._upload(action.upload)
            changes["image_url"] = uploaded

        self._log_operation(
            "Updating note",
            note_id=note_id,
            fields=list(changes.keys()),
        )
        try:
            return await self._execute_db_operation(
                "update_note", self.repo.update(note, **changes)
            )
        except Exception:
            if uploaded is not None:
                await self._discard_upload(uploaded)
            raise

    async def delete_note(self, note_id: int, user_id: str) -> None:
        """
        Permanently delete one of the user's notes. Its stored image is kept.

        Raises:
            AuthorizationError: If the note is missing or not the user's
            PersistenceError: If the database write fails
        """
        note = await self._get_for_mutation(note_id, user_id, DELETE_FORBIDDEN)
        self._log_operation("Deleting note", note_id=note_id)
        await self._execute_db_operation("delete_note", self.repo.delete(note))
