"""
Notes API Endpoints.

REST API endpoints for the acting user's notes. Create and update take
multipart forms so an image can travel with the text fields.
"""

from fastapi import APIRouter, File, Form, UploadFile

from notesapp.backend.core.dependencies import CurrentUser, DbSession, RequestId, Storage
from notesapp.backend.schemas.base import ApiResponse, ResponseMetadata
from notesapp.backend.schemas.note import (
    ImageUpload,
    NoteInput,
    NoteResponse,
    parse_image_action,
)
from notesapp.backend.services.note import NoteService

router = APIRouter()


async def read_upload(image: UploadFile | None) -> ImageUpload | None:
    """Turn a multipart file into an ImageUpload; absent or empty files give None."""
    if image is None:
        return None
    data = await image.read()
    if not data:
        return None
    return ImageUpload(
        filename=image.filename or "upload",
        content_type=image.content_type or "application/octet-stream",
        data=data,
    )


@router.get(
    "",
    response_model=ApiResponse[list[NoteResponse]],
    summary="List notes",
    description="List the acting user's notes, newest first, with signed image URLs.",
)
async def list_notes(
    db: DbSession,
    storage: Storage,
    user: CurrentUser,
    request_id: RequestId,
) -> ApiResponse[list[NoteResponse]]:
    """List notes."""
    service = NoteService(db, storage)
    notes = await service.list_notes(user.sub)
    return ApiResponse(data=notes, metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/{note_id}",
    response_model=ApiResponse[NoteResponse],
    summary="Get a note",
    description="Get one of the acting user's notes.",
)
async def get_note(
    note_id: int,
    db: DbSession,
    storage: Storage,
    user: CurrentUser,
    request_id: RequestId,
) -> ApiResponse[NoteResponse]:
    """Get a note by ID."""
    service = NoteService(db, storage)
    note = await service.get_note(note_id, user.sub)
    return ApiResponse(data=note, metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "",
    response_model=ApiResponse[NoteResponse],
    status_code=201,
    summary="Create a note",
    description="Create a note with title, content and an optional image.",
)
async def create_note(
    db: DbSession,
    storage: Storage,
    user: CurrentUser,
    request_id: RequestId,
    title: str = Form(""),
    content: str = Form(""),
    image: UploadFile | None = File(None),
) -> ApiResponse[NoteResponse]:
    """Create a new note."""
    service = NoteService(db, storage)
    note = await service.create_note(
        user.sub,
        NoteInput(title=title, content=content),
        await read_upload(image),
        email=user.email,
        name=user.name,
    )
    return ApiResponse(
        data=await service.present_note(note),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.put(
    "/{note_id}",
    response_model=ApiResponse[NoteResponse],
    summary="Update a note",
    description=(
        "Replace title and content. imageAction is keep, clear or update; "
        "update without a file keeps the current image."
    ),
)
async def update_note(
    note_id: int,
    db: DbSession,
    storage: Storage,
    user: CurrentUser,
    request_id: RequestId,
    title: str = Form(""),
    content: str = Form(""),
    image_action: str = Form("keep", alias="imageAction"),
    image: UploadFile | None = File(None),
) -> ApiResponse[NoteResponse]:
    """Update a note."""
    service = NoteService(db, storage)
    action = parse_image_action(image_action, await read_upload(image))
    note = await service.update_note(
        note_id,
        user.sub,
        NoteInput(title=title, content=content),
        action,
    )
    return ApiResponse(
        data=await service.present_note(note),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.delete(
    "/{note_id}",
    status_code=204,
    summary="Delete a note",
    description="Permanently delete one of the acting user's notes.",
)
async def delete_note(
    note_id: int,
    db: DbSession,
    storage: Storage,
    user: CurrentUser,
) -> None:
    """Delete a note."""
    service = NoteService(db, storage)
    await service.delete_note(note_id, user.sub)
