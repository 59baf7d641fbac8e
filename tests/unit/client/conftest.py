"""
Client Test Fixtures.

An in-memory notes API whose calls can be held open with asyncio.Event
gates, so tests decide exactly when each request settles.
"""

import asyncio
import dataclasses
from datetime import datetime
from typing import Any

import pytest

from notesapp.client.api import ApiRequestError
from notesapp.client.models import ClientNote, ImageFile

CREATED_AT = datetime(2026, 1, 1, 12, 0, 0)


def build_note(note_id: int, title: str, content: str = "body", image_url: str | None = None) -> ClientNote:
    return ClientNote(
        id=note_id,
        title=title,
        content=content,
        image_url=image_url,
        created_at=CREATED_AT,
        updated_at=CREATED_AT,
    )


class FakeNotesApi:
    """
    Server double for NotesSync.

    list_gates holds one optional Event per upcoming list call (None means
    answer at once). A gated list call answers with the notes as they were
    when the call started. update_gates maps a note id to an Event the
    update waits on before it is applied or rejected.
    """

    def __init__(self, notes: list[ClientNote] | None = None) -> None:
        self.server: list[ClientNote] = list(notes or [])
        self.list_calls = 0
        self.list_gates: list[asyncio.Event | None] = []
        self.update_gates: dict[int, asyncio.Event] = {}
        self.create_error: ApiRequestError | None = None
        self.update_errors: dict[int, ApiRequestError] = {}
        self.delete_error: ApiRequestError | None = None
        self.updates: list[tuple[int, str, str, str]] = []
        self._next_id = max((n.id for n in self.server), default=0) + 1

    async def list_notes(self) -> list[ClientNote]:
        self.list_calls += 1
        result = list(self.server)
        gate = self.list_gates.pop(0) if self.list_gates else None
        if gate is not None:
            await gate.wait()
        return result

    async def create_note(self, title: str, content: str, image: ImageFile | None = None) -> ClientNote:
        await asyncio.sleep(0)
        if self.create_error:
            raise self.create_error
        note = build_note(self._next_id, title, content, "signed" if image else None)
        self._next_id += 1
        self.server.insert(0, note)
        return note

    async def update_note(
        self,
        note_id: int,
        title: str,
        content: str,
        image_action: str = "keep",
        image: ImageFile | None = None,
    ) -> ClientNote:
        gate = self.update_gates.get(note_id)
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)
        if note_id in self.update_errors:
            raise self.update_errors[note_id]
        self.updates.append((note_id, title, content, image_action))
        for i, note in enumerate(self.server):
            if note.id == note_id:
                image_url = None if image_action == "clear" else note.image_url
                self.server[i] = dataclasses.replace(
                    note, title=title, content=content, image_url=image_url
                )
                return self.server[i]
        raise ApiRequestError("Note not found", 404)

    async def delete_note(self, note_id: int) -> None:
        await asyncio.sleep(0)
        if self.delete_error:
            raise self.delete_error
        self.server = [n for n in self.server if n.id != note_id]


@pytest.fixture
def note_factory() -> Any:
    """Build ClientNote values with fixed timestamps."""
    return build_note


@pytest.fixture
def fake_api(note_factory) -> FakeNotesApi:
    """A server holding two notes for the acting user."""
    return FakeNotesApi([note_factory(1, "Groceries"), note_factory(2, "Ideas")])
