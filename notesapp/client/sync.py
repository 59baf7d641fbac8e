"""
Notes Synchronization.

Keeps the client's cached note list consistent with the server across
mutations.

- add_note / delete_note are not optimistic: the cache changes only
  through the refetch that follows a success.
- update_note patches title and content in the cache at call time, rolls
  the cache back to its pre-call snapshot if the server rejects the
  change, and refetches when the request settles either way.

Mutations are independent and may overlap. Each returns the asyncio task
driving it; the task's result is True on success.
"""

import asyncio
import dataclasses
from collections.abc import Callable, Coroutine
from typing import Any

from notesapp.backend.core.logging import get_logger, log_with_source
from notesapp.client.api import ApiRequestError, NotesApiClient
from notesapp.client.cache import Query
from notesapp.client.models import ClientNote, ImageFile
from notesapp.client.notifications import Notifier

logger = get_logger(__name__)

NOTES_QUERY_KEY = "notes"
NOTE_CREATED = "Note created."
NOTE_DELETED = "Note deleted."

# Avoids an immediate refetch right after the list was seeded
DEFAULT_STALE_TIME = 60.0


class NotesSync:
    """
    Client synchronization layer for the acting user's notes.

    Usage:
        sync = NotesSync(NotesApiClient(token=token))
        await sync.load()
        task = sync.update_note(3, "New title", "Body")
        sync.notes  # already shows "New title"
        await task
    """

    def __init__(
        self,
        api: NotesApiClient,
        notifier: Notifier | None = None,
        *,
        initial_notes: list[ClientNote] | None = None,
        stale_time: float = DEFAULT_STALE_TIME,
    ) -> None:
        self.api = api
        self.notifier = notifier or Notifier()
        self.query: Query[list[ClientNote]] = Query(
            NOTES_QUERY_KEY,
            api.list_notes,
            initial_data=initial_notes,
            stale_time=stale_time,
        )
        self._pending = {"add": 0, "update": 0, "delete": 0}
        self._tasks: set[asyncio.Task[bool]] = set()

    @property
    def notes(self) -> list[ClientNote] | None:
        return self.query.data

    @property
    def is_loading(self) -> bool:
        return self.query.is_loading

    @property
    def is_error(self) -> bool:
        return self.query.is_error

    @property
    def is_adding(self) -> bool:
        return self._pending["add"] > 0

    @property
    def is_updating(self) -> bool:
        return self._pending["update"] > 0

    @property
    def is_deleting(self) -> bool:
        return self._pending["delete"] > 0

    async def load(self) -> list[ClientNote] | None:
        """Load the note list unless fresh data is already cached."""
        return await self.query.ensure()

    def _begin(self, kind: str) -> Callable[[], None]:
        """Mark a mutation of this kind pending; the returned function ends it once."""
        self._pending[kind] += 1
        ended = False

        def end() -> None:
            nonlocal ended
            if not ended:
                ended = True
                self._pending[kind] -= 1

        return end

    def _spawn(
        self,
        end: Callable[[], None],
        coro: Coroutine[Any, Any, bool],
    ) -> asyncio.Task[bool]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(lambda _: end())
        return task

    def add_note(
        self,
        title: str,
        content: str,
        image: ImageFile | None = None,
    ) -> asyncio.Task[bool]:
        """Create a note; on success notify and refetch, on failure notify the error."""
        end = self._begin("add")
        return self._spawn(end, self._add(end, title, content, image))

    async def _add(
        self,
        end: Callable[[], None],
        title: str,
        content: str,
        image: ImageFile | None,
    ) -> bool:
        try:
            await self.api.create_note(title, content, image)
        except ApiRequestError as e:
            self.notifier.error(e.message)
            return False
        finally:
            end()

        self.notifier.success(NOTE_CREATED)
        await self.query.invalidate()
        return True

    def update_note(
        self,
        note_id: int,
        title: str,
        content: str,
        image_action: str = "keep",
        image: ImageFile | None = None,
    ) -> asyncio.Task[bool]:
        """
        Update a note optimistically.

        Before this returns, any in-flight list fetch is cancelled and the
        cached note shows the new title and content. The image is left as
        is until the server answers.
        """
        end = self._begin("update")
        self.query.cancel()
        snapshot = self.query.data

        def patch(notes: list[ClientNote] | None) -> list[ClientNote] | None:
            if notes is None:
                return None
            return [
                dataclasses.replace(note, title=title, content=content)
                if note.id == note_id
                else note
                for note in notes
            ]

        self.query.set_data(patch)
        log_with_source(logger, "client", "debug", "Optimistic update applied", note_id=note_id)

        return self._spawn(
            end,
            self._update(end, snapshot, note_id, title, content, image_action, image),
        )

    async def _update(
        self,
        end: Callable[[], None],
        snapshot: list[ClientNote] | None,
        note_id: int,
        title: str,
        content: str,
        image_action: str,
        image: ImageFile | None,
    ) -> bool:
        succeeded = False
        try:
            await self.api.update_note(note_id, title, content, image_action, image)
            succeeded = True
        except ApiRequestError as e:
            self.notifier.error(e.message)
        finally:
            end()
            if not succeeded:
                self.query.set_data(snapshot)
                log_with_source(
                    logger, "client", "info", "Optimistic update rolled back",
                    note_id=note_id,
                )
            # Server state wins once the request has settled, whatever the outcome
            await self.query.invalidate()
        return succeeded

    def delete_note(self, note_id: int) -> asyncio.Task[bool]:
        """Delete a note; on success notify and refetch, on failure notify the error."""
        end = self._begin("delete")
        return self._spawn(end, self._delete(end, note_id))

    async def _delete(self, end: Callable[[], None], note_id: int) -> bool:
        try:
            await self.api.delete_note(note_id)
        except ApiRequestError as e:
            self.notifier.error(e.message)
            return False
        finally:
            end()

        self.notifier.success(NOTE_DELETED)
        await self.query.invalidate()
        return True

    async def wait_idle(self) -> None:
        """Wait until every mutation started so far has settled."""
        if self._tasks:
            await asyncio.wait(set(self._tasks))
