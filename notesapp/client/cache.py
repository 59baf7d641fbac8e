"""
Query Cache.

A single cached server read. The fetcher runs as an asyncio task; the
result is written to the cache only if the task was not cancelled, so a
fetch superseded by a local optimistic write can never overwrite it.

States:
    idle       - never fetched, no data
    fetching   - a fetch task is in flight
    populated  - data present
    error      - the last fetch failed
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Generic, TypeVar

from notesapp.backend.core.logging import get_logger, log_with_source

logger = get_logger(__name__)

T = TypeVar("T")


class QueryStatus(str, Enum):
    """Lifecycle state of a query."""

    IDLE = "idle"
    FETCHING = "fetching"
    POPULATED = "populated"
    ERROR = "error"


class Query(Generic[T]):
    """
    Cache entry for one server read.

    Usage:
        query = Query("notes", api.list_notes, stale_time=60)
        notes = await query.ensure()
        query.set_data(lambda old: [*old, note])
        await query.invalidate()
    """

    def __init__(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        *,
        initial_data: T | None = None,
        stale_time: float = 0.0,
    ) -> None:
        self.key = key
        self._fetcher = fetcher
        self._data = initial_data
        self._updated_at: float | None = time.monotonic() if initial_data is not None else None
        self.stale_time = stale_time
        self.status = QueryStatus.POPULATED if initial_data is not None else QueryStatus.IDLE
        self.error: Exception | None = None
        self._task: asyncio.Task[T | None] | None = None
        self._listeners: list[Callable[[T | None], None]] = []

    @property
    def data(self) -> T | None:
        return self._data

    @property
    def is_fetching(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_loading(self) -> bool:
        """True while the first fetch is in flight and there is nothing to show."""
        return self.is_fetching and self._data is None

    @property
    def is_error(self) -> bool:
        return self.status is QueryStatus.ERROR

    @property
    def is_stale(self) -> bool:
        if self._updated_at is None:
            return True
        return time.monotonic() - self._updated_at >= self.stale_time

    def subscribe(self, listener: Callable[[T | None], None]) -> Callable[[], None]:
        """Call listener with the new data on every write. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _settled_status(self) -> QueryStatus:
        return QueryStatus.POPULATED if self._data is not None else QueryStatus.IDLE

    def _write(self, value: T | None) -> None:
        self._data = value
        self._updated_at = time.monotonic()
        self.status = self._settled_status()
        for listener in list(self._listeners):
            listener(value)

    async def _run(self) -> T | None:
        try:
            result = await self._fetcher()
        except asyncio.CancelledError:
            log_with_source(logger, "client", "debug", "Query fetch cancelled", key=self.key)
            raise
        except Exception as e:
            self.error = e
            self.status = QueryStatus.ERROR
            log_with_source(
                logger, "client", "warning", "Query fetch failed",
                key=self.key, error=str(e),
            )
            return None

        self.error = None
        self._write(result)
        return result

    def fetch(self) -> "asyncio.Task[T | None]":
        """Start a fetch, or return the one already in flight."""
        if self._task is not None and not self._task.done():
            return self._task
        self.status = QueryStatus.FETCHING
        self._task = asyncio.create_task(self._run())
        return self._task

    def cancel(self) -> None:
        """
        Cancel the in-flight fetch, if any. Its result is never written.

        Takes effect immediately: the cache keeps its current data from
        this call on.
        """
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            self.status = self._settled_status()
            log_with_source(logger, "client", "debug", "Query fetch superseded", key=self.key)
        self._task = None

    async def refetch(self) -> T | None:
        """
        Start a new fetch, superseding any in flight, and wait for it.

        Returns the cached data. A refetch that is itself superseded
        returns without raising.
        """
        self.cancel()
        task = self.fetch()
        await asyncio.wait({task})
        return self._data

    async def invalidate(self) -> T | None:
        """Mark the data stale and refetch it."""
        self._updated_at = None
        return await self.refetch()

    async def ensure(self) -> T | None:
        """Return fresh cached data, fetching only when it is missing or stale."""
        if self._data is not None and not self.is_stale:
            return self._data
        task = self.fetch()
        await asyncio.wait({task})
        return self._data

    def get_data(self) -> T | None:
        return self._data

    def set_data(self, value: T | None | Callable[[T | None], T | None]) -> T | None:
        """Write data directly; a callable receives the current data and returns the new value."""
        new_value = value(self._data) if callable(value) else value
        self._write(new_value)
        return new_value
