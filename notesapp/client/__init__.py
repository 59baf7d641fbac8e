"""Client synchronization layer for the notes API."""

from notesapp.client.api import ApiRequestError, NotesApiClient
from notesapp.client.cache import Query, QueryStatus
from notesapp.client.models import ClientNote, ImageFile
from notesapp.client.notifications import Notification, NotificationLevel, Notifier
from notesapp.client.sync import NotesSync

__all__ = [
    "ApiRequestError",
    "ClientNote",
    "ImageFile",
    "Notification",
    "NotificationLevel",
    "NotesApiClient",
    "NotesSync",
    "Notifier",
    "Query",
    "QueryStatus",
]
