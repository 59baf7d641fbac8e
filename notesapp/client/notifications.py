"""
User Notifications.

Short messages surfaced to the user after a mutation settles, the client
equivalent of a toast. Listeners receive every Notification; a bounded
history is kept for inspection.

Usage:
    notifier = Notifier()
    notifier.subscribe(lambda n: print(n.level, n.message))
    notifier.success("Note created.")
"""

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from notesapp.backend.core.logging import get_logger, log_with_source
from notesapp.backend.core.utils import utc_now

logger = get_logger(__name__)


class NotificationLevel(str, Enum):
    """Kinds of notification."""

    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A message shown to the user."""

    level: NotificationLevel
    message: str
    timestamp: datetime = field(default_factory=utc_now)


Listener = Callable[[Notification], None]


class Notifier:
    """Dispatches notifications to listeners and keeps recent history."""

    def __init__(self, history_size: int = 50) -> None:
        self._listeners: list[Listener] = []
        self._history: deque[Notification] = deque(maxlen=history_size)

    @property
    def history(self) -> list[Notification]:
        return list(self._history)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def notify(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level, message)
        self._history.append(notification)
        log_with_source(
            logger, "client", "info", "Notification",
            level=level.value, notification=message,
        )
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:
                log_with_source(
                    logger, "client", "error", "Notification listener failed",
                    error=str(e),
                )
        return notification

    def info(self, message: str) -> Notification:
        return self.notify(NotificationLevel.INFO, message)

    def success(self, message: str) -> Notification:
        return self.notify(NotificationLevel.SUCCESS, message)

    def error(self, message: str) -> Notification:
        return self.notify(NotificationLevel.ERROR, message)
