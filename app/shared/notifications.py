"""User-visible notification feed.

Each workspace owns one ``NotificationCenter``. Notifications posted with a
key replace the previous entry under that key, so a repeating status update
shows as a single entry. Responses drain the feed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from models.base import utc_now

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    LOADING = "loading"


@dataclass
class Notification:
    level: NotificationLevel
    message: str
    key: str | None = None
    persistent: bool = False
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "level": self.level.value,
            "message": self.message,
            "key": self.key,
            "persistent": self.persistent,
            "created_at": self.created_at.isoformat(),
        }


class NotificationCenter:
    def __init__(self):
        self._items: list[Notification] = []

    def notify(
        self,
        level: NotificationLevel,
        message: str,
        key: str | None = None,
        persistent: bool = False,
    ) -> Notification:
        notification = Notification(level=level, message=message, key=key, persistent=persistent)
        if key is not None:
            self._items = [item for item in self._items if item.key != key]
        self._items.append(notification)
        logger.debug("Notification [%s] %s", level.value, message)
        return notification

    def info(self, message: str, key: str | None = None) -> Notification:
        return self.notify(NotificationLevel.INFO, message, key)

    def success(self, message: str, key: str | None = None) -> Notification:
        return self.notify(NotificationLevel.SUCCESS, message, key)

    def error(self, message: str, key: str | None = None) -> Notification:
        return self.notify(NotificationLevel.ERROR, message, key)

    def loading(self, message: str, key: str, persistent: bool = True) -> Notification:
        return self.notify(NotificationLevel.LOADING, message, key, persistent)

    def dismiss(self, key: str) -> None:
        self._items = [item for item in self._items if item.key != key]

    def pending(self) -> list[Notification]:
        return list(self._items)

    def drain(self) -> list[Notification]:
        """Return every notification and keep only the persistent ones."""
        items = list(self._items)
        self._items = [item for item in self._items if item.persistent]
        return items
