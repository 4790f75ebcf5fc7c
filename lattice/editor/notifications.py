"""User-facing notifications raised by editor operations."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from lattice.ir import new_id

logger = logging.getLogger(__name__)

MAX_NOTIFICATIONS = 5


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A single toast-style message.

    Attributes:
        id: Short unique identifier.
        level: Severity.
        message: Text shown to the user.
        timestamp: Creation time (UTC).
    """

    level: NotificationLevel
    message: str
    id: str = field(default_factory=lambda: new_id()[:8])
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class NotificationCenter:
    """Keeps the most recent notifications, oldest dropped first.

    Example:
        >>> center = NotificationCenter()
        >>> _ = center.success("Code generation complete")
        >>> [n.message for n in center.notifications]
        ['Code generation complete']
    """

    def __init__(self, limit: int = MAX_NOTIFICATIONS):
        self._limit = limit
        self._items: list[Notification] = []

    @property
    def notifications(self) -> list[Notification]:
        """Current notifications, oldest first."""
        return list(self._items)

    def add(self, level: NotificationLevel, message: str) -> str:
        notification = Notification(level=level, message=message)
        self._items.append(notification)
        del self._items[: -self._limit]
        logger.debug(f"[{notification.level.value}] {message}")
        return notification.id

    def info(self, message: str) -> str:
        return self.add(NotificationLevel.INFO, message)

    def success(self, message: str) -> str:
        return self.add(NotificationLevel.SUCCESS, message)

    def warning(self, message: str) -> str:
        return self.add(NotificationLevel.WARNING, message)

    def error(self, message: str) -> str:
        return self.add(NotificationLevel.ERROR, message)

    def remove(self, notification_id: str) -> bool:
        before = len(self._items)
        self._items = [n for n in self._items if n.id != notification_id]
        return len(self._items) != before

    def clear(self) -> None:
        self._items.clear()


__all__ = ["MAX_NOTIFICATIONS", "Notification", "NotificationCenter", "NotificationLevel"]
