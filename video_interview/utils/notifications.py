"""
Transient user notifications.

Every user-facing outcome (success or error) goes through a `Notifier` so the
interview flow never depends on a concrete screen.
"""

from enum import Enum
from typing import Optional, Protocol

from pydantic import BaseModel
from loguru import logger


class NotificationStatus(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    title: str
    description: Optional[str] = None
    status: NotificationStatus = NotificationStatus.INFO
    duration: float = 3.0  # seconds on screen


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None: ...


class LogNotifier:
    """Notifier that only writes to the log. Used when no console is attached."""

    _levels = {
        NotificationStatus.SUCCESS: "SUCCESS",
        NotificationStatus.INFO: "INFO",
        NotificationStatus.WARNING: "WARNING",
        NotificationStatus.ERROR: "ERROR",
    }

    def notify(self, notification: Notification) -> None:
        message = notification.title
        if notification.description:
            message = f"{message}: {notification.description}"
        logger.log(self._levels[notification.status], message)

