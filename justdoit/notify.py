"""
JUSTDOIT - Notifications
========================
Transient toast-style messages raised by stores and the session guard.
The UI subscribes and renders them; the CLI prints them.
"""

import logging
from collections import deque
from datetime import datetime
from enum import Enum
from typing import Callable, Deque, List

from pydantic import BaseModel, Field

from .schema import utcnow

logger = logging.getLogger("justdoit.notify")


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class Notification(BaseModel):
    level: NotificationLevel
    title: str
    message: str
    created_at: datetime = Field(default_factory=utcnow)


Subscriber = Callable[[Notification], None]


class Notifier:
    """Fans notifications out to subscribers, keeping a short history"""

    def __init__(self, history: int = 50):
        self._recent: Deque[Notification] = deque(maxlen=history)
        self._subscribers: List[Subscriber] = []

    @property
    def recent(self) -> List[Notification]:
        return list(self._recent)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it"""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def notify(self, level: NotificationLevel, title: str, message: str) -> Notification:
        notification = Notification(level=level, title=title, message=message)
        self._recent.append(notification)
        logger.debug(f"🔔 {level.value}: {title} - {message}")
        for callback in list(self._subscribers):
            callback(notification)
        return notification

    def success(self, message: str, title: str = "Success") -> Notification:
        return self.notify(NotificationLevel.SUCCESS, title, message)

    def error(self, message: str, title: str = "Error") -> Notification:
        return self.notify(NotificationLevel.ERROR, title, message)

    def info(self, message: str, title: str = "Info") -> Notification:
        return self.notify(NotificationLevel.INFO, title, message)
