from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Deque, Iterable, List

from loguru import logger


class NotificationLevel(str, Enum):
    success = "success"
    error = "error"


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


NotificationListener = Callable[[Notification], None]


def fan_out(listeners: Iterable[Callable[[Any], Any]], payload: Any, label: str) -> None:
    """Call every listener with ``payload``; a raising listener is logged and skipped."""
    for listener in list(listeners):
        try:
            listener(payload)
        except Exception:
            logger.exception("{} listener failed", label)


class Notifier:
    """Fan-out of user-facing notifications to the presentation layer."""

    def __init__(self, history_size: int = 50):
        self._listeners: List[NotificationListener] = []
        self.history: Deque[Notification] = deque(maxlen=history_size)

    def subscribe(self, listener: NotificationListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: NotificationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def success(self, message: str) -> Notification:
        return self._emit(NotificationLevel.success, message)

    def error(self, message: str) -> Notification:
        return self._emit(NotificationLevel.error, message)

    def _emit(self, level: NotificationLevel, message: str) -> Notification:
        note = Notification(level=level, message=message)
        if level == NotificationLevel.error:
            logger.warning("Notification: {}", message)
        else:
            logger.info("Notification: {}", message)
        self.history.append(note)
        fan_out(self._listeners, note, "Notification")
        return note

    def messages(self, level: NotificationLevel | None = None) -> List[str]:
        return [n.message for n in self.history if level is None or n.level == level]
