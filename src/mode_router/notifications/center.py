from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
import logging
import threading
import uuid

logger = logging.getLogger(__name__)

MAX_HISTORY = 50


class NotificationType(StrEnum):
    MODE_SWITCH = "mode_switch"
    FALLBACK = "fallback"
    ERROR = "error"
    RECOMMENDATION = "recommendation"


class Severity(StrEnum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    type: NotificationType
    title: str
    message: str
    severity: Severity
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "severity": self.severity.value,
            "timestamp": self.timestamp,
        }


Subscriber = Callable[[Notification], None]


class NotificationCenter:
    """Fire-and-forget event feed for observers, keeping the last 50 events."""

    def __init__(self, max_history: int = MAX_HISTORY, enabled: bool = True) -> None:
        self.enabled = enabled
        self._history: deque[Notification] = deque(maxlen=max_history)
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return unsubscribe

    def emit(
        self,
        type: NotificationType,
        title: str,
        message: str,
        severity: Severity = Severity.INFO,
    ) -> Notification | None:
        if not self.enabled:
            return None
        notification = Notification(type=type, title=title, message=message, severity=severity)
        with self._lock:
            self._history.append(notification)
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            try:
                subscriber(notification)
            except Exception:
                logger.exception("Notification subscriber failed for %s", notification.type)
        return notification

    def history(self) -> list[Notification]:
        with self._lock:
            return list(self._history)

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
