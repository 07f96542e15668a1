from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional


class AlertLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"


@dataclass
class Notification:
    message: str
    level: AlertLevel = AlertLevel.INFO
    created_at: float = field(default_factory=time.monotonic)


class AlertCenter:
    """Single transient status message; a new one replaces the old."""

    def __init__(self, ttl_seconds: float = 6.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._current: Optional[Notification] = None

    def show(self, message: str, level: AlertLevel = AlertLevel.INFO) -> Notification:
        self._current = Notification(message=message, level=AlertLevel(level), created_at=self._clock())
        return self._current

    def success(self, message: str) -> Notification:
        return self.show(message, AlertLevel.SUCCESS)

    def info(self, message: str) -> Notification:
        return self.show(message, AlertLevel.INFO)

    def warning(self, message: str) -> Notification:
        return self.show(message, AlertLevel.WARNING)

    def danger(self, message: str) -> Notification:
        return self.show(message, AlertLevel.DANGER)

    def current(self) -> Optional[Notification]:
        n = self._current
        if n is not None and self._clock() - n.created_at >= self.ttl_seconds:
            self._current = None
            return None
        return n

    def clear(self) -> None:
        self._current = None
