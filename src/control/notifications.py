"""
Transient notifications surfaced to the user
"""

import threading
import time
from typing import Callable, Optional

from src.core.models import Notification

LEVELS = ("info", "success", "warning", "error")


class Notifier:
    """Keeps notifications until they expire (auto-dismiss)"""

    def __init__(self, ttl_seconds: float = 5.0, clock: Callable[[], float] = time.monotonic,
                 on_notify: Optional[Callable[[Notification], None]] = None):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._on_notify = on_notify
        self._items: list[Notification] = []
        self._lock = threading.Lock()

    def notify(self, message: str, level: str = "info") -> Notification:
        if level not in LEVELS:
            level = "info"
        now = self._clock()
        note = Notification(message=message, level=level, created_at=now, expires_at=now + self.ttl_seconds)
        with self._lock:
            self._items.append(note)
        print(f"[NOTIFY] {level.upper()}: {message}")
        if self._on_notify:
            self._on_notify(note)
        return note

    def success(self, message: str) -> Notification:
        return self.notify(message, "success")

    def error(self, message: str) -> Notification:
        return self.notify(message, "error")

    def active(self) -> list[Notification]:
        """Notifications not yet dismissed; expired ones are dropped"""
        now = self._clock()
        with self._lock:
            self._items = [n for n in self._items if n.expires_at > now]
            return list(self._items)

    def clear(self):
        with self._lock:
            self._items.clear()
