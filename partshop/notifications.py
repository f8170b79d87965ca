"""User-facing notifications (toasts).

Notifications are fire-and-forget: nothing in the shop depends on what a
notifier does with them.
"""

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Any, Dict, List

from partshop.logging_config import get_logger

__all__ = [
    "Notification",
    "Notifier",
    "LoggingNotifier",
    "CollectingNotifier",
    "SEVERITIES",
]

SEVERITIES = ("info", "success", "warning", "error")

_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class Notification:
    title: str
    message: str
    severity: str = "info"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Notifier:
    """Base notifier. Subclasses override ``notify``."""

    def notify(self, title: str, message: str, severity: str = "info") -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Writes notifications to the shop log."""

    def __init__(self, logger_name: str = "notifications"):
        self.logger = get_logger(logger_name)

    def notify(self, title: str, message: str, severity: str = "info") -> None:
        self.logger.log(_LEVELS.get(severity, logging.INFO), "%s: %s", title, message)


class CollectingNotifier(LoggingNotifier):
    """Buffers notifications until drained, e.g. to return them with an API response."""

    def __init__(self, logger_name: str = "notifications"):
        super().__init__(logger_name)
        self._pending: List[Notification] = []
        self._lock = threading.Lock()

    def notify(self, title: str, message: str, severity: str = "info") -> None:
        if severity not in SEVERITIES:
            severity = "info"
        super().notify(title, message, severity)
        with self._lock:
            self._pending.append(Notification(title, message, severity))

    @property
    def pending(self) -> List[Notification]:
        with self._lock:
            return list(self._pending)

    def drain(self) -> List[Notification]:
        """Return and forget all buffered notifications."""
        with self._lock:
            drained, self._pending = self._pending, []
        return drained
