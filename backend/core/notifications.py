"""
Toast-style notification queue.

A process-wide list of short messages that dismiss themselves after a
fixed duration. Workflows receive a ``NotificationCenter`` instead of
reaching for a global, and the auto-dismiss timers go through a
``Scheduler`` so they do not depend on any UI event loop.
"""
import logging
import random
import string
import threading
import time
from dataclasses import dataclass, field

from django.conf import settings

from .scheduler import ThreadingScheduler

logger = logging.getLogger(__name__)

SUCCESS = 'success'
ERROR = 'error'
INFO = 'info'
WARNING = 'warning'

NOTIFICATION_TYPES = (SUCCESS, ERROR, INFO, WARNING)

# Auto-dismiss durations in milliseconds
DEFAULT_DURATIONS = {
    SUCCESS: 5000,
    ERROR: 8000,
    INFO: 5000,
    WARNING: 6000,
}

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_notification_id():
    suffix = ''.join(random.choices(_ID_ALPHABET, k=9))
    return f"notification-{int(time.time() * 1000)}-{suffix}"


@dataclass
class Notification:
    message: str
    type: str = INFO
    duration: int = DEFAULT_DURATIONS[INFO]
    id: str = field(default_factory=generate_notification_id)
    created_at: float = field(default_factory=time.time)


class NotificationCenter:
    """Holds the visible notifications, newest last"""

    def __init__(self, scheduler=None, max_visible=None):
        self.scheduler = scheduler or ThreadingScheduler()
        if max_visible is None:
            max_visible = getattr(settings, 'NOTIFICATION_MAX_VISIBLE', 5)
        self.max_visible = max_visible
        self._notifications = []
        self._timers = {}
        self._lock = threading.RLock()

    @property
    def notifications(self):
        with self._lock:
            return list(self._notifications)

    def add(self, message, type=INFO, duration=None):
        if type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {type}")
        if duration is None:
            duration = DEFAULT_DURATIONS[type]

        notification = Notification(message=message, type=type, duration=duration)
        logger.debug(f"Adding {type} notification {notification.id}: {message}")

        with self._lock:
            self._notifications.append(notification)
            overflow = self._notifications[:-self.max_visible] if self.max_visible > 0 else []
            if overflow:
                self._notifications = self._notifications[-self.max_visible:]
            for dropped in overflow:
                self._cancel_timer(dropped.id)

            if duration and duration > 0:
                self._timers[notification.id] = self.scheduler.call_later(
                    duration / 1000.0,
                    lambda: self.remove(notification.id),
                )

        return notification

    def remove(self, notification_id):
        with self._lock:
            before = len(self._notifications)
            self._notifications = [n for n in self._notifications if n.id != notification_id]
            self._cancel_timer(notification_id)
            removed = len(self._notifications) != before
        if removed:
            logger.debug(f"Removed notification {notification_id}")
        return removed

    def clear(self):
        with self._lock:
            for notification in self._notifications:
                self._cancel_timer(notification.id)
            self._notifications = []

    def _cancel_timer(self, notification_id):
        handle = self._timers.pop(notification_id, None)
        if handle is not None:
            handle.cancel()

    def show_success(self, message, duration=DEFAULT_DURATIONS[SUCCESS]):
        return self.add(message, SUCCESS, duration)

    def show_error(self, message, duration=DEFAULT_DURATIONS[ERROR]):
        return self.add(message, ERROR, duration)

    def show_info(self, message, duration=DEFAULT_DURATIONS[INFO]):
        return self.add(message, INFO, duration)

    def show_warning(self, message, duration=DEFAULT_DURATIONS[WARNING]):
        return self.add(message, WARNING, duration)
