"""
Notification Ledger - Poll-based cross notifications
====================================================
Records cross events for clients that poll. Inserts are idempotent by
exchange-symbol-timestamp; entries expire after a fixed retention window
whether or not they were delivered.
"""

import threading
from typing import Iterable, List, Optional

from ..models.notifications import Notification, NotificationStats, NotificationType
from ..models.signals import CrossEvent
from ...core import time_manager
from ...core.logger import StructuredLogger, get_logger

DEFAULT_RETENTION_MS = 10 * time_manager.MINUTE_MS
DEFAULT_MAX_ENTRIES = 100


class NotificationLedger:
    """Most-recent-first list of notifications, capped and time-bounded"""

    def __init__(
        self,
        retention_ms: int = DEFAULT_RETENTION_MS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: time_manager.Clock = time_manager.now_ms,
        logger: Optional[StructuredLogger] = None
    ):
        self.retention_ms = retention_ms
        self.max_entries = max_entries
        self._clock = clock
        self._entries: List[Notification] = []
        self._lock = threading.Lock()
        self.logger = logger or get_logger(__name__)

    def add(self, event: CrossEvent, now: Optional[int] = None) -> bool:
        """
        Record a cross event.

        Returns:
            False if a notification with the same id already exists
        """
        notification = Notification.from_cross_event(event, created_at=time_manager.resolve(now, self._clock))

        with self._lock:
            if any(n.id == notification.id for n in self._entries):
                return False
            self._entries.insert(0, notification)
            del self._entries[self.max_entries:]

        self.logger.info("notification_ledger.added", {
            "id": notification.id,
            "type": notification.type.value,
            "symbol": notification.symbol,
            "exchange": notification.exchange
        })
        return True

    def unnotified(self) -> List[Notification]:
        with self._lock:
            return [n.model_copy() for n in self._entries if not n.notified]

    def mark_notified(self, ids: Iterable[str]) -> int:
        """Flag matching entries as delivered; unknown ids are ignored"""
        wanted = set(ids)
        marked = 0
        with self._lock:
            for notification in self._entries:
                if notification.id in wanted and not notification.notified:
                    notification.notified = True
                    marked += 1
        return marked

    def cleanup(self, now: Optional[int] = None) -> int:
        """Drop entries older than the retention window. Returns the number removed."""
        cutoff = time_manager.resolve(now, self._clock) - self.retention_ms
        with self._lock:
            before = len(self._entries)
            self._entries = [n for n in self._entries if n.created_at >= cutoff]
            removed = before - len(self._entries)

        if removed:
            self.logger.info("notification_ledger.cleaned_up", {"removed": removed, "remaining": before - removed})
        return removed

    def all(self) -> List[Notification]:
        with self._lock:
            return [n.model_copy() for n in self._entries]

    def stats(self) -> NotificationStats:
        with self._lock:
            entries = list(self._entries)
        unnotified = sum(1 for n in entries if not n.notified)
        return NotificationStats(
            total=len(entries),
            unnotified=unnotified,
            notified=len(entries) - unnotified,
            golden_crosses=sum(1 for n in entries if n.type == NotificationType.GOLDEN_CROSS),
            death_crosses=sum(1 for n in entries if n.type == NotificationType.DEATH_CROSS),
        )

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries = []
        self.logger.info("notification_ledger.cleared", {"removed": removed})
        return removed
