"""Suppress repeated deliveries of the same notification.

Banking apps frequently re-post an identical notification (update, re-alert,
grouping). The cache remembers when each (source, title, text) identity was
last seen and rejects a repeat inside a short window.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable

from spend_ledger.core.config import settings


def notification_identity(source: str, title: str | None, text: str | None) -> str:
    return f"{(source or '').strip()}|{(title or '').strip()}|{(text or '').strip()}"


class NotificationDeduplicator:
    def __init__(
        self,
        *,
        capacity: int | None = None,
        ttl_seconds: float | None = None,
        window_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.capacity = capacity if capacity is not None else settings.notification_dedupe_capacity
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else settings.notification_dedupe_ttl_seconds
        )
        self.window_seconds = (
            window_seconds
            if window_seconds is not None
            else settings.notification_dedupe_window_seconds
        )
        self._clock = clock
        self._seen: OrderedDict[str, float] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def should_ingest(
        self,
        source: str,
        title: str | None,
        text: str | None,
        *,
        posted_at: float | None = None,
    ) -> bool:
        """Record a sighting; ``False`` when the same notification was seen within the window.

        ``posted_at`` is the sender's timestamp in epoch seconds; the clock is
        used when it is missing or non-positive.
        """
        identity = notification_identity(source, title, text)
        now = self._clock()
        event_time = posted_at if posted_at and posted_at > 0 else now

        with self._lock:
            expired = [k for k, seen_at in self._seen.items() if now - seen_at > self.ttl_seconds]
            for key in expired:
                del self._seen[key]

            last_seen = self._seen.get(identity)
            if last_seen is not None:
                self._seen.move_to_end(identity)
                if abs(event_time - last_seen) <= self.window_seconds:
                    return False

            self._seen[identity] = event_time
            self._seen.move_to_end(identity)
            while len(self._seen) > self.capacity:
                self._seen.popitem(last=False)
            return True
