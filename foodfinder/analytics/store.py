from __future__ import annotations

import time
from collections import deque
from threading import Lock
from typing import Any

_MAX_EVENTS = 10_000


class EventStore:
    """Append-only in-process event log, bounded to the newest events."""

    def __init__(self, max_events: int = _MAX_EVENTS) -> None:
        self._events: deque[dict[str, Any]] = deque(maxlen=max_events)
        self._lock = Lock()

    def record(self, event_type: str, data: dict[str, Any]) -> None:
        with self._lock:
            self._events.append({
                "type": event_type,
                "timestamp": time.time(),
                **data,
            })

    def all(self) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
