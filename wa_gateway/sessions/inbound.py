"""
Inbound message log.

Keeps the most recent inbound messages per session so the session stays
observable without an external store. It is an optional capability: a
session whose log cannot be built keeps running in degraded mode.
"""

from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable

DEFAULT_CAPACITY = 200


class InboundMessageLog:
    """Bounded, newest-last record of inbound messages."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._messages: deque[dict[str, Any]] = deque(maxlen=capacity)
        self.total_received = 0

    def append(self, message: dict[str, Any]) -> None:
        self._messages.append(
            {"received_at": datetime.now(timezone.utc).isoformat(), "message": message}
        )
        self.total_received += 1

    def recent(self, limit: int = 20) -> list[dict[str, Any]]:
        if limit <= 0:
            return []
        return list(self._messages)[-limit:]

    def __len__(self) -> int:
        return len(self._messages)


InboundLogFactory = Callable[[], InboundMessageLog]
