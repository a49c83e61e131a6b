"""
Session Event Broadcaster

State machines publish lifecycle events here; delivery to remote subscribers
(push channels, webhooks) is the job of whatever adapter implements
EventBroadcaster. The in-memory broadcaster fans events out to asyncio queues
in-process.

Event kinds:
    pairing-ready(session_id, artifact)
    connected(session_id, phone, name)
    terminated(session_id, reason)
"""

import asyncio
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from wa_gateway.observability.logging import get_logger

logger = get_logger(__name__)

EventKind = Literal["pairing-ready", "connected", "terminated"]


class SessionEvent(BaseModel):
    """A lifecycle event keyed by session id."""

    kind: EventKind
    session_id: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}

    @property
    def channel(self) -> str:
        """Per-session channel name, e.g. "connected-shop-42"."""
        return f"{self.kind}-{self.session_id}"

    @classmethod
    def pairing_ready(cls, session_id: str, artifact: str) -> "SessionEvent":
        return cls(kind="pairing-ready", session_id=session_id, data={"qr": artifact})

    @classmethod
    def connected(cls, session_id: str, phone: str, name: Optional[str]) -> "SessionEvent":
        return cls(
            kind="connected",
            session_id=session_id,
            data={"status": "connected", "phone": phone, "name": name},
        )

    @classmethod
    def terminated(cls, session_id: str, reason: str) -> "SessionEvent":
        return cls(kind="terminated", session_id=session_id, data={"reason": reason})


class EventBroadcaster(ABC):
    """Notification sink for session lifecycle events."""

    @abstractmethod
    async def publish(self, event: SessionEvent) -> None:
        ...


class InMemoryBroadcaster(EventBroadcaster):
    """
    Fans events out to subscriber queues and keeps a bounded history.

    A subscriber whose queue is full loses the event rather than stalling
    the publishing session.
    """

    def __init__(self, history_size: int = 500, queue_size: int = 100) -> None:
        self._history: deque[SessionEvent] = deque(maxlen=history_size)
        self._queue_size = queue_size
        self._subscribers: list[tuple[Optional[str], asyncio.Queue[SessionEvent]]] = []

    @property
    def history(self) -> list[SessionEvent]:
        return list(self._history)

    def events_for(self, session_id: str) -> list[SessionEvent]:
        return [e for e in self._history if e.session_id == session_id]

    def subscribe(self, session_id: Optional[str] = None) -> asyncio.Queue[SessionEvent]:
        """
        Open a subscription.

        Args:
            session_id: Only receive this session's events; None for all.
        """
        queue: asyncio.Queue[SessionEvent] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.append((session_id, queue))
        return queue

    def unsubscribe(self, queue: asyncio.Queue[SessionEvent]) -> None:
        self._subscribers = [(sid, q) for sid, q in self._subscribers if q is not queue]

    async def publish(self, event: SessionEvent) -> None:
        self._history.append(event)
        for session_filter, queue in list(self._subscribers):
            if session_filter is not None and session_filter != event.session_id:
                continue
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(
                    "subscriber queue full, dropping event",
                    kind=event.kind,
                    session_id=event.session_id,
                )
