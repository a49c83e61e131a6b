"""Session lifecycle events and their broadcasters."""

from wa_gateway.events.broadcaster import (
    EventBroadcaster,
    EventKind,
    InMemoryBroadcaster,
    SessionEvent,
)

__all__ = ["EventBroadcaster", "EventKind", "InMemoryBroadcaster", "SessionEvent"]
