"""
Fake Transport - Test Double Implementation

This module provides a FakeTransport that implements the real TransportClient
interface without touching the network.

This is NOT mocking - it's a proper implementation of the interface. It is
used for:
- Local development without a paired phone
- Integration testing of the session lifecycle
- Demo/sandbox environments

With auto_events enabled (the default), connect() behaves like a real
client: a session holding credentials resumes and opens immediately, a fresh
session emits a pairing code. With auto_events disabled, tests drive every
event explicitly through the emit_* helpers.
"""

import uuid
from typing import Any, Optional

from wa_gateway.transport.base import (
    ConnectionClosed,
    ConnectionOpened,
    Connecting,
    CredentialsUpdated,
    DisconnectReason,
    MessageReceived,
    PairingCodeReceived,
    TransportClient,
    TransportEvent,
    TransportListener,
    TransportOptions,
)


class FakeTransport(TransportClient):
    """
    Fake transport client with scriptable events.

    Attributes:
        session_id: Session this client serves
        credentials: Credentials it was built with
        sent: (jid, content) pairs passed to send()
        connected_calls / logout_calls / close_calls: Call counters
        error_on_send: Exception to raise from send()
        error_on_connect: Exception to raise from connect()
        error_on_logout: Exception to raise from logout()
    """

    def __init__(
        self,
        session_id: str,
        credentials: Optional[dict[str, Any]] = None,
        options: Optional[TransportOptions] = None,
        auto_events: bool = True,
    ) -> None:
        self.session_id = session_id
        self.credentials = credentials
        self.options = options if options is not None else TransportOptions()
        self.auto_events = auto_events

        self.sent: list[tuple[str, dict[str, Any]]] = []
        self.connect_calls = 0
        self.logout_calls = 0
        self.close_calls = 0
        self.closed = False

        self.error_on_send: Optional[Exception] = None
        self.error_on_connect: Optional[Exception] = None
        self.error_on_logout: Optional[Exception] = None

        self._listeners: list[TransportListener] = []
        self._pairing_refs = 0

    # =========================================================================
    # TransportClient interface
    # =========================================================================

    def subscribe(self, listener: TransportListener) -> None:
        self._listeners.append(listener)

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.error_on_connect is not None:
            raise self.error_on_connect

        self.emit(Connecting())
        if not self.auto_events:
            return

        me = (self.credentials or {}).get("me")
        if me:
            self.emit_connected(me.get("id", ""), me.get("name"))
        else:
            self.emit_pairing()

    async def send(self, jid: str, content: dict[str, Any]) -> str:
        if self.error_on_send is not None:
            raise self.error_on_send
        self.sent.append((jid, content))
        return uuid.uuid4().hex[:20].upper()

    async def logout(self) -> None:
        self.logout_calls += 1
        if self.error_on_logout is not None:
            raise self.error_on_logout
        self.emit_disconnected(DisconnectReason.LOGGED_OUT)

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True

    # =========================================================================
    # Scripting helpers
    # =========================================================================

    def emit(self, event: TransportEvent) -> None:
        """Deliver an event to every subscribed listener."""
        for listener in list(self._listeners):
            listener(event)

    def emit_pairing(self, code: Optional[str] = None) -> str:
        """Emit a pairing code; generates a unique one when omitted."""
        self._pairing_refs += 1
        code = code or f"2@fake-{self.session_id}-{self._pairing_refs}"
        self.emit(PairingCodeReceived(code=code))
        return code

    def emit_connected(self, user_id: str, name: Optional[str] = None) -> None:
        """Emit an open connection, persisting credentials like a real pairing."""
        self.emit(CredentialsUpdated(credentials={"me": {"id": user_id, "name": name}}))
        self.emit(ConnectionOpened(user_id=user_id, name=name))

    def emit_disconnected(self, reason: Optional[int] = None) -> None:
        self.emit(ConnectionClosed(reason=reason))

    def emit_message(self, message: dict[str, Any]) -> None:
        self.emit(MessageReceived(message=message))


class FakeTransportFactory:
    """
    TransportFactory that remembers every FakeTransport it built.

    Example:
        >>> factory = FakeTransportFactory(auto_events=False)
        >>> registry = SessionRegistry(transport_factory=factory, ...)
        >>> await registry.create("A")
        >>> factory.latest("A").emit_pairing()
    """

    def __init__(self, auto_events: bool = False) -> None:
        self.auto_events = auto_events
        self.instances: dict[str, list[FakeTransport]] = {}

    def __call__(
        self,
        session_id: str,
        credentials: Optional[dict[str, Any]],
        options: TransportOptions,
    ) -> FakeTransport:
        transport = FakeTransport(
            session_id,
            credentials=credentials,
            options=options,
            auto_events=self.auto_events,
        )
        self.instances.setdefault(session_id, []).append(transport)
        return transport

    def latest(self, session_id: str) -> FakeTransport:
        """Most recently built transport for a session."""
        return self.instances[session_id][-1]

    def count(self, session_id: str) -> int:
        """Number of transports built for a session."""
        return len(self.instances.get(session_id, []))
