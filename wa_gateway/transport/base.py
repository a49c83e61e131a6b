"""
Transport Client Interface

This module defines the port through which a session talks to the messaging
network. The wire protocol itself lives outside this project; adapters
implement TransportClient and are selected through a factory.

Design Pattern:
- Ports and Adapters (Hexagonal Architecture)
- TransportClient serves as the "port" (interface)
- Concrete clients (fake.py, or an external protocol library wrapper) are "adapters"

Event delivery contract:
    The transport reports connection progress by calling the listener passed
    to subscribe() with TransportEvent instances. The listener is synchronous
    and never blocks, so a transport may call it from inside connect().
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Optional, Protocol, Union


# =============================================================================
# Disconnect Reasons
# =============================================================================


class DisconnectReason(IntEnum):
    """
    Status codes reported by the network when a connection closes.

    Values follow the multi-device web protocol's close codes.
    """

    CONNECTION_CLOSED = 428
    CONNECTION_LOST = 408
    CONNECTION_REPLACED = 440
    TIMED_OUT = 408
    LOGGED_OUT = 401
    BAD_SESSION = 500
    RESTART_REQUIRED = 515
    MULTIDEVICE_MISMATCH = 411
    FORBIDDEN = 403
    UNAVAILABLE_SERVICE = 503


# =============================================================================
# Transport Events
# =============================================================================


@dataclass(frozen=True)
class PairingCodeReceived:
    """A fresh pairing code is available for scanning."""

    code: str


@dataclass(frozen=True)
class ConnectionOpened:
    """
    The connection is authenticated and open.

    Attributes:
        user_id: Network user id, e.g. "15551234567:12@s.whatsapp.net"
        name: Display name of the paired account, if known
    """

    user_id: str
    name: Optional[str] = None

    @property
    def phone(self) -> str:
        """Phone number part of the user id (device and domain stripped)."""
        return self.user_id.split(":")[0].split("@")[0]


@dataclass(frozen=True)
class ConnectionClosed:
    """
    The connection closed.

    Attributes:
        reason: Status code of the close, None when the transport gave none
    """

    reason: Optional[int] = None


@dataclass(frozen=True)
class Connecting:
    """The transport started a connection attempt."""


@dataclass(frozen=True)
class CredentialsUpdated:
    """Credential material changed and must be persisted."""

    credentials: dict[str, Any]


@dataclass(frozen=True)
class MessageReceived:
    """An inbound message arrived on the session."""

    message: dict[str, Any] = field(default_factory=dict)


TransportEvent = Union[
    PairingCodeReceived,
    ConnectionOpened,
    ConnectionClosed,
    Connecting,
    CredentialsUpdated,
    MessageReceived,
]

TransportListener = Callable[[TransportEvent], None]


# =============================================================================
# Transport Options
# =============================================================================


@dataclass(frozen=True)
class TransportOptions:
    """Connection tuning passed to every transport instance."""

    connect_timeout_seconds: float = 60.0
    keepalive_interval_seconds: float = 25.0
    browser_name: str = "Chrome (Linux)"


# =============================================================================
# Transport Client ABC
# =============================================================================


class TransportClient(ABC):
    """
    Abstract base class for messaging network clients.

    One instance serves exactly one session for one connection attempt.
    A reconnect builds a new instance through the factory.
    """

    @abstractmethod
    def subscribe(self, listener: TransportListener) -> None:
        """Register the listener that receives every TransportEvent."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """
        Start connecting.

        Returns once the attempt is underway; progress (pairing codes,
        open, close) is reported through the listener.
        """
        ...

    @abstractmethod
    async def send(self, jid: str, content: dict[str, Any]) -> str:
        """
        Send a message.

        Args:
            jid: Canonical recipient address
            content: Message content, e.g. {"text": "hi"} or
                {"image": b"...", "caption": ""}

        Returns:
            Message id assigned by the network
        """
        ...

    @abstractmethod
    async def logout(self) -> None:
        """Ask the network to unlink this device."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the connection without unlinking. Safe to call twice."""
        ...


class TransportFactory(Protocol):
    """Builds a TransportClient for one session and connection attempt."""

    def __call__(
        self,
        session_id: str,
        credentials: Optional[dict[str, Any]],
        options: TransportOptions,
    ) -> TransportClient:
        ...
