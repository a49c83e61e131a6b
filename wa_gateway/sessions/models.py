"""
Session Domain Models

Lifecycle states, the connected identity, and the immutable snapshot handed
to readers of a session.

Pattern: Domain models as value objects
Pattern: Pydantic for validation at API boundaries
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SessionState(str, Enum):
    """
    Lifecycle state of a session.

    States:
        INITIALIZING: Loading credentials and starting a transport
        AWAITING_PAIRING: A pairing code is available and waiting to be scanned
        CONNECTED: Authenticated; sends are accepted
        RECONNECTING: Waiting out the retry delay after a transient disconnect
        TERMINATED: Absorbing end state; credentials and registry entry are gone
    """

    INITIALIZING = "initializing"
    AWAITING_PAIRING = "awaiting_pairing"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    TERMINATED = "terminated"


class Identity(BaseModel):
    """The account a Connected session is paired with."""

    phone: str = Field(..., description="Phone number of the paired account")
    name: Optional[str] = Field(default=None, description="Display name of the paired account")

    model_config = {"frozen": True}


class SessionSnapshot(BaseModel):
    """
    Point-in-time view of one session.

    Snapshots are built without suspending, so a reader never observes a
    session halfway through a transition.
    """

    id: str
    state: SessionState
    retry_count: int = Field(default=0, ge=0)
    pairing_artifact: Optional[str] = None
    identity: Optional[Identity] = None
    last_disconnect_reason: Optional[int] = None
    degraded: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}

    @property
    def is_connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    @property
    def phone(self) -> Optional[str]:
        return self.identity.phone if self.identity else None

    @property
    def name(self) -> Optional[str]:
        return self.identity.name if self.identity else None

    @property
    def public_status(self) -> str:
        """
        Status reported by the status and list endpoints.

        Returns:
            "connected", "qr" while a pairing code is waiting, "pending"
            otherwise, or "disconnected" once terminated.
        """
        if self.state is SessionState.CONNECTED:
            return "connected"
        if self.state is SessionState.TERMINATED:
            return "disconnected"
        if self.pairing_artifact is not None:
            return "qr"
        return "pending"
