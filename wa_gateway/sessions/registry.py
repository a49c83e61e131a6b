"""
Session Registry - Service layer for session lifecycle management

Single source of truth mapping session id to its ConnectionStateMachine.
Enforces at most one live machine per id and serializes every insert and
removal of the id map behind one asyncio.Lock.

Lock ordering: a machine may take the registry lock (to remove itself on
termination), but the registry never awaits a machine while holding its
lock, so the two can never wait on each other.

Pattern: Service layer coordinating per-session state machines
Pattern: Dependency injection for transport, store and broadcaster
"""

import asyncio
from typing import Optional

from wa_gateway.core.exceptions import NotConnectedError, SessionNotFoundError
from wa_gateway.events.broadcaster import EventBroadcaster
from wa_gateway.observability.logging import get_logger
from wa_gateway.observability.metrics import set_live_sessions
from wa_gateway.sessions.credentials import CredentialStore
from wa_gateway.sessions.inbound import InboundLogFactory, InboundMessageLog
from wa_gateway.sessions.machine import ConnectionStateMachine, Sleep
from wa_gateway.sessions.models import SessionSnapshot
from wa_gateway.sessions.pairing import PairingCodeCache
from wa_gateway.sessions.retry import RetryPolicy
from wa_gateway.transport.base import TransportClient, TransportFactory, TransportOptions

logger = get_logger(__name__)


class SessionRegistry:
    """
    Registry of live sessions.

    Args:
        transport_factory: Builds transport clients for new machines
        credential_store: Credential repository shared by all machines
            (each machine only touches its own id)
        broadcaster: Event sink for lifecycle events
        policy: Reconnect policy (defaults to 2 retries, 3 second delay)
        pairing_cache: Pairing artifact cache; a new one by default
        transport_options: Connection tuning passed to the factory
        inbound_log_factory: Builds each session's inbound message log
        sleep: Retry delay function handed to every machine

    Example:
        >>> registry = SessionRegistry(transport_factory=factory, credential_store=store,
        ...                            broadcaster=InMemoryBroadcaster())
        >>> snapshot, is_new = await registry.create("shop-42")
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        credential_store: CredentialStore,
        broadcaster: EventBroadcaster,
        policy: Optional[RetryPolicy] = None,
        pairing_cache: Optional[PairingCodeCache] = None,
        transport_options: Optional[TransportOptions] = None,
        inbound_log_factory: InboundLogFactory = InboundMessageLog,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._transport_factory = transport_factory
        self._store = credential_store
        self._broadcaster = broadcaster
        self._policy = policy if policy is not None else RetryPolicy()
        self._pairing = pairing_cache if pairing_cache is not None else PairingCodeCache()
        self._transport_options = transport_options if transport_options is not None else TransportOptions()
        self._inbound_log_factory = inbound_log_factory
        self._sleep = sleep

        self._machines: dict[str, ConnectionStateMachine] = {}
        self._lock = asyncio.Lock()

    @property
    def pairing_cache(self) -> PairingCodeCache:
        return self._pairing

    @property
    def credential_store(self) -> CredentialStore:
        return self._store

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def __len__(self) -> int:
        return len(self._machines)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._machines

    # =========================================================================
    # Create / lookup / remove
    # =========================================================================

    async def create(self, session_id: str) -> tuple[SessionSnapshot, bool]:
        """
        Return the live session for an id, or start a new one.

        Args:
            session_id: Caller-supplied session id

        Returns:
            (snapshot, is_new). is_new is False when a non-terminated
            session already existed; nothing else happens in that case.
        """
        async with self._lock:
            existing = self._machines.get(session_id)
            if existing is not None and not existing.is_terminated:
                return existing.snapshot(), False

            machine = self._build_machine(session_id)
            self._machines[session_id] = machine
            machine.start()
            set_live_sessions(len(self._machines))

        logger.info("session created", session_id=session_id)
        return machine.snapshot(), True

    def lookup(self, session_id: str) -> Optional[ConnectionStateMachine]:
        """The live machine for an id, or None."""
        machine = self._machines.get(session_id)
        if machine is None or machine.is_terminated:
            return None
        return machine

    def get(self, session_id: str) -> SessionSnapshot:
        """
        Snapshot of a live session.

        Raises:
            SessionNotFoundError: If the id is unknown or terminated
        """
        machine = self.lookup(session_id)
        if machine is None:
            raise SessionNotFoundError(session_id)
        return machine.snapshot()

    def list(self) -> list[SessionSnapshot]:
        """Point-in-time snapshots of every live session, in no particular order."""
        return [m.snapshot() for m in list(self._machines.values()) if not m.is_terminated]

    async def remove(self, session_id: str, machine: Optional[ConnectionStateMachine] = None) -> None:
        """
        Drop an id from the registry. Idempotent.

        Args:
            session_id: Id to drop
            machine: Only drop the entry if it still maps to this machine,
                so a late removal never evicts a newer session with the
                same id
        """
        async with self._lock:
            current = self._machines.get(session_id)
            if current is None or (machine is not None and current is not machine):
                return
            del self._machines[session_id]
            set_live_sessions(len(self._machines))

    def connected_transport(self, session_id: str) -> TransportClient:
        """
        Transport of a Connected session.

        Raises:
            NotConnectedError: If the session is unknown or not Connected
        """
        machine = self.lookup(session_id)
        transport = machine.transport if machine is not None else None
        if transport is None:
            raise NotConnectedError(session_id)
        return transport

    # =========================================================================
    # Administrative teardown
    # =========================================================================

    async def delete(self, session_id: str) -> None:
        """
        Delete a session and erase its credentials.

        The retry timer is cancelled and the transport closed before the
        registry entry goes away.

        Raises:
            SessionNotFoundError: If the id is unknown
        """
        machine = self._require(session_id)
        await machine.shutdown(reason="deleted")
        await self.remove(session_id, machine)
        logger.info("session deleted", session_id=session_id)

    async def logout(self, session_id: str) -> None:
        """
        Unlink the device from the network, then delete the session.

        Raises:
            SessionNotFoundError: If the id is unknown
        """
        machine = self._require(session_id)
        await machine.shutdown(logout=True, reason="logged_out")
        await self.remove(session_id, machine)
        logger.info("session logged out", session_id=session_id)

    async def shutdown(self) -> None:
        """Stop every session, keeping credentials so paired sessions resume on restart."""
        async with self._lock:
            machines = list(self._machines.values())
            self._machines.clear()
            set_live_sessions(0)
        await asyncio.gather(
            *(m.shutdown(erase_credentials=False, reason="shutdown") for m in machines),
            return_exceptions=True,
        )
        logger.info("registry shut down", sessions=len(machines))

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require(self, session_id: str) -> ConnectionStateMachine:
        machine = self._machines.get(session_id)
        if machine is None:
            raise SessionNotFoundError(session_id)
        return machine

    def _build_machine(self, session_id: str) -> ConnectionStateMachine:
        return ConnectionStateMachine(
            session_id,
            transport_factory=self._transport_factory,
            credential_store=self._store,
            pairing_cache=self._pairing,
            broadcaster=self._broadcaster,
            policy=self._policy,
            on_terminated=self._on_machine_terminated,
            transport_options=self._transport_options,
            inbound_log_factory=self._inbound_log_factory,
            sleep=self._sleep,
        )

    async def _on_machine_terminated(self, machine: ConnectionStateMachine) -> None:
        await self.remove(machine.session_id, machine)
