"""
Connection State Machine

Owns one session's lifecycle: drives a transport client through pairing and
authentication, reacts to its events, schedules bounded reconnects and
erases the session on terminal disconnects.

State Machine:
    INITIALIZING     --pairing code-->          AWAITING_PAIRING
    INITIALIZING,
    AWAITING_PAIRING --connected-->             CONNECTED
    any live state   --disconnect, retry-->     RECONNECTING --delay--> INITIALIZING
    any live state   --disconnect, stop-->      TERMINATED
    any state        --delete/logout-->         TERMINATED

Concurrency:
    Transport events and scheduled retries are queued on a per-session
    asyncio.Queue and applied one at a time by a single worker task, in
    arrival order. Sessions never share a worker, so a stalled transport
    only delays its own session.

    Field updates for a transition happen without suspending, and
    snapshot() never suspends, so readers see either the state before a
    transition or the state after it.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Union

from wa_gateway.core.exceptions import (
    CredentialStoreError,
    TerminalConnectionError,
    TransientConnectionError,
)
from wa_gateway.events.broadcaster import EventBroadcaster, SessionEvent
from wa_gateway.observability.logging import get_logger, session_context
from wa_gateway.observability.metrics import (
    record_reconnect_attempt,
    record_state_transition,
    record_terminal_disconnect,
)
from wa_gateway.sessions.credentials import CredentialStore
from wa_gateway.sessions.inbound import InboundLogFactory, InboundMessageLog
from wa_gateway.sessions.models import Identity, SessionSnapshot, SessionState
from wa_gateway.sessions.pairing import PairingCodeCache
from wa_gateway.sessions.retry import RetryAfter, RetryPolicy
from wa_gateway.transport.base import (
    ConnectionClosed,
    ConnectionOpened,
    Connecting,
    CredentialsUpdated,
    MessageReceived,
    PairingCodeReceived,
    TransportClient,
    TransportEvent,
    TransportFactory,
    TransportOptions,
)

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]
TerminationCallback = Callable[["ConnectionStateMachine"], Awaitable[None]]

_PAIRABLE_STATES = (SessionState.INITIALIZING, SessionState.AWAITING_PAIRING)


# =============================================================================
# Work items
# =============================================================================


@dataclass(frozen=True)
class _Initialize:
    """Run the initialization sequence (first start or scheduled retry)."""


@dataclass(frozen=True)
class _FromTransport:
    """An event from the transport built in `generation`."""

    generation: int
    event: TransportEvent


_WorkItem = Union[_Initialize, _FromTransport]


# =============================================================================
# Connection State Machine
# =============================================================================


class ConnectionStateMachine:
    """
    Lifecycle owner for a single session.

    Args:
        session_id: Caller-supplied session id
        transport_factory: Builds a transport per connection attempt
        credential_store: Where this session's credentials live
        pairing_cache: Shared pairing artifact cache (this machine is the
            only writer for its id)
        broadcaster: Sink for lifecycle events
        policy: Reconnect policy
        on_terminated: Awaited once when the session terminates on its own,
            so the owner can drop it
        transport_options: Connection tuning passed to the factory
        inbound_log_factory: Builds the optional inbound message log
        sleep: Awaitable delay used for retries (injectable for tests)
    """

    def __init__(
        self,
        session_id: str,
        *,
        transport_factory: TransportFactory,
        credential_store: CredentialStore,
        pairing_cache: PairingCodeCache,
        broadcaster: EventBroadcaster,
        policy: RetryPolicy,
        on_terminated: Optional[TerminationCallback] = None,
        transport_options: Optional[TransportOptions] = None,
        inbound_log_factory: InboundLogFactory = InboundMessageLog,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._id = session_id
        self._factory = transport_factory
        self._store = credential_store
        self._pairing = pairing_cache
        self._broadcaster = broadcaster
        self._policy = policy
        self._on_terminated = on_terminated
        self._options = transport_options if transport_options is not None else TransportOptions()
        self._inbound_log_factory = inbound_log_factory
        self._sleep = sleep

        self._state = SessionState.INITIALIZING
        self._retry_count = 0
        self._identity: Optional[Identity] = None
        self._last_disconnect_reason: Optional[int] = None
        self._degraded = False
        self._inbound: Optional[InboundMessageLog] = None
        self._created_at = datetime.now(timezone.utc)

        self._transport: Optional[TransportClient] = None
        self._generation = 0
        self._queue: asyncio.Queue[_WorkItem] = asyncio.Queue()
        self._worker: Optional[asyncio.Task[None]] = None
        self._retry_task: Optional[asyncio.Task[None]] = None
        self._busy = False
        self._closed = False

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def session_id(self) -> str:
        return self._id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def is_terminated(self) -> bool:
        return self._state is SessionState.TERMINATED

    @property
    def is_connected(self) -> bool:
        return self._state is SessionState.CONNECTED

    @property
    def transport(self) -> Optional[TransportClient]:
        """The live transport, only while Connected."""
        return self._transport if self.is_connected else None

    @property
    def inbound_log(self) -> Optional[InboundMessageLog]:
        return self._inbound

    def snapshot(self) -> SessionSnapshot:
        """Point-in-time view of this session."""
        awaiting = self._state is SessionState.AWAITING_PAIRING
        connected = self._state is SessionState.CONNECTED
        return SessionSnapshot(
            id=self._id,
            state=self._state,
            retry_count=self._retry_count,
            pairing_artifact=self._pairing.get(self._id) if awaiting else None,
            identity=self._identity if connected else None,
            last_disconnect_reason=self._last_disconnect_reason,
            degraded=self._degraded,
            created_at=self._created_at,
        )

    # =========================================================================
    # Lifecycle control
    # =========================================================================

    def start(self) -> None:
        """
        Start the worker and queue the first initialization.

        Returns immediately; connection progress is observed through
        snapshot() and broadcaster events.
        """
        if self._worker is not None:
            return
        with session_context(self._id):
            self._worker = asyncio.create_task(self._run(), name=f"session-{self._id}")
        self._queue.put_nowait(_Initialize())

    async def shutdown(
        self,
        *,
        logout: bool = False,
        erase_credentials: bool = True,
        reason: str = "deleted",
    ) -> None:
        """
        Tear the session down on administrative request.

        Cancels any pending retry, optionally asks the network to unlink the
        device, closes the transport, stops the worker and (by default)
        erases credentials. Safe to call more than once.

        Args:
            logout: Request an authoritative logout before closing
            erase_credentials: Delete stored credentials
            reason: Reason attached to the terminated event
        """
        with session_context(self._id):
            if self._closed:
                # Already shut down, or terminating on its own in the worker.
                await self._join_worker()
                return
            self._closed = True
            self._cancel_retry()

            if logout and self._transport is not None:
                try:
                    await self._transport.logout()
                except Exception as e:
                    logger.info("transport logout failed, session already logged out", error=str(e))

            await self._stop_worker()
            await self._teardown_transport()
            # Erase before Terminated; create() treats a terminated machine as absent.
            if erase_credentials:
                await self._erase_credentials()

            self._pairing.clear(self._id)
            self._identity = None
            self._transition(SessionState.TERMINATED)
            await self._publish(SessionEvent.terminated(self._id, reason))
            logger.info("session shut down", reason=reason)

    async def wait_idle(self, include_retry: bool = True) -> None:
        """
        Wait until every queued item has been applied.

        With include_retry, also waits for a pending retry timer and the
        initialization it queues.
        """
        while True:
            if self._worker is None or self._worker.done():
                return
            retry_pending = self._retry_task is not None and not self._retry_task.done()
            if self._queue.empty() and not self._busy and not (include_retry and retry_pending):
                return
            await asyncio.sleep(0)

    # =========================================================================
    # Worker
    # =========================================================================

    def _enqueue(self, generation: int, event: TransportEvent) -> None:
        """Transport listener; never blocks."""
        self._queue.put_nowait(_FromTransport(generation, event))

    async def _run(self) -> None:
        while not self.is_terminated:
            item = await self._queue.get()
            self._busy = True
            try:
                await self._apply(item)
            except Exception:
                logger.exception("session event handling failed", item=type(item).__name__)
            finally:
                self._busy = False
                self._queue.task_done()

    async def _apply(self, item: _WorkItem) -> None:
        if self._closed:
            return
        if isinstance(item, _Initialize):
            await self._initialize()
            return
        if item.generation != self._generation:
            logger.debug("dropping event from replaced transport", kind=type(item.event).__name__)
            return
        await self._handle_event(item.event)

    # =========================================================================
    # Initialization sequence
    # =========================================================================

    async def _initialize(self) -> None:
        if self._state is not SessionState.INITIALIZING:
            self._transition(SessionState.INITIALIZING)

        if self._inbound is None and not self._degraded:
            try:
                self._inbound = self._inbound_log_factory()
            except Exception as e:
                self._degraded = True
                logger.warning("inbound message log unavailable, running degraded", error=str(e))

        try:
            credentials = await self._store.load(self._id)
            transport = self._factory(self._id, credentials, self._options)
        except Exception as e:
            logger.warning("session initialization failed", error=str(e))
            await self._on_closed(ConnectionClosed(reason=None))
            return

        self._generation += 1
        generation = self._generation
        transport.subscribe(lambda event: self._enqueue(generation, event))
        self._transport = transport

        try:
            await transport.connect()
        except Exception as e:
            logger.warning("transport connect failed", error=str(e))
            await self._on_closed(ConnectionClosed(reason=getattr(e, "reason", None)))

    # =========================================================================
    # Transport events
    # =========================================================================

    async def _handle_event(self, event: TransportEvent) -> None:
        if isinstance(event, PairingCodeReceived):
            await self._on_pairing_code(event)
        elif isinstance(event, ConnectionOpened):
            await self._on_opened(event)
        elif isinstance(event, ConnectionClosed):
            await self._on_closed(event)
        elif isinstance(event, CredentialsUpdated):
            await self._on_credentials(event)
        elif isinstance(event, MessageReceived):
            self._on_message(event)
        elif isinstance(event, Connecting):
            logger.debug("transport connecting")

    async def _on_pairing_code(self, event: PairingCodeReceived) -> None:
        if self._state not in _PAIRABLE_STATES:
            logger.debug("ignoring pairing code", state=self._state.value)
            return
        self._pairing.set(self._id, event.code)
        if self._state is not SessionState.AWAITING_PAIRING:
            self._transition(SessionState.AWAITING_PAIRING)
        logger.info("pairing code ready")
        await self._publish(SessionEvent.pairing_ready(self._id, event.code))

    async def _on_opened(self, event: ConnectionOpened) -> None:
        if self._state not in _PAIRABLE_STATES:
            logger.debug("ignoring connection open", state=self._state.value)
            return
        self._pairing.clear(self._id)
        self._identity = Identity(phone=event.phone, name=event.name)
        self._retry_count = 0
        self._transition(SessionState.CONNECTED)
        logger.info("session connected", phone=event.phone)
        await self._publish(SessionEvent.connected(self._id, event.phone, event.name))

    async def _on_closed(self, event: ConnectionClosed) -> None:
        if self._state in (SessionState.RECONNECTING, SessionState.TERMINATED):
            return

        self._last_disconnect_reason = event.reason
        self._pairing.clear(self._id)
        self._identity = None

        decision = self._policy.decide(event.reason, self._retry_count)
        if isinstance(decision, RetryAfter):
            error = TransientConnectionError(self._id, event.reason)
            self._retry_count = decision.attempt
            self._transition(SessionState.RECONNECTING)
            logger.warning(
                error.message,
                attempt=decision.attempt,
                max_attempts=self._policy.max_retries,
                delay=decision.delay,
            )
            record_reconnect_attempt()
            await self._teardown_transport()
            self._retry_task = asyncio.create_task(
                self._retry_after(decision.delay), name=f"session-{self._id}-retry"
            )
            return

        await self._terminate(TerminalConnectionError(self._id, event.reason, exhausted=decision.exhausted))

    async def _on_credentials(self, event: CredentialsUpdated) -> None:
        try:
            await self._store.save(self._id, event.credentials)
        except CredentialStoreError as e:
            logger.error("credential save failed", error=e.message)

    def _on_message(self, event: MessageReceived) -> None:
        logger.info("inbound message received")
        if self._inbound is not None:
            self._inbound.append(event.message)

    # =========================================================================
    # Retry and termination
    # =========================================================================

    async def _retry_after(self, delay: float) -> None:
        await self._sleep(delay)
        if not self._closed:
            self._queue.put_nowait(_Initialize())

    async def _terminate(self, error: TerminalConnectionError) -> None:
        self._closed = True
        self._cancel_retry()
        await self._teardown_transport()
        await self._erase_credentials()

        self._transition(SessionState.TERMINATED)
        logger.error(error.message, reason=error.reason, exhausted=error.exhausted)
        record_terminal_disconnect(error.reason, error.exhausted)
        if self._on_terminated is not None:
            await self._on_terminated(self)
        reason = "retries_exhausted" if error.exhausted else f"disconnect_{error.reason}"
        await self._publish(SessionEvent.terminated(self._id, reason))

    # =========================================================================
    # Helpers
    # =========================================================================

    def _transition(self, new_state: SessionState) -> None:
        old_state = self._state
        self._state = new_state
        record_state_transition(old_state.value, new_state.value)
        logger.debug("session state transition", from_state=old_state.value, to_state=new_state.value)

    def _cancel_retry(self) -> None:
        task = self._retry_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._retry_task = None

    async def _stop_worker(self) -> None:
        worker = self._worker
        if worker is None or worker.done() or worker is asyncio.current_task():
            return
        worker.cancel()
        try:
            await worker
        except asyncio.CancelledError:
            pass

    async def _join_worker(self) -> None:
        """Wait for the worker to finish without cancelling it."""
        worker = self._worker
        if worker is None or worker.done() or worker is asyncio.current_task():
            return
        await asyncio.wait({worker})

    async def _teardown_transport(self) -> None:
        transport, self._transport = self._transport, None
        # Events still queued from this transport are now stale.
        self._generation += 1
        if transport is None:
            return
        try:
            await transport.close()
        except Exception as e:
            logger.warning("transport close failed", error=str(e))

    async def _erase_credentials(self) -> None:
        try:
            removed = await self._store.delete(self._id)
        except CredentialStoreError as e:
            logger.error("credential erasure failed", error=e.message)
            return
        if removed:
            logger.info("credentials erased")

    async def _publish(self, event: SessionEvent) -> None:
        try:
            await self._broadcaster.publish(event)
        except Exception as e:
            logger.warning("event publish failed", kind=event.kind, error=str(e))
