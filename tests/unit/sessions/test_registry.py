"""
Tests for SessionRegistry.

Pattern: Service layer tested over in-memory fakes
"""

import asyncio

import pytest
import pytest_asyncio

from wa_gateway.core.exceptions import NotConnectedError, SessionNotFoundError
from wa_gateway.sessions.credentials import InMemoryCredentialStore
from wa_gateway.sessions.pairing import PairingCodeCache
from wa_gateway.sessions.registry import SessionRegistry
from wa_gateway.sessions.retry import RetryPolicy
from wa_gateway.sessions.models import SessionState
from wa_gateway.transport.base import DisconnectReason


class TestCreate:

    @pytest.mark.asyncio
    async def test_create_returns_new_initializing_session(self, registry) -> None:
        snapshot, is_new = await registry.create("A")

        assert is_new is True
        assert snapshot.id == "A"
        assert snapshot.state is SessionState.INITIALIZING
        assert "A" in registry
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_second_create_is_a_no_op(self, registry, transport_factory) -> None:
        await registry.create("A")
        await registry.lookup("A").wait_idle()

        snapshot, is_new = await registry.create("A")

        assert is_new is False
        assert snapshot.id == "A"
        assert transport_factory.count("A") == 1

    @pytest.mark.asyncio
    async def test_concurrent_creates_start_one_machine(self, registry, transport_factory) -> None:
        results = await asyncio.gather(*(registry.create("A") for _ in range(10)))
        await registry.lookup("A").wait_idle()

        assert sum(1 for _, is_new in results if is_new) == 1
        assert transport_factory.count("A") == 1
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_sessions_are_independent(self, registry, transport_factory) -> None:
        await registry.create("A")
        await registry.create("B")
        await registry.lookup("A").wait_idle()
        await registry.lookup("B").wait_idle()

        transport_factory.latest("A").emit_disconnected(DisconnectReason.LOGGED_OUT)
        await registry.lookup("A").wait_idle()

        assert registry.lookup("A") is None
        assert registry.get("B").state is SessionState.INITIALIZING

    @pytest.mark.asyncio
    async def test_create_after_termination_starts_fresh(self, registry, transport_factory) -> None:
        await registry.create("A")
        machine = registry.lookup("A")
        await machine.wait_idle()
        transport_factory.latest("A").emit_disconnected(DisconnectReason.BAD_SESSION)
        await machine.wait_idle()

        snapshot, is_new = await registry.create("A")
        await registry.lookup("A").wait_idle()

        assert is_new is True
        assert snapshot.retry_count == 0
        assert registry.lookup("A") is not machine
        assert transport_factory.count("A") == 2


class TestLookup:

    @pytest.mark.asyncio
    async def test_get_unknown_raises_not_found(self, registry) -> None:
        with pytest.raises(SessionNotFoundError) as exc_info:
            registry.get("missing")
        assert exc_info.value.session_id == "missing"

    @pytest.mark.asyncio
    async def test_terminated_session_is_not_found(self, registry, transport_factory) -> None:
        await registry.create("A")
        machine = registry.lookup("A")
        await machine.wait_idle()
        transport_factory.latest("A").emit_disconnected(DisconnectReason.CONNECTION_REPLACED)
        await machine.wait_idle()

        with pytest.raises(SessionNotFoundError):
            registry.get("A")
        assert "A" not in registry

    @pytest.mark.asyncio
    async def test_list_snapshots(self, registry, connect_session) -> None:
        await connect_session("A")
        await registry.create("B")
        await registry.lookup("B").wait_idle()

        statuses = {s.id: s.public_status for s in registry.list()}

        assert statuses == {"A": "connected", "B": "pending"}

    @pytest.mark.asyncio
    async def test_connected_transport(self, registry, connect_session) -> None:
        transport = await connect_session("A")

        assert registry.connected_transport("A") is transport

    @pytest.mark.asyncio
    async def test_connected_transport_requires_connected(self, registry) -> None:
        await registry.create("A")
        await registry.lookup("A").wait_idle()

        with pytest.raises(NotConnectedError):
            registry.connected_transport("A")
        with pytest.raises(NotConnectedError):
            registry.connected_transport("missing")


class TestDeleteAndLogout:

    @pytest.mark.asyncio
    async def test_delete_unknown_raises_not_found(self, registry) -> None:
        with pytest.raises(SessionNotFoundError):
            await registry.delete("missing")

    @pytest.mark.asyncio
    async def test_delete_erases_session(self, registry, connect_session, credential_store, broadcaster) -> None:
        transport = await connect_session("A")

        await registry.delete("A")

        assert "A" not in registry
        assert transport.closed is True
        assert transport.logout_calls == 0
        assert credential_store.deleted == ["A"]
        assert await credential_store.load("A") is None
        assert broadcaster.events_for("A")[-1].data == {"reason": "deleted"}

    @pytest.mark.asyncio
    async def test_logout_unlinks_then_deletes(self, registry, connect_session, credential_store) -> None:
        transport = await connect_session("A")

        await registry.logout("A")

        assert transport.logout_calls == 1
        assert "A" not in registry
        assert credential_store.deleted == ["A"]

    @pytest.mark.asyncio
    async def test_logout_unknown_raises_not_found(self, registry) -> None:
        with pytest.raises(SessionNotFoundError):
            await registry.logout("missing")


class TestShutdown:

    @pytest.mark.asyncio
    async def test_shutdown_keeps_credentials(self, registry, connect_session, credential_store) -> None:
        transport = await connect_session("A")

        await registry.shutdown()

        assert len(registry) == 0
        assert transport.closed is True
        assert credential_store.deleted == []
        assert await credential_store.exists("A")

    @pytest.mark.asyncio
    async def test_paired_session_resumes_with_stored_credentials(
        self, registry, connect_session, credential_store, broadcaster, instant_sleep
    ) -> None:
        from wa_gateway.sessions.registry import SessionRegistry
        from wa_gateway.transport.fake import FakeTransportFactory

        await connect_session("A")
        await registry.shutdown()

        restarted = SessionRegistry(
            transport_factory=FakeTransportFactory(auto_events=True),
            credential_store=credential_store,
            broadcaster=broadcaster,
            sleep=instant_sleep,
        )
        await restarted.create("A")
        await restarted.lookup("A").wait_idle()

        snapshot = restarted.get("A")
        assert snapshot.state is SessionState.CONNECTED
        assert snapshot.phone == "15551234567"
        await restarted.shutdown()


class TestInjectedCollaborators:

    def test_empty_pairing_cache_and_policy_are_kept(self, transport_factory, credential_store, broadcaster) -> None:
        cache = PairingCodeCache()
        policy = RetryPolicy(max_retries=5, delay_seconds=1.0)

        registry = SessionRegistry(
            transport_factory=transport_factory,
            credential_store=credential_store,
            broadcaster=broadcaster,
            policy=policy,
            pairing_cache=cache,
        )

        assert registry.pairing_cache is cache
        assert registry.policy is policy

    @pytest.mark.asyncio
    async def test_pairing_codes_land_in_injected_cache(
        self, transport_factory, credential_store, broadcaster, instant_sleep
    ) -> None:
        cache = PairingCodeCache()
        registry = SessionRegistry(
            transport_factory=transport_factory,
            credential_store=credential_store,
            broadcaster=broadcaster,
            pairing_cache=cache,
            sleep=instant_sleep,
        )
        await registry.create("A")
        await registry.lookup("A").wait_idle()

        code = transport_factory.latest("A").emit_pairing()
        await registry.lookup("A").wait_idle()

        assert cache.get("A") == code
        await registry.shutdown()


# =============================================================================
# Create racing credential erasure
# =============================================================================


class GatedCredentialStore(InMemoryCredentialStore):
    """In-memory store whose delete suspends until released."""

    def __init__(self) -> None:
        super().__init__()
        self.erasing = asyncio.Event()
        self.release = asyncio.Event()

    async def delete(self, session_id: str) -> bool:
        self.erasing.set()
        await self.release.wait()
        return await super().delete(session_id)


@pytest_asyncio.fixture
async def gated_registry(transport_factory, broadcaster, instant_sleep):
    registry = SessionRegistry(
        transport_factory=transport_factory,
        credential_store=GatedCredentialStore(),
        broadcaster=broadcaster,
        sleep=instant_sleep,
    )
    yield registry
    registry.credential_store.release.set()
    await registry.shutdown()


async def connect(registry, transport_factory, session_id: str):
    await registry.create(session_id)
    machine = registry.lookup(session_id)
    await machine.wait_idle()
    transport_factory.latest(session_id).emit_connected("15551234567:3@s.whatsapp.net", "Shop")
    await machine.wait_idle()
    return machine


class TestCreateDuringErasure:

    @pytest.mark.asyncio
    async def test_create_during_delete_does_not_resume_erased_session(
        self, gated_registry, transport_factory
    ) -> None:
        store = gated_registry.credential_store
        machine = await connect(gated_registry, transport_factory, "A")
        assert await store.exists("A")

        deleting = asyncio.create_task(gated_registry.delete("A"))
        await store.erasing.wait()

        assert machine.snapshot().state is not SessionState.TERMINATED
        _, is_new = await gated_registry.create("A")
        assert is_new is False

        store.release.set()
        await deleting

        assert await store.load("A") is None
        snapshot, is_new = await gated_registry.create("A")
        await gated_registry.lookup("A").wait_idle()

        assert is_new is True
        assert snapshot.phone is None
        assert transport_factory.count("A") == 2
        assert transport_factory.latest("A").credentials is None

    @pytest.mark.asyncio
    async def test_create_during_terminal_cleanup_does_not_resume_erased_session(
        self, gated_registry, transport_factory
    ) -> None:
        store = gated_registry.credential_store
        machine = await connect(gated_registry, transport_factory, "A")

        transport_factory.latest("A").emit_disconnected(DisconnectReason.LOGGED_OUT)
        await store.erasing.wait()

        assert machine.snapshot().state is not SessionState.TERMINATED
        _, is_new = await gated_registry.create("A")
        assert is_new is False

        store.release.set()
        await machine.wait_idle()

        assert machine.snapshot().state is SessionState.TERMINATED
        assert gated_registry.lookup("A") is None
        _, is_new = await gated_registry.create("A")
        await gated_registry.lookup("A").wait_idle()

        assert is_new is True
        assert transport_factory.latest("A").credentials is None
