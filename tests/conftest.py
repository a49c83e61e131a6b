"""
Pytest configuration for the gateway test suite.

This configuration sets up:
- Test markers for categorization
- Shared fixtures following the FakeRepository pattern: in-memory
  credential store, scriptable fake transports, in-memory broadcaster
- An instant, recording sleep so retry timing is tested without delays
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock

import fakeredis.aioredis
import httpx
import pytest
import pytest_asyncio

# Add project root to Python path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


# =============================================================================
# Test Markers
# =============================================================================


def pytest_configure(config):
    """
    Register custom markers for test categorization.

    - unit: Tests for individual components
    - integration: Session lifecycle scenarios across registry, machine and API
    """
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests for session lifecycle scenarios")


# =============================================================================
# Backing Services
# =============================================================================


@pytest_asyncio.fixture
async def fake_redis():
    """
    Fake Redis client for testing.

    fakeredis provides a Redis-compatible interface without a real server.
    """
    redis = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield redis
    await redis.aclose()


@pytest.fixture
def test_settings(tmp_path):
    """Settings with safe defaults: file credentials under tmp_path, fake transport."""
    from wa_gateway.core.config import Settings

    return Settings(
        service_name="wa-gateway-test",
        environment="development",
        credential_backend="file",
        auth_dir=str(tmp_path / "auth"),
        transport_factory="wa_gateway.transport.fake:FakeTransport",
    )


# =============================================================================
# Session Collaborators
# =============================================================================


@pytest.fixture
def transport_factory():
    """Fake transport factory; tests drive every transport event explicitly."""
    from wa_gateway.transport.fake import FakeTransportFactory

    return FakeTransportFactory(auto_events=False)


@pytest.fixture
def credential_store():
    from wa_gateway.sessions.credentials import InMemoryCredentialStore

    return InMemoryCredentialStore()


@pytest.fixture
def broadcaster():
    from wa_gateway.events.broadcaster import InMemoryBroadcaster

    return InMemoryBroadcaster()


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested through the instant_sleep fixture."""
    return []


@pytest.fixture
def instant_sleep(sleeps):
    """Retry sleep that records the delay and returns immediately."""

    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest_asyncio.fixture
async def registry(transport_factory, credential_store, broadcaster, instant_sleep):
    """SessionRegistry over fakes, with the default 2 retries / 3 second policy."""
    from wa_gateway.sessions.registry import SessionRegistry

    registry = SessionRegistry(
        transport_factory=transport_factory,
        credential_store=credential_store,
        broadcaster=broadcaster,
        sleep=instant_sleep,
    )
    yield registry
    await registry.shutdown()


@pytest.fixture
def media_fetcher():
    """Media fetcher double returning fixed bytes."""
    from wa_gateway.clients.http import MediaFetcher

    fetcher = AsyncMock(spec=MediaFetcher)
    fetcher.fetch.return_value = b"\x89PNG-remote"
    return fetcher


@pytest.fixture
def dispatcher(registry, media_fetcher, test_settings):
    from wa_gateway.messaging.dispatcher import OutboundDispatcher

    return OutboundDispatcher(registry, media_fetcher, test_settings)


@pytest.fixture
def connect_session(registry, transport_factory):
    """
    Bring a session to Connected.

    Returns an async callable: await connect_session("A") -> FakeTransport
    """

    async def _connect(session_id: str, user_id: str = "15551234567:3@s.whatsapp.net", name: str = "Shop"):
        await registry.create(session_id)
        machine = registry.lookup(session_id)
        await machine.wait_idle()
        transport = transport_factory.latest(session_id)
        transport.emit_connected(user_id, name)
        await machine.wait_idle()
        return transport

    return _connect


# =============================================================================
# Application
# =============================================================================


@pytest.fixture
def app(test_settings, registry, broadcaster, media_fetcher):
    """FastAPI app wired to the fake registry and media fetcher."""
    from wa_gateway.main import create_app

    return create_app(
        settings=test_settings,
        registry=registry,
        broadcaster=broadcaster,
        media_fetcher=media_fetcher,
    )


@pytest_asyncio.fixture
async def client(app):
    """
    Async HTTP client bound to the app.

    Runs on the test's event loop, so session workers started by requests
    keep running between calls and tests can drive fake transports directly.
    """
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
