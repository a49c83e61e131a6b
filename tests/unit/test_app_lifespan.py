"""
Application factory and lifespan tests.

TestClient drives startup and shutdown; the registry is a mock so no
session tasks outlive the client's event loop.
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from wa_gateway.clients.http import HttpMediaFetcher
from wa_gateway.main import build_registry, create_app
from wa_gateway.messaging.dispatcher import OutboundDispatcher
from wa_gateway.sessions.credentials import FileCredentialStore
from wa_gateway.sessions.registry import SessionRegistry


def mock_registry() -> MagicMock:
    registry = MagicMock(spec=SessionRegistry)
    registry.shutdown = AsyncMock()
    registry.__len__.return_value = 0
    return registry


class TestCreateApp:

    def test_builds_missing_components(self, test_settings) -> None:
        app = create_app(settings=test_settings)

        assert isinstance(app.state.registry, SessionRegistry)
        assert isinstance(app.state.dispatcher, OutboundDispatcher)
        assert isinstance(app.state.media_fetcher, HttpMediaFetcher)
        assert app.state.owns_media_fetcher is True

    def test_empty_components_are_kept(self, test_settings, broadcaster, credential_store, transport_factory) -> None:
        registry = SessionRegistry(
            transport_factory=transport_factory,
            credential_store=credential_store,
            broadcaster=broadcaster,
        )
        assert len(registry) == 0

        app = create_app(
            settings=test_settings, registry=registry, broadcaster=broadcaster, media_fetcher=AsyncMock()
        )

        assert app.state.registry is registry
        assert app.state.broadcaster is broadcaster
        assert app.state.dispatcher._registry is registry

    def test_injected_dispatcher_is_kept(self, test_settings) -> None:
        dispatcher = MagicMock(spec=OutboundDispatcher)

        app = create_app(settings=test_settings, registry=mock_registry(), dispatcher=dispatcher)

        assert app.state.dispatcher is dispatcher

    def test_building_app_touches_nothing_on_disk(self, test_settings) -> None:
        app = create_app(settings=test_settings)

        assert not Path(test_settings.auth_dir).exists()
        assert app.state.media_fetcher._client is None

    def test_registry_wired_from_settings(self, test_settings, broadcaster) -> None:
        registry = build_registry(test_settings, broadcaster)

        assert isinstance(registry.credential_store, FileCredentialStore)
        assert registry.policy.max_retries == test_settings.retry_max_attempts

    def test_docs_disabled_in_production(self, test_settings) -> None:
        settings = test_settings.model_copy(update={"environment": "production"})

        app = create_app(settings=settings, registry=mock_registry(), media_fetcher=AsyncMock())

        assert app.docs_url is None


class TestLifespan:

    def test_shutdown_stops_sessions(self, test_settings) -> None:
        registry = mock_registry()
        fetcher = AsyncMock()
        app = create_app(settings=test_settings, registry=registry, media_fetcher=fetcher)

        with TestClient(app) as client:
            assert app.state.initialized is True
            assert client.get("/health").json()["sessions"] == 0

        registry.shutdown.assert_awaited_once()
        fetcher.aclose.assert_not_called()
        assert app.state.initialized is False

    def test_owned_fetcher_closed(self, test_settings) -> None:
        registry = mock_registry()
        app = create_app(settings=test_settings, registry=registry)
        app.state.media_fetcher = AsyncMock()

        with TestClient(app):
            pass

        app.state.media_fetcher.aclose.assert_awaited_once()
