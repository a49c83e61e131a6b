"""
WA Session Gateway - Main Application Entry Point

FastAPI application exposing administrative session management and outbound
messaging over a pool of independent WhatsApp sessions.

Components are built in create_app() and kept on app.state; tests pass their
own registry, dispatcher or broadcaster to swap any of them. The lifespan
configures logging at startup and stops every session at shutdown, keeping
credentials so paired sessions resume on the next start.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wa_gateway.api.errors import register_exception_handlers
from wa_gateway.api.middleware.logging import RequestLoggingMiddleware
from wa_gateway.api.routes.health import APP_VERSION, router as health_router
from wa_gateway.api.routes.messages import router as messages_router
from wa_gateway.api.routes.sessions import router as sessions_router
from wa_gateway.clients.http import HttpMediaFetcher, MediaFetcher
from wa_gateway.core.config import Settings, get_settings
from wa_gateway.events.broadcaster import EventBroadcaster, InMemoryBroadcaster
from wa_gateway.messaging.dispatcher import OutboundDispatcher
from wa_gateway.observability.logging import configure_logging, get_logger
from wa_gateway.observability.metrics import get_metrics_app
from wa_gateway.sessions.credentials import create_credential_store
from wa_gateway.sessions.registry import SessionRegistry
from wa_gateway.sessions.retry import RetryPolicy
from wa_gateway.transport import TransportOptions, load_transport_factory

APP_NAME = "WA Session Gateway"
APP_DESCRIPTION = "Multi-session WhatsApp gateway: session lifecycle and outbound messaging"

logger = get_logger(__name__)


# =============================================================================
# Component Wiring
# =============================================================================


def build_registry(settings: Settings, broadcaster: EventBroadcaster) -> SessionRegistry:
    """Registry wired from settings: transport factory, credential backend and retry policy."""
    policy = RetryPolicy.with_extra_terminal_codes(
        settings.extra_terminal_disconnect_codes,
        max_retries=settings.retry_max_attempts,
        delay_seconds=settings.retry_delay_seconds,
    )
    options = TransportOptions(
        connect_timeout_seconds=settings.connect_timeout_seconds,
        keepalive_interval_seconds=settings.keepalive_interval_seconds,
        browser_name=settings.browser_name,
    )
    return SessionRegistry(
        transport_factory=load_transport_factory(settings.transport_factory),
        credential_store=create_credential_store(settings),
        broadcaster=broadcaster,
        policy=policy,
        transport_options=options,
    )


# =============================================================================
# Lifespan Context Manager
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager for startup/shutdown events.

    Uses the lifespan pattern instead of the deprecated @app.on_event.
    """
    settings: Settings = app.state.settings
    configure_logging(settings.log_level, force=True)
    logger.info(
        "gateway starting",
        version=APP_VERSION,
        environment=settings.environment,
        credential_backend=settings.credential_backend,
        transport_factory=settings.transport_factory,
    )
    app.state.initialized = True

    yield

    logger.info("gateway shutting down", sessions=len(app.state.registry))
    await app.state.registry.shutdown()
    if app.state.owns_media_fetcher:
        await app.state.media_fetcher.aclose()
    app.state.initialized = False


# =============================================================================
# Application Factory
# =============================================================================


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[SessionRegistry] = None,
    dispatcher: Optional[OutboundDispatcher] = None,
    broadcaster: Optional[EventBroadcaster] = None,
    media_fetcher: Optional[MediaFetcher] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings (default: environment)
        registry: Session registry; built from settings when omitted
        dispatcher: Outbound dispatcher; built over the registry when omitted
        broadcaster: Lifecycle event sink (default: in-memory)
        media_fetcher: Media downloader (default: httpx-based)

    Returns:
        FastAPI: Configured application
    """
    if settings is None:
        settings = get_settings()
    if broadcaster is None:
        broadcaster = InMemoryBroadcaster()
    if registry is None:
        registry = build_registry(settings, broadcaster)

    owns_fetcher = media_fetcher is None
    if media_fetcher is None:
        media_fetcher = HttpMediaFetcher(
            max_bytes=settings.media_max_bytes,
            timeout_seconds=settings.media_fetch_timeout_seconds,
        )
    if dispatcher is None:
        dispatcher = OutboundDispatcher(registry, media_fetcher, settings)

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.broadcaster = broadcaster
    app.state.registry = registry
    app.state.dispatcher = dispatcher
    app.state.media_fetcher = media_fetcher
    app.state.owns_media_fetcher = owns_fetcher

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(sessions_router)
    app.include_router(messages_router)
    app.mount("/metrics", get_metrics_app())

    @app.get("/", tags=["Info"])
    async def root() -> dict[str, Any]:
        """Root endpoint returning basic service information."""
        return {
            "service": APP_NAME,
            "version": APP_VERSION,
            "docs": "/docs" if settings.environment != "production" else "disabled",
        }

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured port."""
    import uvicorn

    uvicorn.run("wa_gateway.main:app", host="0.0.0.0", port=get_settings().port)


if __name__ == "__main__":
    run()
