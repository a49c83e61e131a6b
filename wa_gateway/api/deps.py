"""
API Dependencies

FastAPI dependency injection functions for the API layer. The long-lived
components are built in the application lifespan and kept on app.state;
these accessors hand them to route handlers and can be replaced in tests
through app.dependency_overrides.
"""

import logging

from fastapi import Request

from wa_gateway.core.config import Settings, get_settings as _get_settings
from wa_gateway.messaging.dispatcher import OutboundDispatcher
from wa_gateway.sessions.registry import SessionRegistry

logger = logging.getLogger(__name__)


def get_settings() -> Settings:
    """
    Get application settings.

    Pattern: Singleton with @lru_cache (from core.config)
    """
    return _get_settings()


def get_registry(request: Request) -> SessionRegistry:
    """The application's SessionRegistry."""
    return request.app.state.registry


def get_dispatcher(request: Request) -> OutboundDispatcher:
    """The application's OutboundDispatcher."""
    return request.app.state.dispatcher


__all__ = [
    "get_settings",
    "get_registry",
    "get_dispatcher",
]
