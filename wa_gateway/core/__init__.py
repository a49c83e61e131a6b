"""
Core module for the WA Session Gateway.

This module contains configuration, exceptions, and shared utilities.
"""

from wa_gateway.core.config import Settings, get_settings
from wa_gateway.core.exceptions import (
    ConnectionLostError,
    CredentialStoreError,
    ErrorCode,
    GatewayException,
    GatewayValidationError,
    MediaFetchError,
    NotConnectedError,
    SessionError,
    SessionNotFoundError,
    TerminalConnectionError,
    TransientConnectionError,
    TransportSendError,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Exceptions
    "ErrorCode",
    "GatewayException",
    "GatewayValidationError",
    "SessionError",
    "SessionNotFoundError",
    "NotConnectedError",
    "ConnectionLostError",
    "TransientConnectionError",
    "TerminalConnectionError",
    "TransportSendError",
    "MediaFetchError",
    "CredentialStoreError",
]
