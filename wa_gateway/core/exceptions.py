"""
Custom exceptions for the WA Session Gateway.

This module provides a hierarchy of custom exceptions for the gateway.
All exceptions inherit from GatewayException and include error codes for
consistent error handling and API responses.

Connection errors (transient/terminal) are raised and handled inside the
session machinery and only observed through status and events; the others
are reported synchronously to the caller.
"""

from enum import Enum
from typing import Any, Optional


# =============================================================================
# Error Codes Enum
# =============================================================================


class ErrorCode(str, Enum):
    """
    Error codes for gateway exceptions.

    These codes provide a consistent way to identify error types
    across the API and in logging.
    """

    GATEWAY_ERROR = "GATEWAY_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    NOT_CONNECTED = "NOT_CONNECTED"
    TRANSIENT_CONNECTION_ERROR = "TRANSIENT_CONNECTION_ERROR"
    TERMINAL_CONNECTION_ERROR = "TERMINAL_CONNECTION_ERROR"
    TRANSPORT_SEND_ERROR = "TRANSPORT_SEND_ERROR"
    MEDIA_FETCH_ERROR = "MEDIA_FETCH_ERROR"
    CREDENTIAL_STORE_ERROR = "CREDENTIAL_STORE_ERROR"


# =============================================================================
# Base Exception
# =============================================================================


class GatewayException(Exception):
    """
    Base exception for all gateway errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.GATEWAY_ERROR,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            **kwargs: Additional attributes to set on the exception.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# Request Validation
# =============================================================================


class GatewayValidationError(GatewayException):
    """
    Exception for request validation errors.

    Raised before any state machine interaction when required fields are
    missing or malformed (e.g. undecodable base64 media).

    Note: Named GatewayValidationError to avoid conflict with
    pydantic.ValidationError.

    Attributes:
        field: Name of the field that failed validation.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: str = ErrorCode.VALIDATION_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.field = field


# =============================================================================
# Session Errors
# =============================================================================


class SessionError(GatewayException):
    """
    Base exception for session-scoped failures.

    Attributes:
        session_id: ID of the affected session.
    """

    def __init__(
        self,
        message: str,
        session_id: Optional[str] = None,
        error_code: str = ErrorCode.GATEWAY_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.session_id = session_id


class SessionNotFoundError(SessionError):
    """Raised when a session id is not present in the registry."""

    def __init__(self, session_id: str, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Session not found: {session_id}",
            session_id=session_id,
            error_code=ErrorCode.SESSION_NOT_FOUND,
        )


class NotConnectedError(SessionError):
    """Raised when an operation requires a Connected session."""

    def __init__(self, session_id: str, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Session not connected: {session_id}",
            session_id=session_id,
            error_code=ErrorCode.NOT_CONNECTED,
        )


class ConnectionLostError(SessionError):
    """
    Base for network-level disconnects reported by the transport.

    Attributes:
        reason: Disconnect status code, None when the transport gave none.
    """

    def __init__(
        self,
        message: str,
        session_id: Optional[str] = None,
        reason: Optional[int] = None,
        error_code: str = ErrorCode.GATEWAY_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, session_id=session_id, error_code=error_code, **kwargs)
        self.reason = reason


class TransientConnectionError(ConnectionLostError):
    """A recoverable disconnect; retried per the reconnect policy."""

    def __init__(self, session_id: str, reason: Optional[int] = None) -> None:
        super().__init__(
            f"Transient disconnect for {session_id} (reason={reason})",
            session_id=session_id,
            reason=reason,
            error_code=ErrorCode.TRANSIENT_CONNECTION_ERROR,
        )


class TerminalConnectionError(ConnectionLostError):
    """An authoritative rejection; the session is erased and not retried."""

    def __init__(self, session_id: str, reason: Optional[int] = None, exhausted: bool = False) -> None:
        detail = "retries exhausted" if exhausted else "rejected by network"
        super().__init__(
            f"Terminal disconnect for {session_id}: {detail} (reason={reason})",
            session_id=session_id,
            reason=reason,
            error_code=ErrorCode.TERMINAL_CONNECTION_ERROR,
        )
        self.exhausted = exhausted


# =============================================================================
# Outbound Errors
# =============================================================================


class TransportSendError(SessionError):
    """
    Raised when the transport fails to send on a connected session.

    Surfaced as-is; sends are never retried by the gateway.
    """

    def __init__(self, session_id: str, message: str) -> None:
        super().__init__(
            message,
            session_id=session_id,
            error_code=ErrorCode.TRANSPORT_SEND_ERROR,
        )


class MediaFetchError(GatewayException):
    """
    Raised when remote media cannot be downloaded before a send.

    Attributes:
        url: The media URL that failed.
        status_code: HTTP status returned by the remote host, if any.
    """

    def __init__(
        self,
        message: str,
        url: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, ErrorCode.MEDIA_FETCH_ERROR)
        self.url = url
        self.status_code = status_code


class CredentialStoreError(GatewayException):
    """Raised when a credential store backend operation fails."""

    def __init__(self, message: str, session_id: Optional[str] = None) -> None:
        super().__init__(message, ErrorCode.CREDENTIAL_STORE_ERROR)
        self.session_id = session_id
