"""
Response Models

Pydantic models for API response serialization. Field names follow the
gateway's public JSON contract (snake_case except `messageId`).
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Session Responses
# =============================================================================


class CreateSessionResponse(BaseModel):
    """
    Result of POST /session/create.

    Attributes:
        status: "initializing" for a new session, "existing" when a live
            session with the id was already present, "connected" when that
            session is already paired
    """

    message: str
    session_id: str
    status: Literal["initializing", "existing", "connected"]
    phone: Optional[str] = None


class PairingStatusResponse(BaseModel):
    """Result of GET /session/qr/{id}."""

    status: Literal["waiting", "qr_ready", "connected"]
    message: str
    qr: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None


class SessionStatusResponse(BaseModel):
    """Result of GET /session/status/{id}."""

    status: Literal["disconnected", "pending", "qr", "connected"]
    phone: Optional[str] = None
    name: Optional[str] = None


class SessionSummary(BaseModel):
    session_id: str
    status: Literal["disconnected", "pending", "qr", "connected"]
    phone: Optional[str] = None
    name: Optional[str] = None


class SessionListResponse(BaseModel):
    sessions: list[SessionSummary] = Field(default_factory=list)
    total: int = 0


class DetailResponse(BaseModel):
    """Plain acknowledgement for delete and logout."""

    message: str


# =============================================================================
# Message Responses
# =============================================================================


class MessageResponse(BaseModel):
    """Result of a successful send."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    message_id: str = Field(..., alias="messageId", description="Id assigned by the network")


# =============================================================================
# Errors
# =============================================================================


class ErrorResponse(BaseModel):
    """
    Error body returned by every exception handler.

    Attributes:
        error: Human-readable message
        code: Machine-readable ErrorCode value
    """

    error: str
    code: str
