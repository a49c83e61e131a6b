"""
Sessions Router

Administrative session endpoints: create, pairing code, status, delete,
logout and list. Handlers are thin; the SessionRegistry owns the lifecycle.
"""

import logging

from fastapi import APIRouter, Depends

from wa_gateway.api.deps import get_registry
from wa_gateway.models.requests import CreateSessionRequest
from wa_gateway.models.responses import (
    CreateSessionResponse,
    DetailResponse,
    ErrorResponse,
    PairingStatusResponse,
    SessionListResponse,
    SessionStatusResponse,
    SessionSummary,
)
from wa_gateway.sessions.registry import SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Sessions"])

NOT_FOUND = {404: {"model": ErrorResponse, "description": "Session not found"}}


# =============================================================================
# Create
# =============================================================================


@router.post("/session/create", response_model=CreateSessionResponse, response_model_exclude_none=True)
async def create_session(
    request: CreateSessionRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> CreateSessionResponse:
    """
    Create a session, or report the live one with the same id.

    A second create for a live id never starts a second connection.
    """
    snapshot, is_new = await registry.create(request.session_id)

    if is_new:
        return CreateSessionResponse(
            message="Session created",
            session_id=request.session_id,
            status="initializing",
        )
    if snapshot.is_connected:
        return CreateSessionResponse(
            message="Session already connected",
            session_id=request.session_id,
            status="connected",
            phone=snapshot.phone,
        )
    return CreateSessionResponse(
        message="Session already exists",
        session_id=request.session_id,
        status="existing",
    )


# =============================================================================
# Read
# =============================================================================


@router.get(
    "/session/qr/{session_id}",
    response_model=PairingStatusResponse,
    response_model_exclude_none=True,
    responses=NOT_FOUND,
)
async def get_pairing_code(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> PairingStatusResponse:
    """Current pairing code for a session that is waiting to be linked."""
    snapshot = registry.get(session_id)

    if snapshot.is_connected:
        return PairingStatusResponse(
            status="connected",
            message="Session already connected",
            phone=snapshot.phone,
            name=snapshot.name,
        )
    if snapshot.pairing_artifact is None:
        return PairingStatusResponse(status="waiting", message="Waiting for pairing code")
    return PairingStatusResponse(
        status="qr_ready",
        message="Scan the code with WhatsApp",
        qr=snapshot.pairing_artifact,
    )


@router.get(
    "/session/status/{session_id}",
    response_model=SessionStatusResponse,
    response_model_exclude_none=True,
)
async def get_session_status(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionStatusResponse:
    """Status of a session; unknown ids report "disconnected"."""
    machine = registry.lookup(session_id)
    if machine is None:
        return SessionStatusResponse(status="disconnected")

    snapshot = machine.snapshot()
    return SessionStatusResponse(
        status=snapshot.public_status,
        phone=snapshot.phone,
        name=snapshot.name,
    )


@router.get("/sessions/list", response_model=SessionListResponse)
async def list_sessions(registry: SessionRegistry = Depends(get_registry)) -> SessionListResponse:
    sessions = [
        SessionSummary(
            session_id=snapshot.id,
            status=snapshot.public_status,
            phone=snapshot.phone,
            name=snapshot.name,
        )
        for snapshot in registry.list()
    ]
    return SessionListResponse(sessions=sessions, total=len(sessions))


# =============================================================================
# Teardown
# =============================================================================


@router.delete("/session/delete/{session_id}", response_model=DetailResponse, responses=NOT_FOUND)
async def delete_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> DetailResponse:
    """Stop a session and erase its credentials."""
    await registry.delete(session_id)
    return DetailResponse(message="Session deleted")


@router.post("/session/logout/{session_id}", response_model=DetailResponse, responses=NOT_FOUND)
async def logout_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> DetailResponse:
    """Unlink the device from the account, then delete the session."""
    await registry.logout(session_id)
    return DetailResponse(message="Logged out")
