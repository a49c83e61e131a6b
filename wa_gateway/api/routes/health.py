"""
Health Router

Liveness and readiness endpoints.

Anti-Patterns Avoided:
- No bare except clauses; failed checks are logged with context
"""

import logging

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from wa_gateway.api.deps import get_registry
from wa_gateway.core.exceptions import CredentialStoreError
from wa_gateway.sessions.credentials import CredentialStore
from wa_gateway.sessions.registry import SessionRegistry

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"

READINESS_PROBE_ID = "readiness-probe"


# =============================================================================
# Response Models
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    sessions: int


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    checks: dict[str, bool]


# =============================================================================
# Health Service
# =============================================================================


class HealthService:
    """
    Dependency checks for the readiness probe.

    Pattern: Repository pattern for dependency checks, so tests can pass a
    store double
    """

    def __init__(self, credential_store: CredentialStore) -> None:
        self._store = credential_store

    async def check_credential_store(self) -> bool:
        """
        Round-trip a lookup against the credential backend.

        Returns:
            bool: True if the backend answered, False otherwise
        """
        try:
            await self._store.exists(READINESS_PROBE_ID)
            return True
        except (CredentialStoreError, OSError) as e:
            logger.warning(f"Credential store health check failed: {e}")
            return False


def get_health_service(registry: SessionRegistry = Depends(get_registry)) -> HealthService:
    return HealthService(registry.credential_store)


# =============================================================================
# Router
# =============================================================================

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(registry: SessionRegistry = Depends(get_registry)) -> HealthResponse:
    """
    Liveness endpoint.

    Returns:
        HealthResponse: Status, version and number of live sessions
    """
    return HealthResponse(status="healthy", version=APP_VERSION, sessions=len(registry))


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(
    response: Response,
    health_service: HealthService = Depends(get_health_service),
) -> ReadinessResponse:
    """
    Readiness endpoint; 503 when the credential store is unreachable.
    """
    checks = {"credential_store": await health_service.check_credential_store()}
    all_healthy = all(checks.values())

    if not all_healthy:
        response.status_code = 503

    return ReadinessResponse(
        status="ready" if all_healthy else "not_ready",
        checks=checks,
    )
