"""
API Error Handlers

Maps the GatewayException hierarchy onto HTTP responses. Every error body
has the shape {"error": message, "code": ERROR_CODE}; request validation
failures are reported as 400 with the same shape.

Anti-Patterns Avoided:
- No bare except clauses; unexpected errors are logged with context
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from wa_gateway.core.exceptions import ErrorCode, GatewayException
from wa_gateway.models.responses import ErrorResponse

logger = logging.getLogger(__name__)


# =============================================================================
# Status Mapping
# =============================================================================

ERROR_STATUS: dict[str, int] = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.SESSION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.NOT_CONNECTED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.TRANSPORT_SEND_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.MEDIA_FETCH_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.CREDENTIAL_STORE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: GatewayException) -> int:
    """HTTP status for a gateway exception; 500 when the code is unmapped."""
    return ERROR_STATUS.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_response(status_code: int, message: str, code: str) -> JSONResponse:
    body = ErrorResponse(error=message, code=str(getattr(code, "value", code)))
    return JSONResponse(status_code=status_code, content=body.model_dump())


# =============================================================================
# Handlers
# =============================================================================


async def gateway_exception_handler(request: Request, exc: GatewayException) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error_code} {exc.message}")
    return error_response(status_code, exc.message, exc.error_code)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Collapse pydantic errors into one readable message."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    message = "; ".join(parts) or "Invalid request"
    return error_response(status.HTTP_400_BAD_REQUEST, message, ErrorCode.VALIDATION_ERROR)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        ErrorCode.GATEWAY_ERROR,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayException, gateway_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
