"""
Request Logging Middleware

One log line per HTTP request with method, path, status and duration.
The request's correlation id is taken from X-Request-ID (or generated),
bound to the structured log context while the request is served, and
echoed in the response header.

Probe traffic (/health, /metrics) is logged at DEBUG so it does not drown
session activity.
"""

import logging
import time
import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from wa_gateway.observability.logging import clear_correlation_id, set_correlation_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

QUIET_PATH_PREFIXES = ("/health", "/metrics")

REDACTED_HEADERS = frozenset({"authorization", "cookie", "x-api-key", "x-auth-token"})


def redact_sensitive_headers(headers: dict[str, str]) -> dict[str, str]:
    """Copy of headers with credential-bearing values replaced by [REDACTED]."""
    return {
        key: "[REDACTED]" if key.lower() in REDACTED_HEADERS else value
        for key, value in headers.items()
    }


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Correlation id binding and access logging for every request."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        started = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        set_correlation_id(request_id)

        line = f"{request.method} {request.url.path}"
        logger.debug(f"{line} headers={redact_sensitive_headers(dict(request.headers))}")

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"{line} raised {type(e).__name__}: {e} after {_elapsed_ms(started):.2f}ms")
            raise
        finally:
            clear_correlation_id()

        if request.url.path.startswith(QUIET_PATH_PREFIXES):
            level = logging.DEBUG
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            f"{line} {response.status_code} {_elapsed_ms(started):.2f}ms request_id={request_id}",
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
