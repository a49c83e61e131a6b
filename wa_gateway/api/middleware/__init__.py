"""
API Middleware Package

Middleware Components:
- logging: Request/response logging with correlation ids and header redaction
"""

from wa_gateway.api.middleware.logging import (
    REQUEST_ID_HEADER,
    RequestLoggingMiddleware,
    redact_sensitive_headers,
)

__all__ = [
    "RequestLoggingMiddleware",
    "redact_sensitive_headers",
    "REQUEST_ID_HEADER",
]
