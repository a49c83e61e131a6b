"""API Package - FastAPI routes, middleware, error handlers and dependencies.

Components:
- routes: API endpoint routers (health, sessions, messages)
- middleware: Request logging
- errors: GatewayException to HTTP response mapping
- deps: FastAPI dependency injection functions

Note: Import routers directly from wa_gateway.api.routes modules to avoid circular imports.
"""

__all__ = ["routes", "middleware", "errors", "deps"]
