"""WA Session Gateway - Source Package.

Note: Import `app` directly from `wa_gateway.main` to avoid circular imports.
"""

__all__ = ["main", "api", "core", "models", "sessions", "messaging", "transport"]
