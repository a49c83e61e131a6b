"""
Core configuration module for the WA Session Gateway.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the WA_GATEWAY_ prefix.

Pattern: Pydantic BaseSettings with a cached singleton accessor
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All fields use the WA_GATEWAY_ prefix for environment variables.
    Example: WA_GATEWAY_RETRY_DELAY_SECONDS=5
    """

    # =========================================================================
    # Service Configuration
    # =========================================================================
    service_name: str = Field(
        default="wa-session-gateway",
        description="Name of the service for logging and identification",
    )
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port the service listens on",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level for structured logging",
    )
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins outside development",
    )

    # =========================================================================
    # Credential Store Configuration
    # =========================================================================
    credential_backend: Literal["file", "redis"] = Field(
        default="file",
        description="Backend used to persist per-session credential material",
    )
    auth_dir: str = Field(
        default="./auth_sessions",
        description="Directory holding one credential file per session (file backend)",
    )
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Redis connection URL (redis backend)",
    )
    credential_key_prefix: str = Field(
        default="wa-credentials:",
        description="Key prefix for credential entries in Redis",
    )

    # =========================================================================
    # Reconnect Policy Configuration
    # =========================================================================
    retry_max_attempts: int = Field(
        default=2,
        ge=0,
        le=20,
        description="Reconnect attempts allowed per disconnect episode",
    )
    retry_delay_seconds: float = Field(
        default=3.0,
        ge=0.0,
        le=300.0,
        description="Fixed delay before a reconnect attempt",
    )
    extra_terminal_disconnect_codes: list[int] = Field(
        default_factory=list,
        description="Additional disconnect status codes that erase the session instead of retrying",
    )

    # =========================================================================
    # Transport Client Configuration
    # =========================================================================
    transport_factory: str = Field(
        default="wa_gateway.transport.fake:FakeTransport",
        description="Dotted 'module:attribute' path of the transport client factory",
    )
    connect_timeout_seconds: float = Field(
        default=60.0,
        ge=1.0,
        description="Timeout passed to the transport for establishing a connection",
    )
    keepalive_interval_seconds: float = Field(
        default=25.0,
        ge=1.0,
        description="Keepalive interval passed to the transport",
    )
    browser_name: str = Field(
        default="Chrome (Linux)",
        description="Browser identity announced to the network on pairing",
    )

    # =========================================================================
    # Outbound Messaging Configuration
    # =========================================================================
    recipient_domain: str = Field(
        default="s.whatsapp.net",
        description="Domain suffix appended to bare recipient identifiers",
    )
    media_fetch_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Timeout for fetching remote media before sending",
    )
    media_max_bytes: int = Field(
        default=50 * 1024 * 1024,
        ge=1024,
        description="Maximum size of inline or fetched media",
    )
    default_document_filename: str = Field(default="document.pdf")
    default_document_mimetype: str = Field(default="application/pdf")
    default_audio_mimetype: str = Field(default="audio/mp4")

    model_config = {
        "env_prefix": "WA_GATEWAY_",
        "case_sensitive": False,
        "extra": "ignore",
    }

    # =========================================================================
    # Field Validators
    # =========================================================================
    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Validate Redis URL format."""
        if not v.startswith(("redis://", "rediss://")):
            raise ValueError("Redis URL must start with redis:// or rediss://")
        return v

    @field_validator("transport_factory")
    @classmethod
    def validate_transport_factory(cls, v: str) -> str:
        """Require the 'module:attribute' form."""
        module, sep, attr = v.partition(":")
        if not sep or not module or not attr:
            raise ValueError("transport_factory must look like 'package.module:Attribute'")
        return v

    @field_validator("recipient_domain")
    @classmethod
    def validate_recipient_domain(cls, v: str) -> str:
        """Strip a leading '@' so the domain can be appended directly."""
        v = v.lstrip("@")
        if not v:
            raise ValueError("recipient_domain must not be empty")
        return v

    def allowed_cors_origins(self) -> list[str]:
        """
        CORS origins for the current environment.

        Development allows every origin; other environments use the
        comma-separated cors_origins value, or block cross-origin requests
        when it is empty.
        """
        if self.environment == "development":
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# =============================================================================
# Settings Singleton
# =============================================================================


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses functools.lru_cache to ensure only one Settings instance is created.

    Returns:
        Settings: The application settings instance.
    """
    return Settings()
