"""
Observability Package

Structured JSON logging (structlog) and Prometheus metrics.
"""

from wa_gateway.observability.logging import (
    clear_correlation_id,
    configure_logging,
    get_correlation_id,
    get_logger,
    get_session_id,
    session_context,
    set_correlation_id,
)
from wa_gateway.observability.metrics import (
    generate_metrics,
    get_metrics_app,
    record_outbound_message,
    record_reconnect_attempt,
    record_state_transition,
    record_terminal_disconnect,
    set_live_sessions,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    "get_session_id",
    "session_context",
    # Metrics
    "get_metrics_app",
    "generate_metrics",
    "record_state_transition",
    "record_reconnect_attempt",
    "record_terminal_disconnect",
    "set_live_sessions",
    "record_outbound_message",
]
